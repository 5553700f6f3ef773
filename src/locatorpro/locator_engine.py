from __future__ import annotations

import logging

from .models import ElementSnapshot, GenerationConfig, LocatorResult
from .strategy_generator import StrategyGenerator
from .validation import (
    DEFAULT_MAX_MATCHES,
    DocumentQuery,
    StrategyValidator,
    calculate_confidence,
    select_primary,
)

logger = logging.getLogger("locatorpro.engine")


class LocatorEngine:
    def __init__(self, config: GenerationConfig | None = None, max_matches: int = DEFAULT_MAX_MATCHES) -> None:
        self.config = config or GenerationConfig()
        self.max_matches = max_matches
        self.generator = StrategyGenerator(self.config)

    def generate_selectors(self, snapshot: ElementSnapshot, document: DocumentQuery | None = None) -> LocatorResult:
        """Generate, optionally validate, and rank strategies for a snapshot.

        Without a document the generated strategies are returned unvalidated;
        confidence then treats every strategy as non-unique.
        """
        strategies = self.generator.generate(snapshot)
        if document is not None:
            strategies = StrategyValidator(document, self.max_matches).validate(strategies)

        result = LocatorResult(
            strategies=strategies,
            primary_selector=select_primary(strategies),
            confidence=calculate_confidence(strategies),
            snapshot=snapshot,
        )
        logger.info(
            "Selected %d strategies for <%s>, primary=%r, confidence=%.2f",
            len(strategies),
            snapshot.tag,
            result.primary_selector,
            result.confidence,
        )
        return result


def build_locator_result(
    snapshot: ElementSnapshot,
    config: GenerationConfig | None = None,
    document: DocumentQuery | None = None,
) -> LocatorResult:
    return LocatorEngine(config).generate_selectors(snapshot, document)
