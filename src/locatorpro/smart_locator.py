from __future__ import annotations

from dataclasses import replace
import logging
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from playwright.sync_api import Error as PlaywrightError

from .composite import CompositeLocator, build_composite_locator
from .dom_extractor import capture_snapshot
from .errors import ElementNotFound, NoMatchFound
from .locator_engine import LocatorEngine
from .logging_setup import set_log_level
from .models import (
    ElementSnapshot,
    GenerationConfig,
    LocatorResult,
    RelatedTextWeights,
    ScoringWeights,
    Strategy,
    StrategyDebugInfo,
    StrategyKind,
)
from .related_text import (
    DEFAULT_CONTAINER_TAGS,
    DEFAULT_MAX_ANCESTOR_LEVELS,
    build_related_text_strategies,
    scan_related_candidates,
)
from .selector_text import attribute_selector, class_selector, exact_text_selector, id_selector, xpath_literal
from .text_scan import build_text_strategies, rank_candidates, scan_for_text
from .validation import DEFAULT_MAX_MATCHES, PlaywrightDocument, StrategyValidator, select_primary

if TYPE_CHECKING:
    from playwright.sync_api import ElementHandle, Locator, Page

DEFAULT_VISIBLE_TEXT_RESULTS = 5
DEFAULT_RELATED_STRATEGIES = 1
ORIGINAL_SELECTOR_RELIABILITY = 0.5


class SmartLocator:
    """Self-healing locators for a Playwright page.

    Every ``find_by_*`` method returns a :class:`CompositeLocator` whose
    strategies are tried in priority order when the locator is resolved.
    """

    def __init__(
        self,
        page: Page,
        config: GenerationConfig | Mapping[str, Any] | None = None,
        *,
        scoring: ScoringWeights | None = None,
        related_scoring: RelatedTextWeights | None = None,
        max_matches: int = DEFAULT_MAX_MATCHES,
        log_level: str | int | None = None,
    ) -> None:
        if isinstance(config, Mapping):
            config = GenerationConfig.from_options(config)
        self.page = page
        self.config = config or GenerationConfig()
        self.scoring = scoring or ScoringWeights()
        self.related_scoring = related_scoring or RelatedTextWeights()
        self.engine = LocatorEngine(self.config, max_matches)
        self.document = PlaywrightDocument(page)
        self.logger = logging.getLogger("locatorpro.smart_locator")
        if log_level is not None:
            set_log_level(log_level)

    def locate(self, element: ElementHandle) -> LocatorResult:
        snapshot = capture_snapshot(element, mark_position=self.config.fallback_to_position)
        return self.engine.generate_selectors(snapshot, self.document)

    def generate_selectors(self, selector: str) -> list[Strategy]:
        """Validated strategies for the first element matching ``selector``.

        Falls back to the selector itself when it matches nothing or when
        no generated strategy survives validation.
        """
        snapshot = self._snapshot_for(selector)
        if snapshot is None:
            return [self._original_selector_strategy(selector)]

        result = self.engine.generate_selectors(snapshot, self.document)
        if not result.strategies:
            return [self._original_selector_strategy(selector)]
        return result.strategies

    def validate_strategies(self, strategies: Sequence[Strategy]) -> list[Strategy]:
        return StrategyValidator(self.document, self.engine.max_matches).validate(strategies)

    def build_composite_locator(self, strategies: Sequence[Strategy]) -> CompositeLocator:
        return build_composite_locator(self.page, strategies)

    def find_by_visible_text(
        self,
        text: str,
        *,
        fallbacks: Sequence[str] = (),
        element_types: Sequence[str] | None = None,
        max_results: int | None = None,
    ) -> CompositeLocator:
        variations = [text, *fallbacks]
        candidates = scan_for_text(self.page, variations, element_types)
        if not candidates:
            raise NoMatchFound(
                f"No elements found for text variations: {', '.join(variations)}",
                stage="visible-text",
            )

        ranked = rank_candidates(candidates, self.scoring)
        limit = DEFAULT_VISIBLE_TEXT_RESULTS if max_results is None else max_results
        strategies = build_text_strategies(ranked, limit)
        self.logger.info(
            "Visible text %r: %d candidates, %d strategies.",
            text,
            len(candidates),
            len(strategies),
        )
        return self.build_composite_locator(strategies)

    def find_by_text(self, text: str, *, fallbacks: Sequence[str] = ()) -> CompositeLocator:
        strategies: list[Strategy] = []
        for variation in (text, *fallbacks):
            for kind, selector, description, reliability in _text_strategy_rows(variation):
                strategies.append(
                    Strategy(
                        kind=kind,
                        selector=selector,
                        priority=len(strategies) + 1,
                        description=description,
                        reliability=reliability,
                    )
                )
        return self.build_composite_locator(strategies)

    def find_by_role(self, role: str, *, name: str | None = None) -> CompositeLocator:
        selector = attribute_selector("role", role)
        if name:
            selector += attribute_selector("aria-label", name)
        return self.build_composite_locator(self.generate_selectors(selector))

    def find_by_test_id(self, test_id: str) -> CompositeLocator:
        strategies = [
            Strategy("data-testid", attribute_selector("data-testid", test_id), 1, f'Test ID: data-testid="{test_id}"', 0.95),
            Strategy("css", attribute_selector("data-test", test_id), 2, f'Test ID: data-test="{test_id}"', 0.95),
            Strategy("css", attribute_selector("data-qa", test_id), 3, f'Test ID: data-qa="{test_id}"', 0.9),
            Strategy("id", id_selector(test_id), 4, f"ID fallback: {test_id}", 0.8),
            Strategy("css", class_selector(test_id), 5, f"Class fallback: {test_id}", 0.6),
        ]
        return self.build_composite_locator(strategies)

    def find_by_selector(self, selector: str) -> CompositeLocator:
        return self.build_composite_locator(self.generate_selectors(selector))

    def find_by_related_text(
        self,
        target_text: str,
        related_text: str,
        *,
        container_tags: Sequence[str] = DEFAULT_CONTAINER_TAGS,
        max_ancestor_levels: int = DEFAULT_MAX_ANCESTOR_LEVELS,
        max_strategies: int = DEFAULT_RELATED_STRATEGIES,
    ) -> CompositeLocator:
        ranked = scan_related_candidates(
            self.page,
            target_text,
            related_text,
            container_tags=container_tags,
            max_ancestor_levels=max_ancestor_levels,
            weights=self.related_scoring,
        )
        best = ranked[0]
        strategies = build_related_text_strategies(best)
        self.logger.info(
            "Related text %r near %r: best <%s> score=%.1f, %d strategies.",
            target_text,
            related_text,
            best.tag,
            best.score,
            len(strategies),
        )
        return self.build_composite_locator(strategies[: max(1, max_strategies)])

    def enhance_locator(self, locator: Locator) -> CompositeLocator:
        try:
            if locator.count() == 0:
                raise ElementNotFound("Element not found for enhancement.")
            element = locator.first.element_handle()
        except PlaywrightError as exc:
            raise ElementNotFound(f"Element not found for enhancement: {exc}") from exc

        result = self.locate(element)
        if not result.strategies:
            raise ElementNotFound("No strategy re-locates the element.")
        return self.build_composite_locator(result.strategies)

    def validate_locator(self, locator: Locator | CompositeLocator) -> bool:
        try:
            return locator.count() > 0
        except PlaywrightError as exc:
            self.logger.debug("Locator validation failed: %s", exc)
            return False

    def describe_strategies(self, selector: str) -> StrategyDebugInfo:
        snapshot = self._snapshot_for(selector)
        if snapshot is None:
            all_strategies = [self._original_selector_strategy(selector)]
        else:
            all_strategies = self.engine.generator.generate(snapshot)
        valid = self.validate_strategies([replace(item) for item in all_strategies])
        if valid:
            recommended = select_primary(valid)
        elif all_strategies:
            recommended = all_strategies[0].selector
        else:
            recommended = selector
        return StrategyDebugInfo(
            all_strategies=all_strategies,
            valid_strategies=valid,
            recommended_selector=recommended,
        )

    def _snapshot_for(self, selector: str) -> ElementSnapshot | None:
        try:
            element = self.page.query_selector(selector)
        except PlaywrightError as exc:
            self.logger.warning("Selector %r could not be queried: %s", selector, exc)
            return None
        if element is None:
            self.logger.debug("Selector %r matched nothing, keeping it as the only strategy.", selector)
            return None
        try:
            return capture_snapshot(element, mark_position=self.config.fallback_to_position)
        except ElementNotFound as exc:
            self.logger.warning("Element for %r detached during capture: %s", selector, exc)
            return None

    def _original_selector_strategy(self, selector: str) -> Strategy:
        return Strategy(
            kind="css",
            selector=selector,
            priority=1,
            description="Original selector",
            reliability=ORIGINAL_SELECTOR_RELIABILITY,
        )


def _text_strategy_rows(text: str) -> list[tuple[StrategyKind, str, str, float]]:
    literal = xpath_literal(text)
    return [
        (
            "xpath",
            f"//div[normalize-space(text())={literal} and not(descendant::*[text()])]",
            "XPath div with exact text only",
            0.9,
        ),
        (
            "xpath",
            f"//span[normalize-space(text())={literal} and not(descendant::*[text()])]",
            "XPath span with exact text only",
            0.9,
        ),
        ("xpath", f"//div[text()={literal}]", "XPath div exact text", 0.8),
        ("xpath", f"//span[text()={literal}]", "XPath span exact text", 0.8),
        ("text", exact_text_selector(text), "Exact text match", 0.6),
    ]

