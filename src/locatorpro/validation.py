from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Protocol, Sequence

from playwright.sync_api import Error as PlaywrightError

from .errors import InvalidStrategyExecution
from .models import Strategy
from .selector_text import parse_exact_text_selector, parse_has_text_selector

if TYPE_CHECKING:
    from playwright.sync_api import Page

logger = logging.getLogger("locatorpro.validation")

DEFAULT_MAX_MATCHES = 5
DEFAULT_RELIABILITY = 0.5
UNIQUE_WEIGHT = 2.0
SHARED_WEIGHT = 1.0

_EXACT_TEXT_SCRIPT = """
(text) => Array.from(document.querySelectorAll('*'))
  .filter((el) => (el.textContent || '').trim() === text)
  .length
"""

_TAG_TEXT_SCRIPT = """
([tag, text]) => Array.from(document.querySelectorAll(tag))
  .filter((el) => (el.textContent || '').includes(text))
  .length
"""


class DocumentQuery(Protocol):
    def count_css(self, selector: str) -> int: ...

    def count_xpath(self, xpath: str) -> int: ...

    def count_exact_text(self, text: str) -> int: ...

    def count_tag_text(self, tag: str, text: str) -> int: ...


class PlaywrightDocument:
    """DocumentQuery backed by a live Playwright page."""

    def __init__(self, page: Page) -> None:
        self.page = page

    def count_css(self, selector: str) -> int:
        try:
            return len(self.page.query_selector_all(selector))
        except PlaywrightError as exc:
            raise InvalidStrategyExecution(selector, str(exc)) from exc

    def count_xpath(self, xpath: str) -> int:
        try:
            return self.page.locator(f"xpath={xpath}").count()
        except PlaywrightError as exc:
            raise InvalidStrategyExecution(xpath, str(exc)) from exc

    def count_exact_text(self, text: str) -> int:
        try:
            return int(self.page.evaluate(_EXACT_TEXT_SCRIPT, text) or 0)
        except PlaywrightError as exc:
            raise InvalidStrategyExecution(text, str(exc)) from exc

    def count_tag_text(self, tag: str, text: str) -> int:
        try:
            return int(self.page.evaluate(_TAG_TEXT_SCRIPT, [tag, text]) or 0)
        except PlaywrightError as exc:
            raise InvalidStrategyExecution(f"{tag}:{text}", str(exc)) from exc


class StrategyValidator:
    """Runs strategies against the document and keeps the ones that resolve.

    A strategy survives when it matches between one and ``max_matches``
    elements. Survivors are annotated in place with ``match_count`` and
    ``is_unique``.
    """

    def __init__(self, document: DocumentQuery, max_matches: int = DEFAULT_MAX_MATCHES) -> None:
        if max_matches < 1:
            raise ValueError("max_matches must be at least 1.")
        self.document = document
        self.max_matches = max_matches

    def count_matches(self, strategy: Strategy) -> int:
        selector = strategy.selector
        try:
            if strategy.kind == "xpath":
                return self.document.count_xpath(selector)

            if strategy.kind == "text":
                exact = parse_exact_text_selector(selector)
                if exact is not None:
                    return self.document.count_exact_text(exact)
                tagged = parse_has_text_selector(selector)
                if tagged is not None:
                    tag, text = tagged
                    return self.document.count_tag_text(tag, text)
                raise InvalidStrategyExecution(selector, "unrecognised text selector")

            return self.document.count_css(selector)
        except InvalidStrategyExecution:
            raise
        except Exception as exc:
            raise InvalidStrategyExecution(selector, str(exc)) from exc

    def validate(self, strategies: Iterable[Strategy]) -> list[Strategy]:
        validated: list[Strategy] = []
        for strategy in strategies:
            try:
                count = self.count_matches(strategy)
            except InvalidStrategyExecution as exc:
                logger.debug("Dropping strategy: %s", exc)
                continue

            strategy.match_count = count
            strategy.is_unique = count == 1
            if count < 1 or count > self.max_matches:
                logger.debug("Dropping strategy %s with %d matches.", strategy.selector, count)
                continue
            validated.append(strategy)
        return validated


def select_primary(validated: Sequence[Strategy]) -> str:
    if not validated:
        return ""
    for strategy in validated:
        if strategy.is_unique:
            return strategy.selector
    return validated[0].selector


def calculate_confidence(validated: Sequence[Strategy]) -> float:
    if not validated:
        return 0.0

    total = 0.0
    weight_sum = 0.0
    for strategy in validated:
        weight = UNIQUE_WEIGHT if strategy.is_unique else SHARED_WEIGHT
        reliability = DEFAULT_RELIABILITY if strategy.reliability is None else strategy.reliability
        total += min(1.0, max(0.0, float(reliability))) * weight
        weight_sum += weight
    return total / weight_sum if weight_sum else 0.0
