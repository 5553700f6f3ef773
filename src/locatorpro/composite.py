from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Sequence

from playwright.sync_api import Error as PlaywrightError

from .errors import EmptyStrategyList
from .models import Strategy
from .selector_text import parse_attribute_value, parse_exact_text_selector

if TYPE_CHECKING:
    from playwright.sync_api import Locator, Page

logger = logging.getLogger("locatorpro.composite")


def locator_for_strategy(page: Page, strategy: Strategy) -> Locator:
    selector = strategy.selector
    kind = strategy.kind

    if kind == "xpath":
        return page.locator(f"xpath={selector}")

    if kind == "data-testid" and selector.startswith("[data-testid="):
        test_id = parse_attribute_value(selector, "data-testid")
        if test_id:
            return page.get_by_test_id(test_id)

    if kind == "text":
        text = parse_exact_text_selector(selector)
        if text is not None:
            return page.get_by_text(text, exact=True)

    if kind == "role":
        if selector.startswith("role="):
            return page.get_by_role(selector[len("role="):])  # type: ignore[arg-type]
        if selector.startswith("[role="):
            role = parse_attribute_value(selector, "role")
            if role and selector == f'[role="{role}"]':
                return page.get_by_role(role)  # type: ignore[arg-type]

    if kind == "aria-label" and selector.startswith("[aria-label="):
        label = parse_attribute_value(selector, "aria-label")
        if label:
            return page.get_by_label(label, exact=True)

    return page.locator(selector)


@dataclass(slots=True)
class CompositeLocator:
    """Ordered fallback chain of strategies, resolved lazily against a page."""

    page: Page
    strategies: tuple[Strategy, ...]

    @property
    def primary(self) -> Strategy:
        return self.strategies[0]

    def locators(self) -> list[Locator]:
        return [locator_for_strategy(self.page, strategy) for strategy in self.strategies]

    @property
    def locator(self) -> Locator:
        """Single Playwright locator chaining every strategy with ``or_``."""
        chain = locator_for_strategy(self.page, self.strategies[0])
        for strategy in self.strategies[1:]:
            chain = chain.or_(locator_for_strategy(self.page, strategy))
        return chain

    def resolve(self) -> Locator:
        """First strategy locator that currently matches, else the ``or_`` chain."""
        for strategy in self.strategies:
            candidate = locator_for_strategy(self.page, strategy)
            try:
                if candidate.count() > 0:
                    logger.debug("Resolved with strategy %s (%s).", strategy.selector, strategy.kind)
                    return candidate
            except PlaywrightError as exc:
                logger.debug("Strategy %s failed to resolve: %s", strategy.selector, exc)
        return self.locator

    def click(self, **kwargs: Any) -> None:
        self.resolve().first.click(**kwargs)

    def fill(self, value: str, **kwargs: Any) -> None:
        self.resolve().first.fill(value, **kwargs)

    def count(self) -> int:
        return self.locator.count()


def build_composite_locator(page: Page, strategies: Sequence[Strategy]) -> CompositeLocator:
    if not strategies:
        raise EmptyStrategyList("No strategies available for locator.")
    ordered = tuple(sorted(strategies, key=lambda item: item.priority))
    logger.debug("Composite locator over %d strategies, primary %s.", len(ordered), ordered[0].selector)
    return CompositeLocator(page=page, strategies=ordered)
