from __future__ import annotations

import logging
import math
from types import MappingProxyType
from typing import Mapping

from .models import ElementSnapshot, GenerationConfig, Strategy, StrategyKind
from .paths import build_position_path, build_specificity_path
from .selector_rules import implicit_roles, is_test_like_id, select_best_class
from .selector_text import (
    attribute_selector,
    class_selector,
    exact_text_selector,
    has_text_selector,
    id_selector,
)

logger = logging.getLogger("locatorpro.engine")

MAX_TEXT_LENGTH = 50
PARTIAL_TEXT_THRESHOLD = 10
PARTIAL_TEXT_LENGTH = 20
POSITION_ATTR_X = "data-locatorpro-x"
POSITION_ATTR_Y = "data-locatorpro-y"

TIER_PRIORITIES: Mapping[str, range] = MappingProxyType(
    {
        "test_attribute": range(1, 6),
        "semantic": range(6, 11),
        "role": range(11, 16),
        "text": range(16, 21),
        "structure": range(21, 26),
        "attribute_combination": range(26, 31),
        "fallback": range(31, 36),
    }
)


def rounded_coordinate(value: float) -> int:
    return int(math.floor(float(value) + 0.5))


def tier_of(priority: int) -> str:
    for name, slots in TIER_PRIORITIES.items():
        if priority in slots:
            return name
    raise ValueError(f"Priority {priority} is outside the strategy tiers.")


class StrategyGenerator:
    """Enumerates candidate strategies for one snapshot in seven tiers."""

    def __init__(self, config: GenerationConfig | None = None) -> None:
        self.config = config or GenerationConfig()

    def generate(self, snapshot: ElementSnapshot) -> list[Strategy]:
        builder = _TierBuilder(snapshot, self.config)
        strategies = builder.build()
        strategies = [item for item in strategies if item.selector]
        strategies.sort(key=lambda item: item.priority)
        limited = strategies[: self.config.max_strategies]
        logger.debug(
            "Generated %d strategies for <%s>, keeping %d.",
            len(strategies),
            snapshot.tag,
            len(limited),
        )
        return limited


def generate_strategies(snapshot: ElementSnapshot, config: GenerationConfig | None = None) -> list[Strategy]:
    return StrategyGenerator(config).generate(snapshot)


class _TierBuilder:
    def __init__(self, snapshot: ElementSnapshot, config: GenerationConfig) -> None:
        self.snapshot = snapshot
        self.config = config
        self._strategies: list[Strategy] = []
        self._seen: set[str] = set()

    @property
    def tag(self) -> str:
        return self.snapshot.tag or "*"

    def attr(self, key: str) -> str | None:
        return self.snapshot.attr(key)

    def build(self) -> list[Strategy]:
        self._add_test_attribute_strategies()
        self._add_semantic_strategies()
        self._add_role_strategies()
        self._add_text_strategies()
        self._add_structure_strategies()
        self._add_attribute_combination_strategies()
        self._add_fallback_strategies()
        return list(self._strategies)

    def _add(
        self,
        kind: StrategyKind,
        selector: str,
        priority: int,
        description: str,
        reliability: float,
    ) -> None:
        if not selector or selector in self._seen:
            return
        self._seen.add(selector)
        self._strategies.append(
            Strategy(
                kind=kind,
                selector=selector,
                priority=priority,
                description=description,
                reliability=reliability,
            )
        )

    def _add_test_attribute_strategies(self) -> None:
        rows = (
            ("data-testid", 1, "Data test ID", 0.95),
            ("data-test", 2, "Data test attribute", 0.9),
            ("data-qa", 3, "Data QA attribute", 0.9),
            ("test-id", 4, "Test ID attribute", 0.85),
        )
        for attr, priority, description, reliability in rows:
            value = self.attr(attr)
            if value:
                self._add("data-testid", attribute_selector(attr, value), priority, description, reliability)

        element_id = self.snapshot.id
        if element_id and is_test_like_id(element_id):
            self._add("id", id_selector(element_id), 5, "Test-like ID", 0.8)

    def _add_semantic_strategies(self) -> None:
        element_id = self.snapshot.id
        if element_id and not is_test_like_id(element_id):
            self._add("id", id_selector(element_id), 6, "Element ID", 0.8)

        rows: tuple[tuple[str, StrategyKind, int, str, float], ...] = (
            ("aria-label", "aria-label", 7, "ARIA label", 0.75),
            ("aria-labelledby", "aria-label", 8, "ARIA labelledby", 0.7),
            ("name", "css", 9, "Name attribute", 0.75),
            ("for", "css", 10, "For attribute (labels)", 0.7),
        )
        for attr, kind, priority, description, reliability in rows:
            value = self.attr(attr)
            if value:
                self._add(kind, attribute_selector(attr, value), priority, description, reliability)

    def _add_role_strategies(self) -> None:
        role = self.attr("role")
        if role:
            self._add("role", attribute_selector("role", role), 11, "ARIA role", 0.6)

        for index, implicit in enumerate(implicit_roles(self.snapshot.tag, self.snapshot.attributes)):
            self._add("role", f"role={implicit}", min(12 + index, 15), f"Implicit role: {implicit}", 0.55)

    def _add_text_strategies(self) -> None:
        text = self.snapshot.text
        if not text or len(text) > MAX_TEXT_LENGTH:
            return

        self._add("text", exact_text_selector(text), 16, "Exact text content", 0.7)
        if len(text) > PARTIAL_TEXT_THRESHOLD:
            partial = text[:PARTIAL_TEXT_LENGTH]
            self._add("text", has_text_selector(partial, tag=self.tag), 17, "Partial text content", 0.6)
        self._add("text", has_text_selector(text, tag=self.tag), 18, "Tag with text content", 0.65)

        placeholder = self.attr("placeholder")
        if placeholder:
            self._add("css", attribute_selector("placeholder", placeholder), 19, "Placeholder text", 0.7)
        alt = self.attr("alt")
        if alt:
            self._add("css", attribute_selector("alt", alt), 20, "Alt text", 0.7)

    def _add_structure_strategies(self) -> None:
        best_class = select_best_class(self.snapshot.classes)
        if best_class:
            self._add("css", class_selector(best_class), 21, "Best class selector", 0.5)
            self._add("css", class_selector(best_class, tag=self.tag), 22, "Tag with class", 0.55)

        input_type = self.attr("type")
        if self.snapshot.tag == "input" and input_type:
            self._add("css", attribute_selector("type", input_type, tag="input"), 23, "Input type", 0.4)

        self._add("css", self.snapshot.tag, 24, "Tag name", 0.2)

        if self.config.include_css_path:
            css_path = self.snapshot.css_path or build_specificity_path(self.snapshot.ancestry)
            self._add("css", css_path, 25, "CSS path", 0.8)

    def _add_attribute_combination_strategies(self) -> None:
        for index, attr in enumerate(self.config.custom_attributes):
            value = self.attr(attr)
            if value:
                self._add("css", attribute_selector(attr, value), min(26 + index, 27), f"Custom attribute: {attr}", 0.6)

        tag = self.snapshot.tag
        value = self.attr("value")
        if value and tag in {"input", "button"}:
            self._add("css", attribute_selector("value", value, tag=tag), 28, "Tag with value", 0.6)
        href = self.attr("href")
        if href and tag == "a":
            self._add("css", attribute_selector("href", href, tag="a"), 29, "Link with href", 0.65)
        src = self.attr("src")
        if src and tag in {"img", "iframe"}:
            self._add("css", attribute_selector("src", src, tag=tag), 30, "Element with src", 0.6)

    def _add_fallback_strategies(self) -> None:
        if self.config.include_xpath:
            xpath = self.snapshot.xpath or build_position_path(self.snapshot.ancestry)
            # Exact for the captured DOM, breaks as soon as the structure shifts.
            self._add("xpath", xpath, 31, "XPath selector", 0.9)

        if self.config.fallback_to_position:
            box = self.snapshot.box
            selector = (
                f'//*[@{POSITION_ATTR_X}="{rounded_coordinate(box.x)}" '
                f'and @{POSITION_ATTR_Y}="{rounded_coordinate(box.y)}"]'
            )
            self._add("xpath", selector, 35, "Position-based fallback", 0.3)
