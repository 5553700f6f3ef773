from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal, Mapping

StrategyKind = Literal["id", "data-testid", "aria-label", "text", "role", "css", "xpath"]
MatchType = Literal["exact", "partial"]

logger = logging.getLogger("locatorpro.config")

_OPTION_ALIASES = {
    "maxStrategies": "max_strategies",
    "includeXPath": "include_xpath",
    "includeCssPath": "include_css_path",
    "prioritizeTestAttributes": "prioritize_test_attributes",
    "fallbackToPosition": "fallback_to_position",
    "customAttributes": "custom_attributes",
}


@dataclass(frozen=True, slots=True)
class BoundingBox:
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


@dataclass(frozen=True, slots=True)
class AncestorStep:
    tag: str
    id: str | None = None
    child_index: int = 1
    type_index: int = 1


@dataclass(frozen=True, slots=True)
class ElementSnapshot:
    """Capture of one element: attributes, text, geometry and ancestry.

    ``ancestry`` runs from the element itself up to the document root.
    ``attributes`` is stored as a read-only mapping so a snapshot cannot be
    altered after capture.
    """

    tag: str
    id: str | None = None
    class_name: str | None = None
    text: str | None = None
    attributes: Mapping[str, str] = field(default_factory=dict)
    box: BoundingBox = field(default_factory=BoundingBox)
    xpath: str | None = None
    css_path: str | None = None
    ancestry: tuple[AncestorStep, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "tag", (self.tag or "").strip().lower())
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))
        object.__setattr__(self, "ancestry", tuple(self.ancestry))

    def attr(self, key: str) -> str | None:
        value = self.attributes.get(key)
        if value is None:
            return None
        return str(value) or None

    @property
    def classes(self) -> list[str]:
        return [item for item in (self.class_name or "").split() if item]


@dataclass(slots=True)
class Strategy:
    kind: StrategyKind
    selector: str
    priority: int
    description: str
    reliability: float | None = None
    is_unique: bool | None = None
    match_count: int | None = None


@dataclass(frozen=True, slots=True)
class GenerationConfig:
    max_strategies: int = 10
    include_xpath: bool = True
    include_css_path: bool = True
    # Accepted for compatibility; ordering is fixed by the tier scheme.
    prioritize_test_attributes: bool = True
    fallback_to_position: bool = False
    custom_attributes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if int(self.max_strategies) < 0:
            raise ValueError("max_strategies must be zero or a positive integer.")
        object.__setattr__(self, "max_strategies", int(self.max_strategies))
        object.__setattr__(
            self,
            "custom_attributes",
            tuple(str(item).strip() for item in self.custom_attributes if str(item).strip()),
        )

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None = None) -> GenerationConfig:
        values: dict[str, Any] = {}
        for key, value in (options or {}).items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in cls.__dataclass_fields__:
                logger.warning("Ignoring unknown locator option: %s", key)
                continue
            if value is None:
                continue
            values[name] = value
        return cls(**values)


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    visible: float = 30.0
    interactive: float = 25.0
    test_attribute: float = 40.0
    has_id: float = 20.0
    exact_match: float = 15.0
    reasonable_size: float = 10.0
    clickable_tag: float = 20.0
    oversized_penalty: float = 15.0
    min_width: float = 20.0
    min_height: float = 10.0
    max_width: float = 800.0
    max_height: float = 600.0


@dataclass(frozen=True, slots=True)
class RelatedTextWeights:
    unique_anchor: float = 100.0
    short_container: float = 80.0
    medium_container: float = 60.0
    long_container: float = 40.0
    short_limit: int = 500
    medium_limit: int = 1000
    visible: float = 20.0
    interactive: float = 10.0


@dataclass(slots=True)
class ScoredCandidate:
    tag: str
    id: str | None
    class_name: str | None
    text: str
    value: str
    attributes: dict[str, str] = field(default_factory=dict)
    box: BoundingBox = field(default_factory=BoundingBox)
    is_visible: bool = False
    is_interactive: bool = False
    has_test_id: bool = False
    matched_text: str = ""
    match_type: MatchType = "partial"
    score: float = 0.0
    scan_index: int = 0


@dataclass(frozen=True, slots=True)
class ContainerInfo:
    tag: str
    class_name: str | None
    text: str
    depth: int


@dataclass(slots=True)
class RelatedCandidate:
    tag: str
    id: str | None
    class_name: str | None
    text: str
    value: str
    target_text: str
    related_text: str
    attributes: dict[str, str] = field(default_factory=dict)
    is_visible: bool = False
    is_interactive: bool = False
    ancestors: list[ContainerInfo] = field(default_factory=list)
    container: ContainerInfo | None = None
    specificity: float = 0.0
    score: float = 0.0
    scan_index: int = 0


@dataclass(slots=True)
class LocatorResult:
    strategies: list[Strategy]
    primary_selector: str
    confidence: float
    snapshot: ElementSnapshot


@dataclass(slots=True)
class StrategyDebugInfo:
    all_strategies: list[Strategy]
    valid_strategies: list[Strategy]
    recommended_selector: str
