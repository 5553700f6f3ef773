"""Self-healing element locators for Playwright pages."""

from __future__ import annotations

from .composite import CompositeLocator, build_composite_locator
from .errors import (
    ElementNotFound,
    EmptyStrategyList,
    InvalidStrategyExecution,
    LocatorProError,
    NoMatchFound,
)
from .locator_engine import LocatorEngine, build_locator_result
from .models import (
    ElementSnapshot,
    GenerationConfig,
    LocatorResult,
    RelatedTextWeights,
    ScoringWeights,
    Strategy,
    StrategyDebugInfo,
)
from .smart_locator import SmartLocator
from .strategy_generator import generate_strategies

__version__ = "0.1.0"

__all__ = [
    "CompositeLocator",
    "ElementNotFound",
    "ElementSnapshot",
    "EmptyStrategyList",
    "GenerationConfig",
    "InvalidStrategyExecution",
    "LocatorEngine",
    "LocatorProError",
    "LocatorResult",
    "NoMatchFound",
    "RelatedTextWeights",
    "ScoringWeights",
    "SmartLocator",
    "Strategy",
    "StrategyDebugInfo",
    "build_composite_locator",
    "build_locator_result",
    "generate_strategies",
]
