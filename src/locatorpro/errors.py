from __future__ import annotations


class LocatorProError(RuntimeError):
    """Base class for locator generation failures."""


class NoMatchFound(LocatorProError):
    """Raised when a text scan produces no candidate elements."""

    def __init__(self, message: str, *, stage: str) -> None:
        super().__init__(message)
        self.stage = stage


class EmptyStrategyList(LocatorProError):
    """Raised when a composite locator is requested without strategies."""


class InvalidStrategyExecution(LocatorProError):
    """Raised when the document layer rejects a single strategy."""

    def __init__(self, selector: str, reason: str) -> None:
        super().__init__(f"Strategy {selector!r} failed: {reason}")
        self.selector = selector
        self.reason = reason


class ElementNotFound(LocatorProError):
    """Raised when an existing locator no longer resolves to an element."""
