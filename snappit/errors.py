"""Exceptions raised by snappit.

Playwright errors raised by the browser are never wrapped: a failed script
evaluation, scroll or screenshot reaches the caller as the original error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from snappit.models.comparison import ComparisonResult


class SnappitError(Exception):
    """Base class for snappit errors."""


class NoSessionError(SnappitError):
    def __init__(self, message: str = "You must call 'await Snappit(config).start()' before invoking this method."):
        super().__init__(message)


class ElementNotFoundError(SnappitError):
    def __init__(self, selector: str):
        self.selector = selector
        super().__init__(f"No element matches selector '{selector}'")


class CaptureError(SnappitError):
    """An element could not be composited into a screenshot."""


class EmptyElementError(CaptureError):
    """The element has no area to capture."""


class ScreenshotError(SnappitError):
    """A comparison outcome that the configured policy turns into an error."""

    def __init__(self, result: ComparisonResult, path: str = ""):
        self.result = result
        self.path = path
        message = result.message
        if path:
            message = f"{message} ({path})"
        super().__init__(message)


class NoBaselineError(ScreenshotError):
    """No previous screenshot was found."""


class SizeMismatchError(ScreenshotError):
    """Screenshots differ with respect to dimension."""


class ScreenshotMismatchError(ScreenshotError):
    """Screenshots do not match within threshold."""
