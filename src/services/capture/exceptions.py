"""Domain exceptions for the page capture pipeline.

Capture errors never escape the capture boundary: `CaptureService` turns them
into error documents. Each exception carries a stable `error_code` used for
logging and for choosing the guidance text shown to the user.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class CaptureError(Exception):
    """Base class for capture domain errors."""

    message: str
    error_code: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.error_code}: {self.message}"


class LaunchError(CaptureError):
    """The headless browser could not be started in this environment."""

    def __init__(self, message: str = "Headless browser failed to launch") -> None:
        super().__init__(message=message, error_code="launch_failed")


class NavigationError(CaptureError):
    """Navigation timed out or failed at the network level."""

    def __init__(self, message: str = "Page navigation failed") -> None:
        super().__init__(message=message, error_code="navigation_failed")
