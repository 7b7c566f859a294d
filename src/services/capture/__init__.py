"""Page capture: headless rendering, content selection and sanitization."""

from .exceptions import CaptureError, LaunchError, NavigationError
from .pipeline import CaptureResult, CaptureService


__all__ = [
    "CaptureError",
    "CaptureResult",
    "CaptureService",
    "LaunchError",
    "NavigationError",
]
