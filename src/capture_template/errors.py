"""Exception hierarchy raised by the capture pipeline."""

from __future__ import annotations


class CaptureError(RuntimeError):
    """Base class for every error raised while expanding, serving or capturing a template."""


class TemplateNotFoundError(CaptureError):
    """Raised when the template directory does not exist."""


class ConfigNotFoundError(CaptureError):
    """Raised when the template configuration file is missing or unreadable."""


class ConfigInvalidError(CaptureError):
    """Raised when the template configuration is malformed."""


class UsageError(CaptureError):
    """Raised when an operation is invoked out of order."""


class ServerBindError(CaptureError):
    """Raised when the asset server cannot bind or start listening."""


class AssetNotFoundError(CaptureError):
    """Raised when a requested path is not part of the expanded template."""


class BrowserLaunchError(CaptureError):
    """Raised when the headless browser fails to launch."""


class NavigationTimeoutError(CaptureError):
    """Raised when the page does not finish loading in time."""


class WaitTimeoutError(CaptureError):
    """Raised when the wait selector never appears in the DOM."""


class EvaluationError(CaptureError):
    """Raised when an in-page measurement script fails."""


class BrowserCrashError(CaptureError):
    """Raised when the browser process terminates unexpectedly."""


class TestDataNotFoundError(CaptureError):
    """Raised when a template directory has no test data file."""

    __test__ = False


__all__ = [
    "CaptureError",
    "TemplateNotFoundError",
    "ConfigNotFoundError",
    "ConfigInvalidError",
    "UsageError",
    "ServerBindError",
    "AssetNotFoundError",
    "BrowserLaunchError",
    "NavigationTimeoutError",
    "WaitTimeoutError",
    "EvaluationError",
    "BrowserCrashError",
    "TestDataNotFoundError",
]
