"""Exception hierarchy for the discovery engine.

Fatal errors abort a run (after cleanup), per-action errors are recorded
and the run continues, and best-effort calls never raise past their caller.
"""

from typing import Any, Optional


class DiscoveryError(Exception):
    """Base class for all discovery engine errors."""
    pass


class ConfigurationError(DiscoveryError):
    """Raised when discovery options or config files are invalid."""
    pass


class AutomationError(DiscoveryError):
    """Raised when a call to the browser automation API fails."""
    pass


class AutomationHTTPError(AutomationError):
    """The automation API answered with a non-success status."""

    def __init__(self, message: str, status: int, body: Any = None):
        super().__init__(message)
        self.status = status
        self.body = body


class AutomationNetworkError(AutomationError):
    """The automation API could not be reached or timed out."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class TargetResolutionError(DiscoveryError):
    """No usable target tab could be resolved for the run."""
    pass


class CaptureEnableError(DiscoveryError):
    """Network capture could not be enabled on the target tab."""
    pass


class InvalidStateTransition(DiscoveryError):
    """Raised when the run state machine is asked to move backwards."""
    pass


class DiscoveryRunError(DiscoveryError):
    """A discovery run aborted.

    Carries the failed run summary (``success`` is False) so callers can
    still report what happened before the abort.
    """

    def __init__(self, message: str, summary: Any = None):
        super().__init__(message)
        self.summary = summary
