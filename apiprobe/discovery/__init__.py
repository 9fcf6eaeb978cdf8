"""API discovery engine.

Drives a controlled, budget-limited exploration of a web application in a
browser tab through the browser automation API, captures the resulting
network traffic, and turns it into replayable API artifacts.
"""

from .config import (
    CaptureMode,
    ConnectionSettings,
    DiscoveryConfig,
    DiscoveryConfigManager,
    DiscoveryOptions,
)
from .errors import (
    AutomationError,
    AutomationHTTPError,
    AutomationNetworkError,
    CaptureEnableError,
    ConfigurationError,
    DiscoveryError,
    DiscoveryRunError,
    InvalidStateTransition,
    TargetResolutionError,
)
from .orchestrator import DiscoveryOrchestrator
from .scheduler import ActionScheduler, RunStateMachine

__all__ = [
    # Configuration
    'CaptureMode',
    'ConnectionSettings',
    'DiscoveryConfig',
    'DiscoveryConfigManager',
    'DiscoveryOptions',

    # Errors
    'AutomationError',
    'AutomationHTTPError',
    'AutomationNetworkError',
    'CaptureEnableError',
    'ConfigurationError',
    'DiscoveryError',
    'DiscoveryRunError',
    'InvalidStateTransition',
    'TargetResolutionError',

    # Run control
    'ActionScheduler',
    'DiscoveryOrchestrator',
    'RunStateMachine',
]
