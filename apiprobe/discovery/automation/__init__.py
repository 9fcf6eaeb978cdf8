"""Browser automation API boundary."""

from .client import AutomationClient, DEFAULT_BASE_URL, DEFAULT_TIMEOUT_MS
from .tabs import find_tab, is_automatable_url, resolve_target_tab, select_tab_by_pattern

__all__ = [
    'AutomationClient',
    'DEFAULT_BASE_URL',
    'DEFAULT_TIMEOUT_MS',
    'find_tab',
    'is_automatable_url',
    'resolve_target_tab',
    'select_tab_by_pattern',
]
