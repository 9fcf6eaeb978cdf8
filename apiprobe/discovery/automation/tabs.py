"""Target tab resolution for discovery runs."""

import logging
import re
from typing import Any, Dict, List, Optional

from ..errors import TargetResolutionError

logger = logging.getLogger(__name__)

NON_AUTOMATABLE_PREFIXES = (
    'chrome://',
    'chrome-extension://',
    'edge://',
    'about:',
    'devtools://',
)


def is_tab_candidate(tab: Any) -> bool:
    return isinstance(tab, dict) and isinstance(tab.get('id'), int) and not isinstance(tab.get('id'), bool)


def is_automatable_url(url: Optional[str]) -> bool:
    """Internal browser and extension pages cannot be scripted."""
    if not url:
        return False
    return not url.lower().startswith(NON_AUTOMATABLE_PREFIXES)


def select_tab_by_pattern(tabs: List[Dict[str, Any]], raw_pattern: str) -> Optional[Dict[str, Any]]:
    """Pick the tab whose URL matches a regex, preferring the active tab."""
    try:
        regex = re.compile(raw_pattern, re.IGNORECASE)
    except re.error:
        raise TargetResolutionError("Tab URL pattern must be a valid regular expression")

    for tab in tabs:
        if tab.get('active') and regex.search(tab.get('url') or ''):
            return tab
    for tab in tabs:
        if regex.search(tab.get('url') or ''):
            return tab
    return None


async def resolve_target_tab(
    client,
    tab_id: Optional[int] = None,
    tab_url: Optional[str] = None,
    active: bool = False,
) -> int:
    """Resolve the tab a run should drive.

    At most one selector may be given: an explicit tab id, a URL regex, or
    the active tab. With none, the first listed tab is used.

    Raises:
        TargetResolutionError: If selectors conflict or no tab matches
    """
    selectors = sum([tab_id is not None, bool(tab_url), bool(active)])
    if selectors > 1:
        raise TargetResolutionError("Use only one of tab id, tab URL pattern, or active tab")

    if tab_id is not None:
        return tab_id

    tabs = [tab for tab in await client.list_tabs() if is_tab_candidate(tab)]
    if not tabs:
        raise TargetResolutionError("No tabs available. Open a tab and try again.")

    if tab_url:
        selected = select_tab_by_pattern(tabs, tab_url)
        if selected is None:
            raise TargetResolutionError(f"No tab matched URL pattern: {tab_url}")
        return selected['id']

    if active:
        selected = next((tab for tab in tabs if tab.get('active')), tabs[0])
        return selected['id']

    return tabs[0]['id']


async def find_tab(client, tab_id: int) -> Optional[Dict[str, Any]]:
    """Look up a tab's listing entry by id."""
    for tab in await client.list_tabs():
        if is_tab_candidate(tab) and tab['id'] == tab_id:
            return tab
    return None
