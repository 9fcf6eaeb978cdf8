"""Scope filtering for captured requests.

Decides which captured requests belong to the target application, based on
the target tab URL, a scope mode and include/exclude host patterns.
"""

import re
from enum import Enum
from typing import List, Optional
from urllib.parse import urlparse

from .path_normalizer import get_registrable_domain


class ScopeMatcherError(Exception):
    """Raised when scope matcher encounters an error."""
    pass


class ScopeMode(str, Enum):
    """How far from the target tab a request may be and still count."""
    FIRST_PARTY = "first-party"   # Same registrable domain as the tab
    ORIGIN = "origin"             # Same hostname as the tab
    ALL = "all"                   # Every request with a host


def _hostname(url: str) -> str:
    try:
        return (urlparse(url).hostname or '').lower()
    except ValueError:
        return ''


class ScopeMatcher:
    """Host-based scope matcher for captured requests.

    The matcher applies the following logic, in order:
    1. Requests without a parseable host are out of scope
    2. A request whose host matches any exclude pattern is out of scope
    3. A request whose host matches any include pattern is in scope
    4. Otherwise the scope mode decides, relative to the tab URL

    Exclude patterns always take precedence over include patterns.
    """

    def __init__(
        self,
        tab_url: Optional[str],
        scope: ScopeMode = ScopeMode.FIRST_PARTY,
        include_hosts: Optional[List[str]] = None,
        exclude_hosts: Optional[List[str]] = None,
    ):
        """Initialize the scope matcher.

        Args:
            tab_url: URL of the target tab, the reference for scope modes
            scope: Scope mode applied when no host pattern decides
            include_hosts: Regex patterns for hosts always in scope
            exclude_hosts: Regex patterns for hosts never in scope

        Raises:
            ScopeMatcherError: If host patterns are invalid regexes
        """
        self.scope = ScopeMode(scope)
        self._include_patterns = self._compile(include_hosts, "include")
        self._exclude_patterns = self._compile(exclude_hosts, "exclude")
        self._tab_host = _hostname(tab_url) if tab_url else ''

    @staticmethod
    def _compile(patterns: Optional[List[str]], kind: str) -> List[re.Pattern]:
        compiled = []
        for pattern in patterns or []:
            try:
                compiled.append(re.compile(pattern, re.IGNORECASE))
            except re.error as e:
                raise ScopeMatcherError(f"Invalid {kind} host pattern '{pattern}': {e}")
        return compiled

    def is_in_scope(self, url: str) -> bool:
        """Check if a request URL is within the configured scope."""
        host = _hostname(url)
        if not host:
            return False

        for pattern in self._exclude_patterns:
            if pattern.search(host):
                return False

        for pattern in self._include_patterns:
            if pattern.search(host):
                return True

        if not self._tab_host or self.scope == ScopeMode.ALL:
            return True
        if self.scope == ScopeMode.ORIGIN:
            return host == self._tab_host

        request_domain = get_registrable_domain(host)
        tab_domain = get_registrable_domain(self._tab_host)
        return bool(request_domain) and request_domain == tab_domain

