"""URL path templating for endpoint clustering.

This module turns concrete request URLs into path templates by replacing
volatile path segments (numeric ids, UUIDs, hex object ids, opaque tokens)
with typed placeholders, so that requests for different resources of the
same endpoint collapse onto one template.
"""

import re
from typing import Optional
from urllib.parse import urlparse


# Ordered, first match wins: a numeric segment also matches the looser
# token rule, so digits must be tested first.
SEGMENT_RULES = (
    (re.compile(r'^\d+$'), '{id}'),
    (re.compile(r'^[0-9a-f]{8}-[0-9a-f-]{27,}$', re.IGNORECASE), '{uuid}'),
    (re.compile(r'^[0-9a-f]{24,}$', re.IGNORECASE), '{hex}'),
    (re.compile(r'^[A-Za-z0-9_-]{20,}$'), '{token}'),
)

_IPV4_RE = re.compile(r'^\d+\.\d+\.\d+\.\d+$')
_SECOND_LEVEL_LABELS = {'co', 'com', 'org', 'net', 'gov', 'edu'}


def normalize_segment(segment: str) -> str:
    """Return the placeholder for a volatile segment, or the segment itself."""
    if not segment:
        return segment
    for pattern, placeholder in SEGMENT_RULES:
        if pattern.match(segment):
            return placeholder
    return segment


def normalize_path(path: str) -> str:
    """Replace volatile segments of a URL path with typed placeholders.

    Example:
        >>> normalize_path("/users/12345/posts/9f1b6c8e-3b1a-4c2d-8e9f-0a1b2c3d4e5f")
        "/users/{id}/posts/{uuid}"
    """
    return '/'.join(normalize_segment(segment) for segment in path.split('/'))


def normalize_url_path(url: str) -> str:
    """Normalize the path of an absolute URL.

    URLs that cannot be parsed as absolute http(s)-style URLs are returned
    unchanged so they still form their own cluster.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    if not parsed.scheme or not parsed.netloc:
        return url
    return normalize_path(parsed.path or '/')


def get_origin(url: str) -> Optional[str]:
    """Extract scheme://netloc from a URL, or None if it has neither."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def get_registrable_domain(hostname: str) -> str:
    """Approximate the registrable domain (eTLD+1) of a hostname.

    Handles two-letter country TLDs behind a common second-level label
    (``co.uk``, ``com.au``). IPv4 addresses are returned unchanged.

    Examples:
        >>> get_registrable_domain("api.example.com")
        "example.com"
        >>> get_registrable_domain("shop.example.co.uk")
        "example.co.uk"
    """
    host = (hostname or '').lower()
    if not host or _IPV4_RE.match(host):
        return host

    parts = [part for part in host.split('.') if part]
    if len(parts) <= 2:
        return host

    last, second_last = parts[-1], parts[-2]
    if len(last) == 2 and second_last in _SECOND_LEVEL_LABELS:
        return '.'.join(parts[-3:])
    return '.'.join(parts[-2:])
