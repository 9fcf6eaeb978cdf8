"""Redaction of volatile and sensitive values in captured traffic.

Replay templates must not leak credentials and should not pin replays to
one-off identifiers. Values are rewritten with stable ``{{placeholder}}``
markers; sensitive headers are replaced wholesale by a named placeholder.
"""

import re
from typing import Optional


# Applied in order. Broader shapes run before the generic digit rule,
# otherwise a timestamp or id would be partially consumed as a number.
REDACTION_RULES = (
    ('jwt', re.compile(r'[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+')),
    ('uuid', re.compile(r'[0-9a-f]{8}-[0-9a-f-]{27,}', re.IGNORECASE)),
    ('hex', re.compile(r'[0-9a-f]{24,}', re.IGNORECASE)),
    ('timestamp', re.compile(r'\b\d{10,}\b')),
    ('number', re.compile(r'\b\d+\b')),
)

SENSITIVE_HEADERS = frozenset({'cookie', 'authorization', 'x-auth-token', 'set-cookie'})

_PLACEHOLDER_NAME_RE = re.compile(r'[^a-z0-9]+')


def redact_dynamic_value(value: Optional[str]) -> Optional[str]:
    """Replace tokens, ids, timestamps and numbers with placeholders.

    Example:
        >>> redact_dynamic_value("507f1f77bcf86cd799439011-1700000000000")
        "{{hex}}-{{timestamp}}"
    """
    if not value:
        return value
    output = str(value)
    for name, pattern in REDACTION_RULES:
        output = pattern.sub('{{' + name + '}}', output)
    return output


def header_placeholder(name: str) -> str:
    """Named placeholder for a sensitive header, e.g. ``{{x_auth_token}}``."""
    return '{{' + _PLACEHOLDER_NAME_RE.sub('_', name.lower()) + '}}'


def is_sensitive_header(name: str) -> bool:
    return name.lower() in SENSITIVE_HEADERS


def redact_header_value(name: str, value: Optional[str]) -> Optional[str]:
    """Redact one header value, hiding credentials behind a named placeholder."""
    if is_sensitive_header(name):
        return header_placeholder(name)
    return redact_dynamic_value(value)
