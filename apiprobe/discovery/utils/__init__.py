"""Discovery utilities package."""

from .path_normalizer import normalize_path, normalize_url_path, get_origin, get_registrable_domain
from .redaction import redact_dynamic_value, redact_header_value, is_sensitive_header
from .scope_matcher import ScopeMatcher, ScopeMatcherError, ScopeMode

__all__ = [
    'normalize_path',
    'normalize_url_path',
    'get_origin',
    'get_registrable_domain',
    'redact_dynamic_value',
    'redact_header_value',
    'is_sensitive_header',
    'ScopeMatcher',
    'ScopeMatcherError',
    'ScopeMode'
]
