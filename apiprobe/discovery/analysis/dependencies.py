"""Authentication and session dependency inference from captured traffic."""

import logging
import re
from typing import Sequence

from ..models.traffic import (
    AuthSignals,
    CapturedRequest,
    DependencyReport,
    RefreshChain,
    TokenEndpoint,
)

logger = logging.getLogger(__name__)

AUTH_HEADERS = frozenset({'authorization', 'cookie', 'x-auth-token'})

AUTH_URL_RE = re.compile(r'auth|login|session|token|refresh', re.IGNORECASE)
TOKEN_ENDPOINT_RE = re.compile(r'token|login|refresh|session|auth', re.IGNORECASE)
REFRESH_SOURCE_RE = re.compile(r'refresh|token|session', re.IGNORECASE)


def looks_like_auth_request(request: CapturedRequest) -> bool:
    """A request is auth-related if it carries credentials or hits an auth URL."""
    if any(name.lower() in AUTH_HEADERS for name in request.request_headers):
        return True
    return bool(AUTH_URL_RE.search(request.url))


def is_token_endpoint(request: CapturedRequest) -> bool:
    return bool(TOKEN_ENDPOINT_RE.search(request.url))


def infer_dependencies(requests: Sequence[CapturedRequest]) -> DependencyReport:
    """Derive auth signals, token endpoints and refresh chains.

    A refresh chain is a pair of consecutive requests (in collection order)
    where the first hits a refresh/token/session URL and the second is
    itself auth-looking.
    """
    auth_request_count = sum(1 for request in requests if looks_like_auth_request(request))

    token_endpoints = [
        TokenEndpoint(method=request.method, url=request.url, status=request.status)
        for request in requests
        if is_token_endpoint(request)
    ]

    refresh_chains = []
    for previous, current in zip(requests, requests[1:]):
        if REFRESH_SOURCE_RE.search(previous.url) and looks_like_auth_request(current):
            refresh_chains.append(RefreshChain(from_url=previous.url, to_url=current.url))

    report = DependencyReport(
        auth_signals=AuthSignals(
            auth_request_count=auth_request_count,
            token_endpoint_count=len(token_endpoints),
            likely_authenticated_session=auth_request_count > 0,
        ),
        token_endpoints=token_endpoints,
        refresh_chains=refresh_chains,
    )
    logger.debug(
        f"Dependency inference: {auth_request_count} auth requests, "
        f"{len(token_endpoints)} token endpoints, {len(refresh_chains)} refresh chains"
    )
    return report
