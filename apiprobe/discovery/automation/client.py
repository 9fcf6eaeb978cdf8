"""HTTP client for the remote browser automation API.

The automation API brokers requests to a browser extension that executes
page actions and records network traffic. Every call is one-shot JSON over
HTTP. Calls that act on the page are sent with zero automatic retries,
because submitting a side-effecting action twice is worse than failing once.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..errors import AutomationHTTPError, AutomationNetworkError
from ..models.traffic import MarkerType

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8129"
DEFAULT_TIMEOUT_MS = 10000
RETRY_504_BACKOFF_SECONDS = 0.2


def _encode_query(query: Optional[Dict[str, Any]]) -> List[tuple]:
    """Encode query parameters, dropping empty values and expanding lists."""
    params = []
    for key, value in (query or {}).items():
        if value is None or value == '':
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        for item in values:
            if item is None:
                continue
            if isinstance(item, bool):
                item = 'true' if item else 'false'
            params.append((key, str(item)))
    return params


class AutomationClient:
    """Async client for the browser automation API."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Root URL of the automation API relay
            token: Auth token sent as ``X-Auth-Token``
            timeout_ms: Per-request timeout in milliseconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.timeout_ms = timeout_ms
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout=timeout_ms / 1000.0),
            transport=transport,
        )

    async def __aenter__(self) -> "AutomationClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        query: Optional[Dict[str, Any]] = None,
        body: Any = None,
        retry_504: int = 1,
        omit_auth: bool = False,
    ) -> Any:
        """Send one request and return the decoded JSON payload.

        Raises:
            AutomationHTTPError: On a non-success status
            AutomationNetworkError: On timeouts and transport failures
        """
        if not path.startswith('/'):
            path = f"/{path}"

        headers = {"Accept": "application/json"}
        if self.token and not omit_auth:
            headers["X-Auth-Token"] = self.token

        attempt = 0
        while True:
            try:
                response = await self.client.request(
                    method,
                    path,
                    params=_encode_query(query),
                    json=body,
                    headers=headers,
                )
            except httpx.TimeoutException as e:
                raise AutomationNetworkError(f"Request timed out after {self.timeout_ms}ms", e)
            except httpx.RequestError as e:
                raise AutomationNetworkError("Network request failed", e)

            parsed = self._parse_body(response)

            if response.is_success:
                return parsed if parsed is not None else {"success": True}

            if response.status_code == 504 and attempt < retry_504:
                attempt += 1
                logger.debug(f"{method} {path} returned 504, retrying (attempt {attempt})")
                await asyncio.sleep(RETRY_504_BACKOFF_SECONDS * attempt)
                continue

            message = None
            if isinstance(parsed, dict):
                message = parsed.get('error') or parsed.get('message')
            raise AutomationHTTPError(
                message or f"HTTP {response.status_code}",
                response.status_code,
                parsed,
            )

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        content_type = response.headers.get('content-type', '')
        if 'application/json' in content_type:
            try:
                return response.json()
            except ValueError:
                return None
        text = response.text
        return {"message": text} if text else None

    async def get(self, path: str, query: Optional[Dict[str, Any]] = None, retry_504: int = 1) -> Any:
        return await self.request("GET", path, query=query, retry_504=retry_504)

    async def post(self, path: str, body: Any = None, retry_504: int = 1) -> Any:
        return await self.request("POST", path, body=body, retry_504=retry_504)

    # Tabs and navigation

    async def list_tabs(self) -> List[Dict[str, Any]]:
        result = await self.get("/api/browser/tabs", retry_504=0)
        tabs = result.get('tabs') if isinstance(result, dict) else None
        return tabs if isinstance(tabs, list) else []

    async def navigate(self, tab_id: int, url: str) -> Any:
        return await self.post("/api/browser/navigate", {"tabId": tab_id, "url": url}, retry_504=0)

    # Capture lifecycle

    async def enable_capture(
        self,
        tab_id: int,
        mode: str = "full",
        max_requests: Optional[int] = None,
        url_filter: Optional[str] = None,
    ) -> Any:
        body: Dict[str, Any] = {
            "tabId": tab_id,
            "mode": mode,
            "captureBody": mode == "full",
        }
        if max_requests is not None:
            body["maxRequests"] = max_requests
        if url_filter:
            body["urlFilter"] = [url_filter]
        return await self.post("/api/browser/debugger/enable", body)

    async def disable_capture(self, tab_id: int) -> Any:
        return await self.post("/api/browser/debugger/disable", {"tabId": tab_id}, retry_504=0)

    async def fetch_requests(
        self,
        tab_id: int,
        limit: int = 5000,
        offset: int = 0,
        since: Optional[float] = None,
        until: Optional[float] = None,
        url_pattern: Optional[str] = None,
        resource_type: Optional[str] = None,
        marker_id: Optional[str] = None,
        include_markers: bool = True,
        include_initiator: bool = True,
        include_frame: bool = True,
    ) -> Dict[str, Any]:
        """Fetch one page of the capture buffer."""
        result = await self.get(
            "/api/browser/debugger/requests",
            query={
                "tabId": tab_id,
                "limit": limit,
                "offset": offset,
                "since": since,
                "until": until,
                "urlPattern": url_pattern,
                "resourceType": resource_type,
                "markerId": marker_id,
                "includeMarkers": include_markers,
                "includeInitiator": include_initiator,
                "includeFrame": include_frame,
            },
            retry_504=0,
        )
        return result if isinstance(result, dict) else {}

    async def post_marker(
        self,
        tab_id: int,
        marker_type: MarkerType,
        label: str,
        meta: Optional[Dict[str, Any]] = None,
    ) -> Any:
        return await self.post(
            "/api/browser/debugger/mark",
            {
                "tabId": tab_id,
                "markerType": MarkerType(marker_type).value,
                "label": label,
                "meta": meta or {},
            },
            retry_504=0,
        )

    # Page inventory and element actions

    async def interactables(
        self,
        tab_id: int,
        max_nodes: int,
        include_hidden: bool = False,
        root_selector: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        body: Dict[str, Any] = {
            "tabId": tab_id,
            "maxNodes": max_nodes,
            "includeHidden": include_hidden,
        }
        if root_selector:
            body["rootSelector"] = root_selector
        result = await self.post("/api/browser/interactables", body, retry_504=0)
        items = result.get('items') if isinstance(result, dict) else None
        return items if isinstance(items, list) else []

    async def hover(self, tab_id: int, selector: str) -> Any:
        return await self.post("/api/browser/hover", {"tabId": tab_id, "selector": selector}, retry_504=0)

    async def click(self, tab_id: int, selector: str, mode: str = "human") -> Any:
        return await self.post(
            "/api/browser/click",
            {"tabId": tab_id, "selector": selector, "mode": mode},
            retry_504=0,
        )

    async def type_text(
        self,
        tab_id: int,
        selector: str,
        text: str,
        clear: bool = True,
        delay_ms: int = 25,
    ) -> Any:
        return await self.post(
            "/api/browser/type",
            {"tabId": tab_id, "selector": selector, "text": text, "clear": clear, "delayMs": delay_ms},
            retry_504=0,
        )

    async def press_key(self, tab_id: int, key: str, modifiers: Optional[List[str]] = None) -> Any:
        return await self.post(
            "/api/browser/key",
            {"tabId": tab_id, "key": key, "modifiers": modifiers or []},
            retry_504=0,
        )
