"""Unit tests for the automation API client and target tab resolution."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from apiprobe.discovery.automation.client import AutomationClient, _encode_query
from apiprobe.discovery.automation.tabs import (
    find_tab,
    is_automatable_url,
    resolve_target_tab,
    select_tab_by_pattern,
)
from apiprobe.discovery.errors import (
    AutomationHTTPError,
    AutomationNetworkError,
    TargetResolutionError,
)
from apiprobe.discovery.models.traffic import MarkerType


def _client(handler, token="secret") -> AutomationClient:
    return AutomationClient(
        base_url="http://relay.test",
        token=token,
        transport=httpx.MockTransport(handler),
    )


class TestQueryEncoding:
    """Test cases for query parameter encoding."""

    def test_drops_empty_and_expands_lists(self):
        params = _encode_query({
            "tabId": 3,
            "since": None,
            "urlPattern": "",
            "types": ["xhr", "fetch"],
            "includeMarkers": True,
            "includeFrame": False,
        })

        assert params == [
            ("tabId", "3"),
            ("types", "xhr"),
            ("types", "fetch"),
            ("includeMarkers", "true"),
            ("includeFrame", "false"),
        ]


class TestAutomationClient:
    """Test cases for the HTTP client."""

    @pytest.mark.asyncio
    async def test_auth_header_and_json_body(self):
        seen = {}

        def handler(request):
            seen["token"] = request.headers.get("X-Auth-Token")
            seen["body"] = json.loads(request.content)
            seen["path"] = request.url.path
            return httpx.Response(200, json={"success": True})

        async with _client(handler) as client:
            await client.click(5, "#go")

        assert seen["token"] == "secret"
        assert seen["path"] == "/api/browser/click"
        assert seen["body"] == {"tabId": 5, "selector": "#go", "mode": "human"}

    @pytest.mark.asyncio
    async def test_no_token_no_header(self):
        seen = {}

        def handler(request):
            seen["token"] = request.headers.get("X-Auth-Token")
            return httpx.Response(200, json={"tabs": []})

        async with _client(handler, token=None) as client:
            assert await client.list_tabs() == []

        assert seen["token"] is None

    @pytest.mark.asyncio
    async def test_retries_504_once_for_reads(self):
        responses = [httpx.Response(504), httpx.Response(200, json={"success": True})]
        calls = []

        def handler(request):
            calls.append(request)
            return responses[len(calls) - 1]

        with patch("apiprobe.discovery.automation.client.asyncio.sleep", new=AsyncMock()) as sleep:
            async with _client(handler) as client:
                result = await client.enable_capture(5)

        assert result == {"success": True}
        assert len(calls) == 2
        sleep.assert_awaited_once_with(0.2)

    @pytest.mark.asyncio
    async def test_mutating_calls_never_retry(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(504, json={"error": "gateway timeout"})

        async with _client(handler) as client:
            with pytest.raises(AutomationHTTPError) as exc_info:
                await client.click(5, "#pay")

        assert len(calls) == 1
        assert exc_info.value.status == 504
        assert str(exc_info.value) == "gateway timeout"

    @pytest.mark.asyncio
    async def test_http_error_with_text_body(self):
        def handler(request):
            return httpx.Response(401, text="unauthorized")

        async with _client(handler) as client:
            with pytest.raises(AutomationHTTPError) as exc_info:
                await client.list_tabs()

        assert exc_info.value.status == 401
        assert exc_info.value.body == {"message": "unauthorized"}

    @pytest.mark.asyncio
    async def test_network_errors(self):
        def refused(request):
            raise httpx.ConnectError("connection refused")

        def timed_out(request):
            raise httpx.ReadTimeout("too slow")

        async with _client(refused) as client:
            with pytest.raises(AutomationNetworkError) as exc_info:
                await client.list_tabs()
        assert isinstance(exc_info.value.cause, httpx.ConnectError)

        async with _client(timed_out) as client:
            with pytest.raises(AutomationNetworkError, match="timed out after 10000ms"):
                await client.list_tabs()

    @pytest.mark.asyncio
    async def test_empty_success_body(self):
        def handler(request):
            return httpx.Response(204)

        async with _client(handler) as client:
            assert await client.disable_capture(5) == {"success": True}

    @pytest.mark.asyncio
    async def test_fetch_requests_query(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"requests": [], "hasMore": False})

        async with _client(handler) as client:
            page = await client.fetch_requests(5, limit=100, offset=200)

        assert page == {"requests": [], "hasMore": False}
        assert seen["params"]["tabId"] == "5"
        assert seen["params"]["limit"] == "100"
        assert seen["params"]["offset"] == "200"
        assert seen["params"]["includeMarkers"] == "true"
        assert "since" not in seen["params"]

    @pytest.mark.asyncio
    async def test_marker_and_interactables_payloads(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            if request.url.path.endswith("/interactables"):
                return httpx.Response(200, json={"items": [{"selector": "#a"}]})
            return httpx.Response(200, json={"success": True})

        async with _client(handler) as client:
            await client.post_marker(5, MarkerType.ACTION_START, "action-1", {"phase": 1})
            items = await client.interactables(5, max_nodes=250)

        assert bodies[0] == {"tabId": 5, "markerType": "action-start", "label": "action-1", "meta": {"phase": 1}}
        assert bodies[1] == {"tabId": 5, "maxNodes": 250, "includeHidden": False}
        assert items == [{"selector": "#a"}]


class TestTabResolution:
    """Test cases for target tab resolution."""

    TABS = [
        {"id": 1, "url": "chrome://newtab", "active": False},
        {"id": 2, "url": "https://app.example.com/home", "active": False},
        {"id": 3, "url": "https://app.example.com/settings", "active": True},
        {"id": "bad", "url": "https://broken.example.com"},
    ]

    def _client(self):
        client = MagicMock()
        client.list_tabs = AsyncMock(return_value=list(self.TABS))
        return client

    def test_is_automatable_url(self):
        assert is_automatable_url("https://example.com")
        assert not is_automatable_url("chrome://settings")
        assert not is_automatable_url("about:blank")
        assert not is_automatable_url("")
        assert not is_automatable_url(None)

    def test_pattern_prefers_active_tab(self):
        assert select_tab_by_pattern(self.TABS[:3], r"app\.example")["id"] == 3
        assert select_tab_by_pattern(self.TABS[:3], "home")["id"] == 2
        assert select_tab_by_pattern(self.TABS[:3], "nothing") is None

    def test_invalid_pattern(self):
        with pytest.raises(TargetResolutionError):
            select_tab_by_pattern(self.TABS, "[bad")

    @pytest.mark.asyncio
    async def test_explicit_id_skips_listing(self):
        client = self._client()
        assert await resolve_target_tab(client, tab_id=42) == 42
        client.list_tabs.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_selectors(self):
        client = self._client()

        assert await resolve_target_tab(client, tab_url="home") == 2
        assert await resolve_target_tab(client, active=True) == 3
        assert await resolve_target_tab(client) == 1

    @pytest.mark.asyncio
    async def test_conflicting_selectors(self):
        with pytest.raises(TargetResolutionError, match="only one"):
            await resolve_target_tab(self._client(), tab_id=1, active=True)

    @pytest.mark.asyncio
    async def test_no_match_and_no_tabs(self):
        client = self._client()
        with pytest.raises(TargetResolutionError, match="No tab matched"):
            await resolve_target_tab(client, tab_url="nowhere")

        client.list_tabs = AsyncMock(return_value=[])
        with pytest.raises(TargetResolutionError, match="No tabs available"):
            await resolve_target_tab(client)

    @pytest.mark.asyncio
    async def test_find_tab(self):
        client = self._client()
        assert (await find_tab(client, 2))["url"] == "https://app.example.com/home"
        assert await find_tab(client, 99) is None
