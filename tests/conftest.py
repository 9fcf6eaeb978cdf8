"""Shared test fixtures and configuration for apiprobe tests."""

import pytest
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from apiprobe.discovery.config import DiscoveryOptions
from apiprobe.discovery.models.traffic import CapturedRequest


class FakeAutomationClient:
    """In-memory stand-in for the browser automation API.

    Records every call in ``calls`` as ``(name, kwargs)``. Any method name
    listed in ``failures`` raises the mapped exception instead of answering.
    """

    def __init__(
        self,
        tabs: Optional[List[Dict[str, Any]]] = None,
        items: Optional[List[Dict[str, Any]]] = None,
        requests: Optional[List[Dict[str, Any]]] = None,
        markers: Optional[List[Dict[str, Any]]] = None,
        failures: Optional[Dict[str, Exception]] = None,
    ):
        self.tabs = tabs if tabs is not None else [
            {"id": 7, "url": "https://app.example.com/dashboard", "active": True},
        ]
        self.items = items or []
        self.requests = requests or []
        self.markers = markers or []
        self.failures = failures or {}
        self.calls: List[tuple] = []

    def _record(self, name: str, **kwargs) -> None:
        self.calls.append((name, kwargs))
        if name in self.failures:
            raise self.failures[name]

    def called(self, name: str) -> List[Dict[str, Any]]:
        return [kwargs for call_name, kwargs in self.calls if call_name == name]

    async def list_tabs(self):
        self._record("list_tabs")
        return list(self.tabs)

    async def navigate(self, tab_id, url):
        self._record("navigate", tab_id=tab_id, url=url)
        return {"success": True}

    async def enable_capture(self, tab_id, mode="full", max_requests=None, url_filter=None):
        self._record("enable_capture", tab_id=tab_id, mode=mode, max_requests=max_requests)
        return {"success": True}

    async def disable_capture(self, tab_id):
        self._record("disable_capture", tab_id=tab_id)
        return {"success": True}

    async def fetch_requests(self, tab_id, limit=5000, offset=0, **kwargs):
        self._record("fetch_requests", tab_id=tab_id, limit=limit, offset=offset)
        page = self.requests[offset:offset + limit]
        return {
            "requests": page,
            "markers": self.markers if offset == 0 else [],
            "hasMore": offset + limit < len(self.requests),
        }

    async def post_marker(self, tab_id, marker_type, label, meta=None):
        self._record("post_marker", tab_id=tab_id, marker_type=marker_type, label=label)
        return {"success": True}

    async def interactables(self, tab_id, max_nodes, include_hidden=False, root_selector=None):
        self._record("interactables", tab_id=tab_id, max_nodes=max_nodes)
        return list(self.items)

    async def hover(self, tab_id, selector):
        self._record("hover", tab_id=tab_id, selector=selector)
        return {"success": True}

    async def click(self, tab_id, selector, mode="human"):
        self._record("click", tab_id=tab_id, selector=selector, mode=mode)
        return {"success": True}

    async def type_text(self, tab_id, selector, text, clear=True, delay_ms=25):
        self._record("type_text", tab_id=tab_id, selector=selector, text=text)
        return {"success": True}

    async def press_key(self, tab_id, key, modifiers=None):
        self._record("press_key", tab_id=tab_id, key=key)
        return {"success": True}


@pytest.fixture
def search_input_item():
    """Search box as reported by the interactables endpoint."""
    return {
        "selector": "#search",
        "tag": "input",
        "type": "search",
        "ariaLabel": "Search products",
        "enabled": True,
        "visible": True,
    }


@pytest.fixture
def delete_button_item():
    """A high-risk destructive button."""
    return {
        "selector": "button.danger",
        "tag": "button",
        "text": "Delete account",
        "enabled": True,
        "visible": True,
    }


@pytest.fixture
def sample_requests():
    """Captured requests for one small app session, in capture order."""
    return [
        {
            "url": "https://app.example.com/api/users/123",
            "method": "GET",
            "requestHeaders": {"Accept": "application/json", "Authorization": "Bearer abc.def.ghi"},
            "status": 200,
            "responseBody": "{\"id\": 123}",
            "timestamp": 1000.0,
        },
        {
            "url": "https://app.example.com/api/users/456",
            "method": "GET",
            "requestHeaders": {"Accept": "application/json"},
            "statusCode": 200,
            "timestamp": 1001.0,
        },
        {
            "url": "https://app.example.com/api/search?q=test&page=2",
            "method": "GET",
            "status": 200,
            "timestamp": 1002.0,
        },
        {
            "url": "https://cdn.other-tracker.net/pixel.gif",
            "method": "GET",
            "status": 204,
            "timestamp": 1003.0,
        },
    ]


@pytest.fixture
def captured_requests(sample_requests):
    return [CapturedRequest.model_validate(item) for item in sample_requests]


@pytest.fixture
def fake_client(search_input_item, delete_button_item, sample_requests):
    """Fake automation client preloaded with a small app."""
    return FakeAutomationClient(
        items=[search_input_item, delete_button_item],
        requests=sample_requests,
        markers=[{"id": "m1", "markerType": "phase", "label": "phase-1-non-mutating"}],
    )


@pytest.fixture
def fast_options(tmp_path):
    """Discovery options with no waits, writing into a temp directory."""
    return DiscoveryOptions(
        baseline_ms=0,
        action_delay_ms=0,
        output_dir=tmp_path / "discovery",
    )



@pytest.fixture
def client_factory():
    """The fake client class, for tests that need a custom app."""
    return FakeAutomationClient
