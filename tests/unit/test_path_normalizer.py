"""Unit tests for URL path templating."""

import pytest

from apiprobe.discovery.utils.path_normalizer import (
    get_origin,
    get_registrable_domain,
    normalize_path,
    normalize_segment,
    normalize_url_path,
)


class TestNormalizeSegment:
    """Test cases for single segment normalization."""

    @pytest.mark.parametrize("segment,expected", [
        ("12345", "{id}"),
        ("9f1b6c8e-3b1a-4c2d-8e9f-0a1b2c3d4e5f", "{uuid}"),
        ("507f1f77bcf86cd799439011", "{hex}"),
        ("aB3_xY9-kLmNoPqRsTuVw", "{token}"),
        ("users", "users"),
        ("v2", "v2"),
        ("", ""),
    ])
    def test_placeholders(self, segment, expected):
        """Test each volatile segment shape maps to its placeholder."""
        assert normalize_segment(segment) == expected

    def test_digits_win_over_token(self):
        """Test a long digit run is an id, not a token."""
        assert normalize_segment("123456789012345678901234") == "{id}"

    def test_short_hex_is_kept(self):
        """Test hex shorter than 24 characters is left alone."""
        assert normalize_segment("deadbeef") == "deadbeef"


class TestNormalizePath:
    """Test cases for full path normalization."""

    def test_mixed_path(self):
        """Test a path with several volatile segments."""
        path = "/users/12345/posts/9f1b6c8e-3b1a-4c2d-8e9f-0a1b2c3d4e5f"
        assert normalize_path(path) == "/users/{id}/posts/{uuid}"

    def test_idempotent(self):
        """Test normalizing a normalized path changes nothing."""
        paths = [
            "/users/12345/orders/507f1f77bcf86cd799439011",
            "/api/v1/items/aB3_xY9-kLmNoPqRsTuVw/detail",
            "/",
            "/static/app.js",
        ]
        for path in paths:
            once = normalize_path(path)
            assert normalize_path(once) == once

    def test_trailing_slash_preserved(self):
        """Test empty trailing segments survive."""
        assert normalize_path("/items/42/") == "/items/{id}/"

    def test_url_path(self):
        """Test normalizing the path of an absolute URL drops the query."""
        assert normalize_url_path("https://api.example.com/users/42?x=1") == "/users/{id}"
        assert normalize_url_path("https://api.example.com") == "/"

    def test_unparseable_url_returned_verbatim(self):
        """Test non-absolute URLs form their own template."""
        assert normalize_url_path("not a url") == "not a url"
        assert normalize_url_path("/relative/42") == "/relative/42"


class TestDomains:
    """Test cases for origin and registrable domain helpers."""

    def test_get_origin(self):
        assert get_origin("https://app.example.com:8443/x?y=1") == "https://app.example.com:8443"
        assert get_origin("about:blank") is None

    @pytest.mark.parametrize("host,expected", [
        ("api.example.com", "example.com"),
        ("example.com", "example.com"),
        ("shop.example.co.uk", "example.co.uk"),
        ("a.b.example.com.au", "example.com.au"),
        ("192.168.1.10", "192.168.1.10"),
        ("LOCALHOST", "localhost"),
        ("", ""),
    ])
    def test_registrable_domain(self, host, expected):
        assert get_registrable_domain(host) == expected
