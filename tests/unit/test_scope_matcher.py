"""Unit tests for scope matching functionality."""

import pytest

from apiprobe.discovery.utils.scope_matcher import ScopeMatcher, ScopeMatcherError, ScopeMode


TAB_URL = "https://app.example.com/dashboard"


class TestScopeMatcher:
    """Test cases for scope matching."""

    def test_first_party_scope(self):
        """Test first-party scope accepts sibling subdomains."""
        matcher = ScopeMatcher(TAB_URL, scope=ScopeMode.FIRST_PARTY)

        assert matcher.is_in_scope("https://app.example.com/api/users")
        assert matcher.is_in_scope("https://api.example.com/v1/items")
        assert not matcher.is_in_scope("https://cdn.tracker.net/pixel.gif")

    def test_origin_scope(self):
        """Test origin scope requires the exact tab hostname."""
        matcher = ScopeMatcher(TAB_URL, scope=ScopeMode.ORIGIN)

        assert matcher.is_in_scope("https://app.example.com/api/users")
        assert not matcher.is_in_scope("https://api.example.com/v1/items")

    def test_all_scope(self):
        matcher = ScopeMatcher(TAB_URL, scope="all")

        assert matcher.is_in_scope("https://anything.io/x")
        assert not matcher.is_in_scope("data:text/plain,hello")

    def test_exclude_beats_include(self):
        """Test exclude patterns take precedence over include patterns."""
        matcher = ScopeMatcher(
            TAB_URL,
            include_hosts=[r"tracker\.net$"],
            exclude_hosts=[r"^cdn\."],
        )

        assert matcher.is_in_scope("https://api.tracker.net/collect")
        assert not matcher.is_in_scope("https://cdn.tracker.net/pixel.gif")
        assert not matcher.is_in_scope("https://cdn.example.com/app.js")

    def test_host_patterns_case_insensitive(self):
        matcher = ScopeMatcher(TAB_URL, scope=ScopeMode.ORIGIN, include_hosts=["PARTNER"])
        assert matcher.is_in_scope("https://api.partner.io/x")

    def test_no_tab_url_accepts_any_host(self):
        matcher = ScopeMatcher(None)
        assert matcher.is_in_scope("https://other.com/x")

    def test_invalid_regex_patterns(self):
        """Test invalid regex pattern handling."""
        with pytest.raises(ScopeMatcherError):
            ScopeMatcher(TAB_URL, include_hosts=["[invalid"])

        with pytest.raises(ScopeMatcherError):
            ScopeMatcher(TAB_URL, exclude_hosts=["(unclosed"])
