"""
Unit tests for the live browsing snapshot.
"""
import pytest
from unittest.mock import Mock

from browser_provider import LiveTab
from error_handling import ExternalFailureError
from tab_management.browsing_snapshot import build_browsing_group, parse_live_tab_id
from tab_management.tab_info import GroupKind


PANEL_URL = "chrome-extension://tabshelf/panel.html"


class TestBuildBrowsingGroup:

    def test_lists_regular_tabs_of_focused_window(self, host):
        a = host.add_tab("https://a.test", title="A", fav_icon_url="https://a.test/icon.png")
        b = host.add_tab("https://b.test")
        other = host.open_window(focus=False)
        host.add_tab("https://elsewhere.test", window_id=other)

        group = build_browsing_group(host)

        assert group.kind is GroupKind.LIVE_BROWSING
        assert group.persistent is True
        assert [t.id for t in group.tabs] == [f"live-{a.id}", f"live-{b.id}"]
        assert group.tabs[0].custom_title == "A"
        assert group.tabs[0].fav_icon_url == "https://a.test/icon.png"
        assert group.tabs[1].custom_title == "https://b.test"
        assert group.tabs[1].live_tab_id == b.id

    def test_explicit_window(self, host):
        other = host.open_window(focus=False)
        host.add_tab("https://elsewhere.test", window_id=other)

        group = build_browsing_group(host, window_id=other)

        assert [t.url for t in group.tabs] == ["https://elsewhere.test"]

    @pytest.mark.parametrize("url", [
        "chrome://settings",
        "chrome-extension://abc/page.html",
        "edge://flags",
        "about:blank",
        "",
    ])
    def test_internal_pages_are_hidden(self, host, url):
        host.add_tab(url)
        assert build_browsing_group(host).tabs == []

    def test_panel_is_hidden_even_without_prefix_list(self, host):
        host.add_tab(PANEL_URL)
        host.add_tab("https://a.test")

        group = build_browsing_group(host, excluded_prefixes=(), panel_url=PANEL_URL)

        assert [t.url for t in group.tabs] == ["https://a.test"]

    def test_no_focused_window_lists_everything(self):
        host = Mock()
        host.current_window_id.side_effect = ExternalFailureError("No browser window is open")
        host.query_tabs.return_value = [LiveTab(id=7, window_id=3, url="https://a.test")]

        group = build_browsing_group(host)

        host.query_tabs.assert_called_once_with(window_id=None)
        assert [t.id for t in group.tabs] == ["live-7"]


class TestParseLiveTabId:

    @pytest.mark.parametrize("value,expected", [
        ("live-12", 12),
        ("12", 12),
        (12, 12),
        ("live-x", None),
        ("tab_abc", None),
        (None, None),
        (True, None),
    ])
    def test_parse(self, value, expected):
        assert parse_live_tab_id(value) == expected
