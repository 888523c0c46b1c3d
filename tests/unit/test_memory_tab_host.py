"""
Unit tests for the in-memory tab host.
"""
import pytest

from browser_provider import TAB_ACTIVATED, TAB_CREATED, TAB_REMOVED, MemoryTabHost
from error_handling import ExternalFailureError


class TestMemoryTabHost:

    def test_start_opens_a_window(self):
        host = MemoryTabHost().start()
        assert host.current_window_id() == 1

    def test_first_tab_is_active(self, host):
        first = host.add_tab("https://a.test")
        host.add_tab("https://b.test")

        assert [t.id for t in host.query_tabs(active=True)] == [first.id]

    def test_returned_tabs_are_copies(self, host):
        tab = host.add_tab("https://a.test")
        tab.url = "https://changed.test"
        assert host.get_tab(tab.id).url == "https://a.test"

    def test_remove_activates_neighbour(self, host):
        a = host.add_tab("https://a.test")
        b = host.add_tab("https://b.test")

        host.remove_tabs([a.id])

        assert host.get_tab(b.id).active is True

    def test_remove_is_all_or_nothing(self, host):
        a = host.add_tab("https://a.test")

        with pytest.raises(ExternalFailureError):
            host.remove_tabs([a.id, 42])
        assert host.get_tab(a.id) is not None

    def test_listeners(self, host):
        seen = []
        unsubscribe = host.add_listener(lambda change, tab_id: seen.append((change, tab_id)))
        tab = host.add_tab("https://a.test")
        host.update_tab(tab.id, active=True)
        host.remove_tabs([tab.id])
        unsubscribe()
        host.add_tab("https://b.test")

        assert seen == [(TAB_CREATED, tab.id), (TAB_ACTIVATED, tab.id), (TAB_REMOVED, tab.id)]

    def test_focus_follows_activation(self, host):
        other = host.open_window(focus=False)
        tab = host.add_tab("https://b.test", window_id=other)

        host.update_tab(tab.id, active=True)

        assert host.current_window_id() == other

    def test_no_window(self):
        with pytest.raises(ExternalFailureError):
            MemoryTabHost().current_window_id()

    def test_side_panel_requires_window(self, host):
        host.open_side_panel(1)
        with pytest.raises(ExternalFailureError):
            host.open_side_panel(7)
        assert host.opened_panels == [1]
