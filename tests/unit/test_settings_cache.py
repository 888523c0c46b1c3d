"""
Unit tests for the in-memory settings cache.
"""
from tab_management.settings_cache import SettingsCache
from tab_management.shelf_store import GROUPS_KEY, MemoryBackend, SETTINGS_KEY, ShelfStore


class TestSettingsCache:

    def test_starts_at_defaults(self):
        cache = SettingsCache()

        assert cache.get() == {"theme": "dark", "viewMode": "side", "showBrowsingTabs": False}
        assert cache.view_mode == "side"
        assert cache.show_browsing_tabs is False

    def test_initialize_loads_stored_settings(self):
        store = ShelfStore(MemoryBackend({SETTINGS_KEY: {"viewMode": "tab", "showBrowsingTabs": True}}))

        cache = SettingsCache().initialize(store)

        assert cache.view_mode == "tab"
        assert cache.show_browsing_tabs is True
        assert cache.get("theme") == "dark"

    def test_follows_storage_changes(self):
        backend = MemoryBackend()
        cache = SettingsCache().initialize(ShelfStore(backend))

        backend.write({SETTINGS_KEY: {"viewMode": "tab"}})

        assert cache.view_mode == "tab"

    def test_ignores_other_keys(self):
        backend = MemoryBackend({SETTINGS_KEY: {"viewMode": "tab"}})
        cache = SettingsCache().initialize(ShelfStore(backend))

        backend.write({GROUPS_KEY: []})

        assert cache.view_mode == "tab"

    def test_detach_stops_following(self):
        backend = MemoryBackend()
        cache = SettingsCache().initialize(ShelfStore(backend))
        cache.detach()

        backend.write({SETTINGS_KEY: {"viewMode": "tab"}})

        assert cache.view_mode == "side"

    def test_invalid_stored_value_falls_back_to_default(self):
        cache = SettingsCache({"viewMode": "floating", "theme": "light"})

        assert cache.view_mode == "side"
        assert cache.get("theme") == "light"

    def test_get_returns_a_copy(self):
        cache = SettingsCache()
        cache.get()["viewMode"] = "tab"
        assert cache.view_mode == "side"

    def test_get_missing_key_default(self):
        assert SettingsCache().get("fontSize", 12) == 12
