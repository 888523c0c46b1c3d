"""
Unit tests for the ShelfService composition root.
"""
from shelf_config import ShelfConfig, StorageConfig
from shelf_service import ShelfService, create_backend
from tab_management.message_bus import RELOAD_DATA
from tab_management.shelf_store import JsonFileBackend, MemoryBackend, SETTINGS_KEY, ShelfStore
from tab_management.triggers import QUICK_CAPTURE_COMMAND, IconClicked, TabLifecycle


class TestCreateBackend:

    def test_file(self, tmp_path):
        backend = create_backend(StorageConfig(backend="file", path=str(tmp_path / "s.json")))
        assert isinstance(backend, JsonFileBackend)

    def test_memory(self):
        assert isinstance(create_backend(StorageConfig(backend="memory")), MemoryBackend)


class TestShelfService:

    def test_start_initializes_settings(self, service, backend):
        assert backend.read([SETTINGS_KEY])[SETTINGS_KEY]["viewMode"] == "side"
        assert service.events.is_empty()

    def test_send_routes_to_dispatcher(self, service):
        response = service.send({"type": "addGroup", "name": "Reading"})

        assert response["ok"] is True
        names = [g["name"] for g in service.send({"type": "getData"})["result"]["groups"]]
        assert names == ["Pinned", "Reading", "Quick Capture"]

    def test_unknown_message(self, service):
        assert service.send({"type": "nope"}) is None

    def test_tab_changes_are_queued_until_pumped(self, service, host):
        received = []
        service.subscribe(received.append)
        service.send({"type": "setSettings", "settings": {"showBrowsingTabs": True}})
        received.clear()

        host.add_tab("https://a.test")

        assert received == []
        assert [q.event for q in service.events.inspect()] == [TabLifecycle("created", 1)]
        assert service.pump() == 1
        assert [m["type"] for m in received] == [RELOAD_DATA]

    def test_icon_click_jumps_the_queue(self, service, host):
        host.add_tab("https://a.test")
        service.post(IconClicked(window_id=1))

        assert isinstance(service.events.peek().event, IconClicked)

    def test_click_icon(self, service, host):
        service.click_icon()
        assert host.opened_panels == [1]

    def test_shortcut(self, service, host):
        host.add_tab("https://a.test", active=True)

        service.shortcut(QUICK_CAPTURE_COMMAND)

        quick = service.send({"type": "getData"})["result"]["groups"][-1]
        assert [t["url"] for t in quick["tabs"]] == ["https://a.test"]

    def test_failing_trigger_does_not_stop_the_pump(self, service, event_logger):
        service.post(object())
        service.post(TabLifecycle("created", 1))

        assert service.pump() == 2
        assert any(e.level == "ERROR" for e in event_logger.history)

    def test_close_stops_listening(self, service, host):
        service.close()

        host.add_tab("https://a.test")

        assert service.events.is_empty()

    def test_context_manager(self):
        config = ShelfConfig.memory()
        with ShelfService(config) as service:
            service.send({"type": "addGroup"})
            assert service.host.focused_window_id == 1

    def test_file_storage_survives_restart(self, tmp_path):
        config = ShelfConfig(
            storage=StorageConfig(backend="file", path=str(tmp_path / "storage.json")),
            browser={"provider_type": "memory"},
        )
        with ShelfService(config) as service:
            group_id = service.send({"type": "addGroup", "name": "Kept"})["result"]["id"]

        with ShelfService(config) as service:
            groups = service.send({"type": "getData"})["result"]["groups"]

        assert [g["id"] for g in groups][1] == group_id

    def test_settings_written_by_another_process_reach_the_cache(self, tmp_path, host):
        path = tmp_path / "storage.json"
        config = ShelfConfig(storage=StorageConfig(backend="file", path=str(path)))
        with ShelfService(config, host=host) as service:
            ShelfStore(JsonFileBackend(path)).write_settings({"viewMode": "tab", "showBrowsingTabs": True})

            service.click_icon()

            assert service.settings_cache.view_mode == "tab"
            assert service.settings_cache.show_browsing_tabs is True
            assert host.opened_panels == []
            assert host.query_tabs(url=service.config.panel.panel_url)

    def test_debug_config_turns_on_console_logging(self, event_logger):
        ShelfService(ShelfConfig(logging={"debug_mode": True}, browser={"provider_type": "memory"}))
        assert event_logger.debug_mode is True
