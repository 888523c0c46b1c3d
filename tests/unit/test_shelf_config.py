"""
Unit tests for configuration models and settings helpers.
"""
import pytest
from pydantic import ValidationError

from browser_provider import MemoryTabHost, PlaywrightTabHost, HostConfig, create_tab_host
from shelf_config import (
    Settings,
    ShelfConfig,
    apply_settings_patch,
    default_settings,
    normalize_settings,
)


class TestSettings:

    def test_defaults(self):
        assert default_settings() == {"theme": "dark", "viewMode": "side", "showBrowsingTabs": False}

    def test_extra_keys_allowed(self):
        assert Settings(accent="teal").model_dump()["accent"] == "teal"

    def test_normalize_fills_missing(self):
        assert normalize_settings({"theme": "light"}) == {"theme": "light", "viewMode": "side", "showBrowsingTabs": False}

    def test_normalize_none(self):
        assert normalize_settings(None) == default_settings()

    def test_normalize_drops_only_bad_keys(self):
        settings = normalize_settings({"theme": "neon", "viewMode": "tab", "zoom": 2})
        assert settings == {"theme": "dark", "viewMode": "tab", "showBrowsingTabs": False, "zoom": 2}

    def test_patch_merges(self):
        merged = apply_settings_patch({"theme": "light"}, {"showBrowsingTabs": True})
        assert merged == {"theme": "light", "viewMode": "side", "showBrowsingTabs": True}

    def test_patch_rejects_bad_value(self):
        with pytest.raises(ValidationError):
            apply_settings_patch(None, {"theme": "neon"})


class TestShelfConfig:

    def test_defaults(self):
        config = ShelfConfig()

        assert config.storage.backend == "file"
        assert config.storage.path.endswith("storage.json")
        assert config.browser.provider_type == "playwright"
        assert config.browser.channel is None
        assert config.logging.debug_mode is False
        assert "chrome://" in config.panel.internal_schemes

    def test_memory_preset(self):
        config = ShelfConfig.memory()
        assert config.storage.backend == "memory"
        assert config.browser.provider_type == "memory"

    def test_debug_preset(self):
        config = ShelfConfig.debug()
        assert config.logging.debug_mode is True
        assert config.browser.headless is False

    def test_rejects_unknown_backend(self):
        with pytest.raises(ValidationError):
            ShelfConfig(storage={"backend": "redis"})


class TestCreateTabHost:

    def test_memory(self):
        assert isinstance(create_tab_host(HostConfig(provider_type="memory")), MemoryTabHost)

    def test_playwright_is_not_started(self):
        host = create_tab_host(HostConfig(provider_type="playwright"))
        assert isinstance(host, PlaywrightTabHost)
        assert host.query_tabs() == []

    def test_unknown(self):
        with pytest.raises(ValueError):
            create_tab_host(HostConfig(provider_type="firefox-ext"))
