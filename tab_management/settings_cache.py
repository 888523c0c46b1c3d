"""
SettingsCache - synchronous, process-lifetime view of the user settings.

Trigger handlers that must act inside the user's gesture (opening the panel)
read settings from here instead of going to storage first.
"""
from typing import Any, Callable, Dict, Mapping, Optional

from shelf_config import default_settings, normalize_settings
from utils.event_logger import get_event_logger
from .shelf_store import SETTINGS_KEY, ShelfStore, StorageChange


class SettingsCache:
    """
    In-memory copy of the settings record.

    Starts at the defaults, is loaded once by ``initialize`` and is then
    refreshed only by storage change notifications (never by time).
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        self._settings: Dict[str, Any] = normalize_settings(initial) if initial else default_settings()
        self._unsubscribe: Optional[Callable[[], None]] = None

    def initialize(self, store: ShelfStore) -> "SettingsCache":
        """Load the stored settings and follow later changes."""
        self.attach(store)
        try:
            self.update(store.read_settings())
        except Exception as e:
            get_event_logger().system_warning("Could not load settings, using defaults", error=str(e))
        return self

    def attach(self, store: ShelfStore) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = store.on_change(self._on_storage_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_storage_change(self, changes: Dict[str, StorageChange]) -> None:
        change = changes.get(SETTINGS_KEY)
        if change is not None:
            self.update(change.new_value)

    def update(self, settings: Optional[Mapping[str, Any]]) -> None:
        self._settings = normalize_settings(settings)

    def get(self, key: Optional[str] = None, default: Any = None) -> Any:
        if key is None:
            return dict(self._settings)
        return self._settings.get(key, default)

    @property
    def view_mode(self) -> str:
        return self._settings.get("viewMode") or "side"

    @property
    def show_browsing_tabs(self) -> bool:
        return bool(self._settings.get("showBrowsingTabs"))
