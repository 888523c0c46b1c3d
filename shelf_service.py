"""
ShelfService - wires the store, tab host, command dispatcher and triggers together.

Example:
    >>> from shelf_config import ShelfConfig
    >>> with ShelfService(ShelfConfig.memory()).start() as service:
    ...     service.send({"type": "addGroup", "name": "Reading"})
    ...     service.send({"type": "getData"})
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional

from browser_provider import TabHost, create_tab_host
from event_queue import EventQueue
from shelf_config import ShelfConfig, StorageConfig
from tab_management.dispatcher import CommandDispatcher
from tab_management.message_bus import Listener, MessageBus
from tab_management.settings_cache import SettingsCache
from tab_management.shelf_store import JsonFileBackend, KeyValueBackend, MemoryBackend, ShelfStore
from tab_management.tab_manager import ShelfManager
from tab_management.triggers import (
    IconClicked,
    Installed,
    ShortcutCommand,
    TabLifecycle,
    TriggerEvent,
    TriggerWiring,
)
from utils.event_logger import get_event_logger


# Higher runs first; the icon click must be served while the gesture is fresh
TRIGGER_PRIORITIES = {
    IconClicked: 10,
    ShortcutCommand: 5,
    Installed: 5,
    TabLifecycle: 0,
}


def create_backend(config: StorageConfig) -> KeyValueBackend:
    """
    Factory function to create the storage backend from config.

    Args:
        config: Storage configuration

    Returns:
        KeyValueBackend for the configured kind
    """
    if config.backend == "file":
        return JsonFileBackend(config.path)
    elif config.backend == "memory":
        return MemoryBackend()
    else:
        raise ValueError(f"Unknown storage backend: {config.backend}. Must be one of: file, memory")


class ShelfService:
    """
    The background service.

    Owns every long-lived component. Messages from UI surfaces go through
    ``send``; browser events are queued with ``post`` (safe from any thread)
    and handled one at a time by ``pump``.
    """

    def __init__(
        self,
        config: Optional[ShelfConfig] = None,
        host: Optional[TabHost] = None,
        backend: Optional[KeyValueBackend] = None,
        settings_cache: Optional[SettingsCache] = None,
        bus: Optional[MessageBus] = None,
    ):
        """
        Initialize ShelfService.

        Args:
            config: Service configuration (defaults to ShelfConfig())
            host: Tab host to use instead of the configured one
            backend: Storage backend to use instead of the configured one
            settings_cache: Settings cache to share with other components
            bus: Message bus to broadcast on
        """
        self.config = config or ShelfConfig()
        if self.config.logging.debug_mode:
            get_event_logger().debug_mode = True

        self.backend = backend or create_backend(self.config.storage)
        self.store = ShelfStore(self.backend)
        self.host = host or create_tab_host(self.config.browser)
        self.bus = bus or MessageBus()
        self.settings_cache = settings_cache or SettingsCache()

        self.manager = ShelfManager(self.store, self.host, self.settings_cache, self.config.panel)
        self.dispatcher = CommandDispatcher(self.manager, self.bus)
        self.triggers = TriggerWiring(self.dispatcher, self.host, self.settings_cache, self.bus, self.config.panel)
        self.events = EventQueue()

        self._unsubscribe_host: Optional[Callable[[], None]] = None
        self._started = False

    def start(self) -> ShelfService:
        """Start the tab host, load settings and queue the install event."""
        if self._started:
            return self
        self.host.start()
        self.settings_cache.initialize(self.store)
        self._unsubscribe_host = self.host.add_listener(self._on_tab_change)
        self._started = True
        self.post(Installed())
        self.pump()
        get_event_logger().system_info("Tab shelf service started")
        return self

    def close(self) -> None:
        if self._unsubscribe_host is not None:
            self._unsubscribe_host()
            self._unsubscribe_host = None
        self.settings_cache.detach()
        self.events.clear()
        self.host.close()
        self._started = False

    def __enter__(self) -> ShelfService:
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _on_tab_change(self, change: str, tab_id: int) -> None:
        self.post(TabLifecycle(change=change, tab_id=tab_id))

    # ----------------- inbound -----------------
    def send(self, message: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Handle one UI message; None when the command is unknown."""
        return self.dispatcher.dispatch(message)

    def post(self, event: TriggerEvent, priority: Optional[int] = None) -> None:
        if priority is None:
            priority = TRIGGER_PRIORITIES.get(type(event), 0)
        self.events.enqueue(event, priority=priority)

    def pump(self) -> int:
        """Handle every queued event; returns how many were handled."""
        # Pick up settings written by another process before acting on them
        self.store.poll()
        handled = 0
        for queued in self.events.drain():
            try:
                self.triggers.handle(queued.event)
            except Exception as e:
                get_event_logger().system_error(f"Trigger {type(queued.event).__name__} failed", error=e)
            handled += 1
        return handled

    def click_icon(self, window_id: Optional[int] = None) -> None:
        self.post(IconClicked(window_id=window_id))
        self.pump()

    def shortcut(self, command: str) -> None:
        self.post(ShortcutCommand(command=command))
        self.pump()

    # ----------------- outbound -----------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Listen for ``reloadData`` / ``settingsChanged`` broadcasts."""
        return self.bus.subscribe(listener)
