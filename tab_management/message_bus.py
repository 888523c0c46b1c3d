"""
MessageBus - fire-and-forget broadcasts to whatever UI surfaces are listening.
"""
from typing import Any, Callable, Dict, List

from utils.event_logger import get_event_logger


RELOAD_DATA = "reloadData"
SETTINGS_CHANGED = "settingsChanged"

Listener = Callable[[Dict[str, Any]], None]


class MessageBus:
    """
    Broadcast channel from the background service to UI surfaces.

    Nobody has to be listening; a listener that raises is logged and skipped.
    """

    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns an unsubscribe callable."""
        if listener not in self._listeners:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def broadcast(self, message_type: str, **fields: Any) -> None:
        message = {"type": message_type, **fields}
        listeners = list(self._listeners)
        get_event_logger().broadcast(message_type, len(listeners))
        for listener in listeners:
            try:
                listener(dict(message))
            except Exception as e:
                get_event_logger().system_debug(f"Listener ignored {message_type}", error=str(e))

    def reload_data(self) -> None:
        self.broadcast(RELOAD_DATA)

    def settings_changed(self, settings: Dict[str, Any]) -> None:
        self.broadcast(SETTINGS_CHANGED, settings=dict(settings))
