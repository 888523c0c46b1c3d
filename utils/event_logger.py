"""
Event log for the tab shelf service.

Every component reports what it did as a ShelfEvent. Nothing here may raise
into a command: a failing callback or console write is dropped. In debug mode
events are echoed to the console with rich; otherwise they only reach the
registered callbacks and the bounded history.
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Callable
from dataclasses import dataclass, field
from datetime import datetime
import time

from rich.console import Console
from rich.markup import escape


class EventType(str, Enum):
    """All event types that can be logged"""
    # Command events
    COMMAND_START = "command_start"
    COMMAND_SUCCESS = "command_success"
    COMMAND_FAILURE = "command_failure"
    COMMAND_IGNORED = "command_ignored"

    # Shelf events
    GROUP_CAPTURED = "group_captured"
    TAB_CAPTURED = "tab_captured"
    TAB_RESTORED = "tab_restored"
    GROUP_RESTORED = "group_restored"
    TAB_MOVED = "tab_moved"
    GROUP_REMOVED = "group_removed"

    # Storage events
    STORE_WRITE = "store_write"
    SETTINGS_CHANGED = "settings_changed"

    # Trigger events
    TRIGGER_RECEIVED = "trigger_received"
    PANEL_OPENED = "panel_opened"
    BROADCAST = "broadcast"

    # Host events
    TAB_NEW = "tab_new"
    TAB_CLOSED = "tab_closed"

    # System events
    SYSTEM_INFO = "system_info"
    SYSTEM_WARNING = "system_warning"
    SYSTEM_ERROR = "system_error"
    SYSTEM_DEBUG = "system_debug"


LEVEL_EMOJI = {
    "DEBUG": "🔍",
    "INFO": "ℹ️",
    "WARNING": "⚠️",
    "ERROR": "❌",
    "SUCCESS": "✅",
}

LEVEL_STYLES = {
    "DEBUG": "dim",
    "WARNING": "yellow",
    "ERROR": "bold red",
    "SUCCESS": "green",
}


@dataclass
class ShelfEvent:
    """Structured event data"""
    event_type: EventType
    message: str
    timestamp: float = field(default_factory=time.time)
    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, SUCCESS
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "event_type": self.event_type.value,
            "message": self.message,
            "timestamp": self.timestamp,
            "timestamp_iso": datetime.fromtimestamp(self.timestamp).isoformat(),
            "level": self.level,
            "details": self.details
        }


class EventLogger:
    """
    Collects ShelfEvents.

    Events always go to the history and the callbacks; with ``debug_mode`` on
    they are also written to the console.
    """

    def __init__(self, debug_mode: bool = True, console: Optional[Console] = None):
        self.debug_mode = debug_mode
        self._console = console or Console(highlight=False)
        self._callbacks: List[Callable[[ShelfEvent], None]] = []
        self._event_history: List[ShelfEvent] = []
        self._max_history = 1000

    def register_callback(self, callback: Callable[[ShelfEvent], None]) -> None:
        """Register a callback for all events"""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable[[ShelfEvent], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    @property
    def history(self) -> List[ShelfEvent]:
        return list(self._event_history)

    def _safe_emit(self, event: ShelfEvent) -> None:
        """Safely emit an event - never raises exceptions"""
        try:
            self._event_history.append(event)
            if len(self._event_history) > self._max_history:
                self._event_history.pop(0)
        except Exception:
            pass  # Ignore history errors

        if self.debug_mode:
            try:
                self._print_event(event)
            except Exception:
                pass  # Ignore print errors

        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception:
                pass  # Ignore callback errors

    def _print_event(self, event: ShelfEvent) -> None:
        style = LEVEL_STYLES.get(event.level, "")
        line = f"{LEVEL_EMOJI.get(event.level, '•')} {escape(event.message)}"
        self._console.print(f"[{style}]{line}[/{style}]" if style else line)

        for key, value in event.details.items():
            if value is None or key in ("timestamp", "timestamp_iso"):
                continue
            if isinstance(value, (str, int, float, bool)):
                self._console.print(f"   [dim]{key}:[/dim] {escape(str(value))}")

    def emit(self, event_type: EventType, message: str, level: str = "INFO", **details) -> None:
        """Emit an event - safe wrapper that never raises"""
        try:
            event = ShelfEvent(
                event_type=event_type,
                message=message,
                level=level,
                details=details
            )
            self._safe_emit(event)
        except Exception:
            if self.debug_mode:
                try:
                    print(f"⚠️ Event logger error: {message}")
                except Exception:
                    pass

    # Convenience methods - all wrapped in try/except for safety
    def command_start(self, command: str, **details):
        try:
            self.emit(EventType.COMMAND_START, f"Running command: {command}", "DEBUG", command=command, **details)
        except Exception:
            pass

    def command_success(self, command: str, **details):
        try:
            self.emit(EventType.COMMAND_SUCCESS, f"Command completed: {command}", "DEBUG", command=command, **details)
        except Exception:
            pass

    def command_failure(self, command: str, error: str = None, **details):
        try:
            msg = f"Command failed: {command}"
            if error:
                msg += f" - {error}"
            self.emit(EventType.COMMAND_FAILURE, msg, "ERROR", command=command, error=error, **details)
        except Exception:
            pass

    def command_ignored(self, command: Any, **details):
        try:
            self.emit(EventType.COMMAND_IGNORED, f"Ignoring unknown command: {command}", "DEBUG",
                      command=str(command), **details)
        except Exception:
            pass

    def group_captured(self, group_id: str, tab_count: int, **details):
        try:
            self.emit(EventType.GROUP_CAPTURED, f"Captured {tab_count} tab(s) into group {group_id}", "SUCCESS",
                      group_id=group_id, tab_count=tab_count, **details)
        except Exception:
            pass

    def tab_captured(self, tab_id: str, url: str = None, **details):
        try:
            msg = f"Quick-captured tab: {tab_id}"
            if url:
                msg += f" ({url})"
            self.emit(EventType.TAB_CAPTURED, msg, "SUCCESS", tab_id=tab_id, url=url, **details)
        except Exception:
            pass

    def tab_restored(self, tab_id: str, group_id: str, kept: bool, **details):
        try:
            msg = f"Restored tab {tab_id} from group {group_id}"
            if not kept:
                msg += " (removed from group)"
            self.emit(EventType.TAB_RESTORED, msg, "INFO", tab_id=tab_id, group_id=group_id, kept=kept, **details)
        except Exception:
            pass

    def group_restored(self, group_id: str, tab_count: int, kept: bool, **details):
        try:
            msg = f"Restored {tab_count} tab(s) from group {group_id}"
            self.emit(EventType.GROUP_RESTORED, msg, "INFO", group_id=group_id, tab_count=tab_count,
                      kept=kept, **details)
        except Exception:
            pass

    def tab_moved(self, tab_id: str, from_group_id: str, to_group_id: str, index: int, **details):
        try:
            msg = f"Moved tab {tab_id}: {from_group_id} -> {to_group_id} @ {index}"
            self.emit(EventType.TAB_MOVED, msg, "DEBUG", tab_id=tab_id, from_group_id=from_group_id,
                      to_group_id=to_group_id, index=index, **details)
        except Exception:
            pass

    def group_removed(self, group_id: str, **details):
        try:
            self.emit(EventType.GROUP_REMOVED, f"Removed group {group_id}", "INFO", group_id=group_id, **details)
        except Exception:
            pass

    def store_write(self, keys: List[str], **details):
        try:
            self.emit(EventType.STORE_WRITE, f"Persisted keys: {', '.join(keys)}", "DEBUG",
                      keys=",".join(keys), **details)
        except Exception:
            pass

    def settings_changed(self, settings: Dict[str, Any], **details):
        try:
            self.emit(EventType.SETTINGS_CHANGED, "Settings updated", "INFO", **{
                key: value for key, value in settings.items() if isinstance(value, (str, int, float, bool))
            }, **details)
        except Exception:
            pass

    def trigger_received(self, trigger: str, **details):
        try:
            self.emit(EventType.TRIGGER_RECEIVED, f"Trigger: {trigger}", "DEBUG", trigger=trigger, **details)
        except Exception:
            pass

    def panel_opened(self, view_mode: str, window_id: Any = None, **details):
        try:
            msg = f"Opened panel ({view_mode})"
            if window_id is not None:
                msg += f" in window {window_id}"
            self.emit(EventType.PANEL_OPENED, msg, "INFO", view_mode=view_mode, window_id=window_id, **details)
        except Exception:
            pass

    def broadcast(self, message_type: str, listeners: int, **details):
        try:
            self.emit(EventType.BROADCAST, f"Broadcast {message_type} to {listeners} listener(s)", "DEBUG",
                      message_type=message_type, listeners=listeners, **details)
        except Exception:
            pass

    def tab_new(self, tab_id: Any, url: str = None, **details):
        try:
            msg = f"New tab: {tab_id}"
            if url:
                msg += f" ({url})"
            self.emit(EventType.TAB_NEW, msg, "DEBUG", tab_id=tab_id, url=url, **details)
        except Exception:
            pass

    def tab_closed(self, tab_id: Any, **details):
        try:
            self.emit(EventType.TAB_CLOSED, f"Closed tab: {tab_id}", "DEBUG", tab_id=tab_id, **details)
        except Exception:
            pass

    def system_info(self, message: str, **details):
        try:
            self.emit(EventType.SYSTEM_INFO, message, "INFO", **details)
        except Exception:
            pass

    def system_warning(self, message: str, **details):
        try:
            self.emit(EventType.SYSTEM_WARNING, message, "WARNING", **details)
        except Exception:
            pass

    def system_error(self, message: str, error: Exception = None, **details):
        try:
            msg = message
            if error:
                msg += f" - {str(error)}"
            self.emit(EventType.SYSTEM_ERROR, msg, "ERROR", error=str(error) if error else None, **details)
        except Exception:
            pass

    def system_debug(self, message: str, **details):
        try:
            self.emit(EventType.SYSTEM_DEBUG, message, "DEBUG", **details)
        except Exception:
            pass


# Global instance
_global_event_logger: Optional[EventLogger] = None

def get_event_logger() -> EventLogger:
    """Get the global event logger instance"""
    global _global_event_logger
    if _global_event_logger is None:
        _global_event_logger = EventLogger(debug_mode=False)
    return _global_event_logger

def set_event_logger(logger: EventLogger) -> None:
    """Set the global event logger instance"""
    global _global_event_logger
    _global_event_logger = logger
