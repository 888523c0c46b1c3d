"""
TriggerWiring - browser-level events routed into the same command path as messages.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from browser_provider import TabHost
from error_handling import ExternalFailureError
from shelf_config import PanelConfig
from utils.event_logger import get_event_logger
from .dispatcher import CommandDispatcher
from .message_bus import MessageBus
from .settings_cache import SettingsCache


QUICK_CAPTURE_COMMAND = "quick-capture-active"


@dataclass(frozen=True)
class Installed:
    """The service was installed or updated"""


@dataclass(frozen=True)
class IconClicked:
    """The toolbar icon was clicked (a user gesture)"""
    window_id: Optional[int] = None


@dataclass(frozen=True)
class ShortcutCommand:
    """A keyboard shortcut fired"""
    command: str


@dataclass(frozen=True)
class TabLifecycle:
    """A real tab was created, removed, updated or activated"""
    change: str
    tab_id: Optional[int] = None


TriggerEvent = Union[Installed, IconClicked, ShortcutCommand, TabLifecycle]


class TriggerWiring:
    """
    Handles inbound trigger events.

    Commands go through ``CommandDispatcher.invoke`` so triggers never carry
    business logic of their own. Opening the panel is the exception: it has
    to happen synchronously inside the gesture, so it reads the in-memory
    settings cache and calls the host before anything else.
    """

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        host: TabHost,
        settings_cache: SettingsCache,
        bus: MessageBus,
        panel: Optional[PanelConfig] = None,
    ):
        self.dispatcher = dispatcher
        self.host = host
        self.settings_cache = settings_cache
        self.bus = bus
        self.panel = panel or PanelConfig()

    def handle(self, event: TriggerEvent) -> Optional[Dict[str, Any]]:
        """Route one event; returns the command envelope when a command ran."""
        get_event_logger().trigger_received(type(event).__name__)
        if isinstance(event, IconClicked):
            self.on_icon_clicked(event.window_id)
            return None
        if isinstance(event, Installed):
            return self.dispatcher.invoke("initializeSettings")
        if isinstance(event, ShortcutCommand):
            return self.on_shortcut(event.command)
        if isinstance(event, TabLifecycle):
            self.on_tab_lifecycle(event)
            return None
        raise TypeError(f"Unknown trigger event: {event!r}")

    # ----------------- icon -----------------
    def on_icon_clicked(self, window_id: Optional[int] = None) -> None:
        view_mode = self.settings_cache.view_mode

        if view_mode == "tab":
            self._open_panel_tab()
            return

        if window_id is None:
            # Resolving the window first may cost the gesture; best effort
            try:
                window_id = self.host.current_window_id()
            except ExternalFailureError as e:
                get_event_logger().system_error("Could not find a window for the side panel", error=e)
                return

        try:
            self.host.open_side_panel(window_id)
        except ExternalFailureError as e:
            get_event_logger().system_error("Opening the side panel failed", error=e, window_id=window_id)
            return
        get_event_logger().panel_opened("side", window_id=window_id)
        self._close_panel_tabs()

    def _open_panel_tab(self) -> None:
        try:
            existing = self.host.query_tabs(url=self.panel.panel_url)
            if existing:
                self.host.update_tab(existing[0].id, active=True)
            else:
                self.host.create_tab(self.panel.panel_url, active=True)
        except ExternalFailureError as e:
            get_event_logger().system_error("Failed to open the panel tab", error=e)
            return
        get_event_logger().panel_opened("tab")

    def _close_panel_tabs(self) -> None:
        try:
            stray = self.host.query_tabs(url=self.panel.panel_url)
            if stray:
                self.host.remove_tabs([tab.id for tab in stray])
        except ExternalFailureError as e:
            get_event_logger().system_debug("Could not close panel tabs", error=str(e))

    # ----------------- shortcuts -----------------
    def on_shortcut(self, command: str) -> Optional[Dict[str, Any]]:
        if command != QUICK_CAPTURE_COMMAND:
            get_event_logger().system_debug(f"Ignoring shortcut: {command}")
            return None
        response = self.dispatcher.invoke("captureActiveTab")
        if not response.get("ok"):
            get_event_logger().system_error(f"Quick capture failed: {response.get('message')}")
        return response

    # ----------------- tab lifecycle -----------------
    def on_tab_lifecycle(self, event: TabLifecycle) -> None:
        if self.settings_cache.show_browsing_tabs:
            self.bus.reload_data()
