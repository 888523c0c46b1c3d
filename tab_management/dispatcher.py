"""
CommandDispatcher - routes ``{type, ...fields}`` messages to ShelfManager handlers.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from error_handling import ErrorHandler, error_message
from utils.event_logger import get_event_logger
from .message_bus import MessageBus
from .tab_manager import ShelfManager


Handler = Callable[[Dict[str, Any]], Any]


@dataclass
class CommandSpec:
    """A registered command"""
    name: str
    handler: Handler
    mutates: bool = False
    on_success: Optional[Callable[[Any], None]] = None


def to_payload(value: Any) -> Any:
    """Convert handler results into plain JSON-friendly data."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {key: to_payload(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_payload(item) for item in value]
    return value


class CommandDispatcher:
    """
    Maps command names to handlers and wraps every call in the same envelope.

    Success yields ``{"ok": True, "result": ...}``; any exception yields
    ``{"ok": False, "message": ...}``. Unknown command names are ignored and
    produce no response at all. After a successful mutating command every
    listening surface is told to reload.

    Example:
        >>> dispatcher = CommandDispatcher(manager, bus)
        >>> dispatcher.dispatch({"type": "addGroup", "name": "Reading"})
        {'ok': True, 'result': {...}}
    """

    def __init__(self, manager: ShelfManager, bus: MessageBus, error_handler: Optional[ErrorHandler] = None):
        self.manager = manager
        self.bus = bus
        self.error_handler = error_handler or ErrorHandler()
        self._commands: Dict[str, CommandSpec] = {}
        self._register_defaults()

    def register(
        self,
        name: str,
        handler: Handler,
        mutates: bool = False,
        on_success: Optional[Callable[[Any], None]] = None,
    ) -> None:
        self._commands[name] = CommandSpec(name=name, handler=handler, mutates=mutates, on_success=on_success)

    def has_command(self, name: str) -> bool:
        return name in self._commands

    @property
    def command_names(self):
        return sorted(self._commands)

    def _register_defaults(self) -> None:
        m = self.manager
        self.register("captureWindow", lambda msg: m.capture_window(), mutates=True)
        self.register("captureActiveTab", lambda msg: m.capture_active_tab(), mutates=True)
        self.register("getData", lambda msg: m.get_data(window_id=msg.get("windowId")))
        self.register(
            "setSettings",
            lambda msg: m.set_settings(msg.get("settings")),
            on_success=self.bus.settings_changed,
        )
        self.register("initializeSettings", lambda msg: m.initialize_settings())
        self.register("addGroup", lambda msg: m.add_group(msg.get("name")), mutates=True)
        self.register("renameGroup", lambda msg: m.rename_group(msg.get("groupId"), msg.get("name")), mutates=True)
        self.register(
            "renameTab",
            lambda msg: m.rename_tab(msg.get("groupId"), msg.get("tabId"), msg.get("title")),
            mutates=True,
        )
        self.register("removeTab", lambda msg: m.remove_tab(msg.get("groupId"), msg.get("tabId")), mutates=True)
        self.register("clearGroup", lambda msg: m.clear_group(msg.get("groupId")), mutates=True)
        self.register("removeGroup", lambda msg: m.remove_group(msg.get("groupId")), mutates=True)
        self.register(
            "restoreTab",
            lambda msg: m.restore_tab(
                msg.get("groupId"),
                msg.get("tabId"),
                active=msg.get("active", True),
                window_id=msg.get("windowId"),
            ),
            mutates=True,
        )
        self.register("restoreGroup", lambda msg: m.restore_group(msg.get("groupId")), mutates=True)
        self.register(
            "moveTab",
            lambda msg: m.move_tab(
                msg.get("fromGroupId"),
                msg.get("toGroupId"),
                msg.get("tabId"),
                target_tab_id=msg.get("targetTabId"),
                insert_after=bool(msg.get("insertAfter", False)),
            ),
            mutates=True,
        )
        self.register("getUserGroups", lambda msg: m.get_user_groups())
        self.register(
            "setGroupPersistent",
            lambda msg: m.set_group_persistent(msg.get("groupId"), msg.get("persistent")),
            mutates=True,
        )
        self.register("closeLiveTab", lambda msg: m.close_live_tab(msg.get("tabId")), mutates=True)

    def dispatch(self, message: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Handle one inbound message.

        Args:
            message: ``{"type": <command>, ...fields}``

        Returns:
            The response envelope, or None for an unknown command
        """
        if not isinstance(message, Mapping):
            get_event_logger().command_ignored(type(message).__name__)
            return None
        name = message.get("type")
        if not isinstance(name, str) or name not in self._commands:
            get_event_logger().command_ignored(name)
            return None
        return self.invoke(name, message)

    def invoke(self, name: str, payload: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Run a registered command; the single path shared by messages and triggers."""
        spec = self._commands.get(name)
        if spec is None:
            raise KeyError(f"Unknown command: {name}")

        logger = get_event_logger()
        logger.command_start(name)
        try:
            result = spec.handler(dict(payload or {}))
            response = {"ok": True, "result": to_payload(result)}
        except Exception as e:
            context = self.error_handler.record(e, command=name)
            message = error_message(e)
            logger.command_failure(name, error=message, error_type=context.error_type)
            return {"ok": False, "message": message}

        logger.command_success(name)
        self._fan_out(spec, response["result"])
        return response

    def _fan_out(self, spec: CommandSpec, result: Any) -> None:
        try:
            if spec.on_success is not None:
                spec.on_success(result)
            if spec.mutates:
                self.bus.reload_data()
        except Exception as e:
            get_event_logger().system_warning(f"Change notification after {spec.name} failed", error=str(e))
