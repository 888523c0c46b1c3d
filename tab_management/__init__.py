"""
Tab Management - shelved groups, the persisted store and the command handlers

Provides the tab shelf data model, reconciliation of stored groups, the live
browsing snapshot and the command/trigger plumbing around ShelfManager.
"""
from .tab_info import TabRecord, Group, GroupKind
from .shelf_store import ShelfStore, MemoryBackend, JsonFileBackend
from .tab_manager import ShelfManager
from .dispatcher import CommandDispatcher
from .message_bus import MessageBus
from .settings_cache import SettingsCache
from .triggers import TriggerWiring, Installed, IconClicked, ShortcutCommand, TabLifecycle

__all__ = [
    "TabRecord",
    "Group",
    "GroupKind",
    "ShelfStore",
    "MemoryBackend",
    "JsonFileBackend",
    "ShelfManager",
    "CommandDispatcher",
    "MessageBus",
    "SettingsCache",
    "TriggerWiring",
    "Installed",
    "IconClicked",
    "ShortcutCommand",
    "TabLifecycle",
]
