"""
Public package surface for Tab Shelf.

This module re-exports the primary classes and helpers so consumers can simply:

    from tab_shelf import ShelfService, ShelfConfig
"""

# Service
from shelf_service import ShelfService, create_backend

# Configuration
from shelf_config import (
    ShelfConfig,
    Settings,
    StorageConfig,
    PanelConfig,
    DebugConfig,
)

# Tab hosts
from browser_provider import (
    TabHost,
    MemoryTabHost,
    PlaywrightTabHost,
    create_tab_host,
    HostConfig,
    LiveTab,
)

# Shelf
from tab_management import (
    TabRecord,
    Group,
    GroupKind,
    ShelfStore,
    MemoryBackend,
    JsonFileBackend,
    ShelfManager,
    CommandDispatcher,
    MessageBus,
    SettingsCache,
    TriggerWiring,
    Installed,
    IconClicked,
    ShortcutCommand,
    TabLifecycle,
)

# Errors
from error_handling import (
    ShelfError,
    NotFoundError,
    ForbiddenError,
    EmptyError,
    ExternalFailureError,
    ErrorContext,
    ErrorSeverity,
    ErrorHandler,
)

# Utilities
from event_queue import EventQueue
from utils.event_logger import EventLogger, set_event_logger

__version__ = "0.1.0"

__all__ = [
    # Service
    "ShelfService",
    "create_backend",
    # Configuration
    "ShelfConfig",
    "Settings",
    "StorageConfig",
    "PanelConfig",
    "DebugConfig",
    # Tab hosts
    "TabHost",
    "MemoryTabHost",
    "PlaywrightTabHost",
    "create_tab_host",
    "HostConfig",
    "LiveTab",
    # Shelf
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
    # Errors
    "ShelfError",
    "NotFoundError",
    "ForbiddenError",
    "EmptyError",
    "ExternalFailureError",
    "ErrorContext",
    "ErrorSeverity",
    "ErrorHandler",
    # Utilities
    "EventQueue",
    "EventLogger",
    "set_event_logger",
]
