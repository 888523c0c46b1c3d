"""
Utility modules for the tab shelf service.
"""
from .event_logger import EventLogger, EventType, ShelfEvent, get_event_logger, set_event_logger

__all__ = ["EventLogger", "EventType", "ShelfEvent", "get_event_logger", "set_event_logger"]
