"""
Configuration models for the tab shelf service.

This module provides structured, type-safe configuration using Pydantic models:
the user-facing ``Settings`` record that is persisted next to the groups, and
the ``ShelfConfig`` object that tells the service where to store data, which
tab host to drive and how chatty to be.

Example:
    >>> from shelf_config import ShelfConfig, StorageConfig
    >>> config = ShelfConfig(storage=StorageConfig(path="/tmp/shelf.json"))
    >>> service = ShelfService(config=config)
"""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Mapping, Optional
from pydantic import BaseModel, Field, ValidationError
from browser_provider import HostConfig


class Settings(BaseModel):
    """User settings persisted under the ``settings`` key.

    Unknown keys are kept as-is so newer UIs can store their own options.
    """

    theme: Literal["light", "dark", "system"] = Field(
        default="dark",
        description="Colour theme; only read by the panel UI"
    )
    viewMode: Literal["side", "tab"] = Field(
        default="side",
        description="Open the panel as a side panel or as a regular tab"
    )
    showBrowsingTabs: bool = Field(
        default=False,
        description="Append the live 'currently browsing' group to getData"
    )

    class Config:
        extra = "allow"


RECOGNIZED_SETTINGS = ("theme", "viewMode", "showBrowsingTabs")


def default_settings() -> Dict[str, Any]:
    return Settings().model_dump()


def normalize_settings(raw: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Merge stored settings over the defaults.

    A recognized key holding an invalid value falls back to its default
    instead of failing the whole read.
    """
    data = dict(raw) if isinstance(raw, Mapping) else {}
    try:
        return Settings(**data).model_dump()
    except ValidationError:
        pass
    for key in RECOGNIZED_SETTINGS:
        if key not in data:
            continue
        try:
            Settings(**{key: data[key]})
        except ValidationError:
            data.pop(key)
    return Settings(**data).model_dump()


def apply_settings_patch(current: Optional[Mapping[str, Any]], patch: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Merge ``patch`` over ``current``; raises ValidationError on a bad value."""
    merged = normalize_settings(current)
    merged.update(dict(patch or {}))
    return Settings(**merged).model_dump()


class StorageConfig(BaseModel):
    """Where the groups/settings blob lives."""

    backend: Literal["file", "memory"] = Field(
        default="file",
        description="Storage backend: 'file' (JSON document) or 'memory'"
    )
    path: str = Field(
        default="~/.tabshelf/storage.json",
        description="Location of the JSON document for the file backend"
    )

    class Config:
        arbitrary_types_allowed = True


class PanelConfig(BaseModel):
    """Where the panel UI lives and which URLs count as browser-internal."""

    panel_url: str = Field(
        default="chrome-extension://tabshelf/panel.html",
        description="URL of the panel UI when it is opened as a tab"
    )
    internal_schemes: List[str] = Field(
        default_factory=lambda: [
            "chrome://",
            "chrome-extension://",
            "edge://",
            "about:",
            "devtools://",
            "view-source:",
        ],
        description="URL prefixes hidden from the live browsing group"
    )

    class Config:
        arbitrary_types_allowed = True


class DebugConfig(BaseModel):
    """Debugging and logging configuration."""

    debug_mode: bool = Field(
        default=False,
        description="Print every logged event to the console"
    )

    class Config:
        arbitrary_types_allowed = True


class ShelfConfig(BaseModel):
    """
    Main configuration object for the tab shelf service.

    Example:
        >>> config = ShelfConfig(
        ...     storage=StorageConfig(backend="memory"),
        ...     browser=HostConfig(provider_type="memory"),
        ... )
        >>> service = ShelfService(config=config)
    """

    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Persisted store configuration"
    )
    panel: PanelConfig = Field(
        default_factory=PanelConfig,
        description="Panel UI configuration"
    )
    browser: HostConfig = Field(
        default_factory=HostConfig,
        description="Tab host configuration"
    )
    logging: DebugConfig = Field(
        default_factory=DebugConfig,
        description="Debug and logging configuration"
    )

    class Config:
        arbitrary_types_allowed = True

    @classmethod
    def memory(cls) -> ShelfConfig:
        """
        Create a configuration that keeps everything in process memory.

        Returns:
            ShelfConfig with memory storage and the in-memory tab host
        """
        return cls(
            storage=StorageConfig(backend="memory"),
            browser=HostConfig(provider_type="memory"),
        )

    @classmethod
    def debug(cls) -> ShelfConfig:
        """
        Create a configuration optimized for debugging.

        Returns:
            ShelfConfig with console logging and a visible browser
        """
        return cls(
            logging=DebugConfig(debug_mode=True),
            browser=HostConfig(headless=False),
        )
