"""
Tab host pattern for the tab shelf service.

This module provides the abstraction layer between the shelf and the real
browser: something that owns open tabs and windows and can create, close,
focus and list them. The shelf never touches a browser directly, which keeps
the command handlers testable and lets the same core drive a Playwright
browser or a pure in-memory inventory.

Example:
    >>> from browser_provider import create_tab_host, HostConfig
    >>> host = create_tab_host(HostConfig(provider_type="playwright", headless=True)).start()
    >>> host.create_tab("https://example.com", active=True)
"""
from __future__ import annotations

import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Optional
from playwright.sync_api import BrowserContext, Page, Playwright, sync_playwright
from playwright.sync_api import Error as PlaywrightError
from pydantic import BaseModel, Field

from error_handling import ExternalFailureError
from utils.event_logger import get_event_logger


TAB_CREATED = "created"
TAB_REMOVED = "removed"
TAB_UPDATED = "updated"
TAB_ACTIVATED = "activated"

TabListener = Callable[[str, int], None]


class HostConfig(BaseModel):
    """Configuration for tab hosts."""

    provider_type: str = Field(
        default="playwright",
        description="Tab host type: 'playwright' or 'memory'"
    )
    headless: bool = Field(
        default=False,
        description="Run browser in headless mode"
    )
    viewport_width: int = Field(
        default=1280,
        ge=100,
        description="Browser viewport width"
    )
    viewport_height: int = Field(
        default=800,
        ge=100,
        description="Browser viewport height"
    )
    user_data_dir: Optional[str] = Field(
        default=None,
        description="Profile directory for the persistent context (temporary when unset)"
    )
    channel: Optional[str] = Field(
        default=None,
        description="Browser channel: 'chrome', 'msedge', ... (bundled Chromium when unset)"
    )
    remote_cdp_url: Optional[str] = Field(
        default=None,
        description="CDP endpoint of an already running browser; each context becomes a window"
    )
    extra_args: list[str] = Field(
        default_factory=lambda: [
            "--disable-dev-shm-usage",
            "--disable-infobars",
        ],
        description="Additional browser launch arguments"
    )

    class Config:
        arbitrary_types_allowed = True


@dataclass
class LiveTab:
    """A real, currently open browser tab as reported by the host."""
    id: int
    window_id: int
    url: str = ""
    title: str = ""
    fav_icon_url: str = ""
    pinned: bool = False
    active: bool = False


class TabHost(ABC):
    """
    Abstract base class for tab hosts.

    Every operation is fallible I/O: implementations raise
    ``ExternalFailureError`` when the browser rejects a request.
    """

    def __init__(self):
        self._listeners: List[TabListener] = []

    def start(self) -> TabHost:
        """Acquire browser resources. Returns self for chaining."""
        return self

    def close(self) -> None:
        """Release browser resources."""
        pass

    def add_listener(self, listener: TabListener) -> Callable[[], None]:
        """Subscribe to tab lifecycle changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, change: str, tab_id: int) -> None:
        for listener in list(self._listeners):
            try:
                listener(change, tab_id)
            except Exception as e:
                get_event_logger().system_warning(f"Tab listener failed on {change}", error=str(e))

    @abstractmethod
    def current_window_id(self) -> int:
        """Identifier of the focused window."""

    @abstractmethod
    def query_tabs(
        self,
        window_id: Optional[int] = None,
        active: Optional[bool] = None,
        url: Optional[str] = None,
    ) -> List[LiveTab]:
        """List open tabs, optionally filtered; ``window_id=None`` spans all windows."""

    @abstractmethod
    def get_tab(self, tab_id: int) -> Optional[LiveTab]:
        """Return the tab, or None when it is no longer open."""

    @abstractmethod
    def create_tab(self, url: str, active: bool = True, window_id: Optional[int] = None) -> LiveTab:
        """Open ``url`` in a new tab."""

    @abstractmethod
    def remove_tabs(self, tab_ids: Iterable[int]) -> None:
        """Close the given tabs."""

    @abstractmethod
    def update_tab(self, tab_id: int, active: Optional[bool] = None, pinned: Optional[bool] = None) -> LiveTab:
        """Focus and/or (un)pin a tab."""

    def open_side_panel(self, window_id: int) -> None:
        """Open the side panel UI in ``window_id``."""
        raise ExternalFailureError(f"{type(self).__name__} cannot open a side panel")


class MemoryTabHost(TabHost):
    """
    In-process tab inventory.

    Useful for unit tests, CI pipelines and the interactive console when no
    browser is wanted. Windows and tabs are numbered from 1.

    Example:
        >>> host = MemoryTabHost()
        >>> window_id = host.open_window()
        >>> host.add_tab("https://example.com", title="Example", window_id=window_id)
    """

    def __init__(self):
        super().__init__()
        self.tabs: Dict[int, LiveTab] = {}
        self.windows: Dict[int, List[int]] = {}
        self.focused_window_id: Optional[int] = None
        self.opened_panels: List[int] = []
        self._next_tab_id = 1
        self._next_window_id = 1

    def start(self) -> MemoryTabHost:
        if not self.windows:
            self.open_window()
        return self

    def open_window(self, focus: bool = True) -> int:
        window_id = self._next_window_id
        self._next_window_id += 1
        self.windows[window_id] = []
        if focus or self.focused_window_id is None:
            self.focused_window_id = window_id
        return window_id

    def focus_window(self, window_id: int) -> None:
        if window_id not in self.windows:
            raise ExternalFailureError(f"No window with id: {window_id}")
        self.focused_window_id = window_id

    def add_tab(
        self,
        url: str,
        title: str = "",
        window_id: Optional[int] = None,
        pinned: bool = False,
        active: bool = False,
        fav_icon_url: str = "",
    ) -> LiveTab:
        """Simulate a tab the user opened."""
        if window_id is None:
            window_id = self.focused_window_id if self.focused_window_id is not None else self.open_window()
        if window_id not in self.windows:
            raise ExternalFailureError(f"No window with id: {window_id}")

        tab = LiveTab(
            id=self._next_tab_id,
            window_id=window_id,
            url=url,
            title=title,
            fav_icon_url=fav_icon_url,
            pinned=pinned,
        )
        self._next_tab_id += 1
        self.tabs[tab.id] = tab
        self.windows[window_id].append(tab.id)
        if active or not any(self.tabs[t].active for t in self.windows[window_id] if t != tab.id):
            self._activate(tab.id)
        self._notify(TAB_CREATED, tab.id)
        return replace(tab)

    def _activate(self, tab_id: int) -> None:
        tab = self.tabs[tab_id]
        for other_id in self.windows[tab.window_id]:
            self.tabs[other_id].active = other_id == tab_id

    def current_window_id(self) -> int:
        if self.focused_window_id is None or self.focused_window_id not in self.windows:
            raise ExternalFailureError("No browser window is open")
        return self.focused_window_id

    def query_tabs(self, window_id=None, active=None, url=None) -> List[LiveTab]:
        window_ids = [window_id] if window_id is not None else list(self.windows)
        result = []
        for wid in window_ids:
            for tab_id in self.windows.get(wid, []):
                tab = self.tabs[tab_id]
                if active is not None and tab.active != active:
                    continue
                if url is not None and tab.url != url:
                    continue
                result.append(replace(tab))
        return result

    def get_tab(self, tab_id: int) -> Optional[LiveTab]:
        tab = self.tabs.get(tab_id)
        return replace(tab) if tab else None

    def create_tab(self, url: str, active: bool = True, window_id: Optional[int] = None) -> LiveTab:
        if window_id is None:
            window_id = self.current_window_id()
        return self.add_tab(url, title=url, window_id=window_id, active=active)

    def remove_tabs(self, tab_ids: Iterable[int]) -> None:
        tab_ids = list(tab_ids)
        missing = [tab_id for tab_id in tab_ids if tab_id not in self.tabs]
        if missing:
            raise ExternalFailureError(f"No tab with id: {missing[0]}")
        for tab_id in tab_ids:
            tab = self.tabs.pop(tab_id)
            siblings = self.windows[tab.window_id]
            siblings.remove(tab_id)
            if tab.active and siblings:
                self._activate(siblings[-1])
            self._notify(TAB_REMOVED, tab_id)

    def update_tab(self, tab_id: int, active: Optional[bool] = None, pinned: Optional[bool] = None) -> LiveTab:
        tab = self.tabs.get(tab_id)
        if tab is None:
            raise ExternalFailureError(f"No tab with id: {tab_id}")
        if pinned is not None:
            tab.pinned = pinned
            self._notify(TAB_UPDATED, tab_id)
        if active:
            self._activate(tab_id)
            self.focused_window_id = tab.window_id
            self._notify(TAB_ACTIVATED, tab_id)
        return replace(tab)

    def open_side_panel(self, window_id: int) -> None:
        if window_id not in self.windows:
            raise ExternalFailureError(f"No window with id: {window_id}")
        self.opened_panels.append(window_id)


class PlaywrightTabHost(TabHost):
    """
    Tab host backed by a Playwright-driven Chromium.

    Each browser context is one window; each page is one tab. Pages get small
    integer ids in the order they are first seen. Playwright has no notion of
    pinned tabs, so pinning is tracked by the host itself.

    Example:
        >>> host = PlaywrightTabHost(HostConfig(headless=True)).start()
        >>> tab = host.create_tab("https://example.com")
        >>> host.remove_tabs([tab.id])
        >>> host.close()
    """

    def __init__(self, config: Optional[HostConfig] = None):
        super().__init__()
        self.config = config or HostConfig()
        self._playwright: Optional[Playwright] = None
        self._browser = None
        self._windows: Dict[int, BrowserContext] = {}
        self._pages: Dict[int, Page] = {}
        self._page_ids: Dict[int, int] = {}  # id(page) -> tab id
        self._page_windows: Dict[int, int] = {}  # tab id -> window id
        self._active: Dict[int, int] = {}  # window id -> tab id
        self._pinned: set = set()
        self._focused_window: Optional[int] = None
        self._next_tab_id = 1
        self._next_window_id = 1

    def start(self) -> PlaywrightTabHost:
        """Launch (or connect to) the browser and register its windows."""
        if self._playwright is not None:
            return self

        try:
            self._playwright = sync_playwright().start()
            if self.config.remote_cdp_url:
                self._browser = self._playwright.chromium.connect_over_cdp(self.config.remote_cdp_url)
                contexts = list(self._browser.contexts)
                if not contexts:
                    contexts = [self._browser.new_context(viewport=self._viewport())]
            else:
                user_data_dir = self.config.user_data_dir or tempfile.mkdtemp(prefix="tabshelf_profile_")
                self._browser = self._playwright.chromium.launch_persistent_context(
                    user_data_dir=user_data_dir,
                    headless=self.config.headless,
                    channel=self.config.channel,
                    viewport=self._viewport(),
                    args=list(self.config.extra_args),
                )
                contexts = [self._browser]
        except PlaywrightError as e:
            self.close()
            raise ExternalFailureError(f"Could not start browser: {e}") from e

        for context in contexts:
            self.attach_context(context)
        return self

    def _viewport(self) -> Dict[str, int]:
        return {"width": self.config.viewport_width, "height": self.config.viewport_height}

    def close(self) -> None:
        """Close browser and cleanup."""
        if self._browser:
            try:
                self._browser.close()
            except Exception:
                pass
            self._browser = None

        if self._playwright:
            try:
                self._playwright.stop()
            except Exception:
                pass
            self._playwright = None

        self._windows.clear()
        self._pages.clear()
        self._page_ids.clear()
        self._page_windows.clear()
        self._active.clear()
        self._focused_window = None

    def attach_context(self, context: BrowserContext) -> int:
        """Register a browser context as a window and track its pages."""
        window_id = self._next_window_id
        self._next_window_id += 1
        self._windows[window_id] = context
        if self._focused_window is None:
            self._focused_window = window_id

        for page in list(context.pages):
            self._register_page(page, window_id, notify=False)
        context.on("page", lambda page: self._register_page(page, window_id))
        return window_id

    def _register_page(self, page: Page, window_id: int, notify: bool = True) -> int:
        key = id(page)
        if key in self._page_ids:
            return self._page_ids[key]

        tab_id = self._next_tab_id
        self._next_tab_id += 1
        self._pages[tab_id] = page
        self._page_ids[key] = tab_id
        self._page_windows[tab_id] = window_id
        self._active.setdefault(window_id, tab_id)

        page.on("close", lambda _page: self._forget_page(tab_id))
        page.on("framenavigated", lambda frame: self._on_navigated(tab_id, frame))

        if notify:
            get_event_logger().tab_new(tab_id, url=self._safe_url(page))
            self._notify(TAB_CREATED, tab_id)
        return tab_id

    def _forget_page(self, tab_id: int) -> None:
        page = self._pages.pop(tab_id, None)
        if page is None:
            return
        self._page_ids.pop(id(page), None)
        window_id = self._page_windows.pop(tab_id, None)
        self._pinned.discard(tab_id)
        if window_id is not None and self._active.get(window_id) == tab_id:
            remaining = [t for t, w in self._page_windows.items() if w == window_id]
            if remaining:
                self._active[window_id] = remaining[-1]
            else:
                self._active.pop(window_id, None)
        get_event_logger().tab_closed(tab_id)
        self._notify(TAB_REMOVED, tab_id)

    def _on_navigated(self, tab_id: int, frame) -> None:
        if getattr(frame, "parent_frame", None) is not None:
            return
        if tab_id in self._pages:
            self._notify(TAB_UPDATED, tab_id)

    @staticmethod
    def _safe_url(page: Page) -> str:
        try:
            return page.url or ""
        except Exception:
            return ""

    def _to_live(self, tab_id: int) -> LiveTab:
        page = self._pages[tab_id]
        window_id = self._page_windows[tab_id]
        try:
            title = page.title()
        except Exception:
            title = ""
        return LiveTab(
            id=tab_id,
            window_id=window_id,
            url=self._safe_url(page),
            title=title,
            pinned=tab_id in self._pinned,
            active=self._active.get(window_id) == tab_id,
        )

    def _require_page(self, tab_id: int) -> Page:
        page = self._pages.get(tab_id)
        if page is None or page.is_closed():
            raise ExternalFailureError(f"No tab with id: {tab_id}")
        return page

    def current_window_id(self) -> int:
        if self._focused_window in self._windows:
            return self._focused_window
        if self._windows:
            return next(iter(self._windows))
        raise ExternalFailureError("No browser window is open")

    def query_tabs(self, window_id=None, active=None, url=None) -> List[LiveTab]:
        result = []
        for tab_id in sorted(self._pages):
            if window_id is not None and self._page_windows.get(tab_id) != window_id:
                continue
            if self._pages[tab_id].is_closed():
                continue
            tab = self._to_live(tab_id)
            if active is not None and tab.active != active:
                continue
            if url is not None and tab.url != url:
                continue
            result.append(tab)
        return result

    def get_tab(self, tab_id: int) -> Optional[LiveTab]:
        page = self._pages.get(tab_id)
        if page is None or page.is_closed():
            return None
        return self._to_live(tab_id)

    def create_tab(self, url: str, active: bool = True, window_id: Optional[int] = None) -> LiveTab:
        if window_id is None:
            window_id = self.current_window_id()
        context = self._windows.get(window_id)
        if context is None:
            raise ExternalFailureError(f"No window with id: {window_id}")

        try:
            page = context.new_page()
        except PlaywrightError as e:
            raise ExternalFailureError(f"Failed to open tab: {e}") from e
        tab_id = self._register_page(page, window_id)

        try:
            page.goto(url)
        except PlaywrightError as e:
            get_event_logger().system_warning(f"Failed to navigate tab {tab_id} to {url}", error=str(e))

        if active:
            self._focus(tab_id)
        return self._to_live(tab_id)

    def remove_tabs(self, tab_ids: Iterable[int]) -> None:
        pages = [(tab_id, self._require_page(tab_id)) for tab_id in list(tab_ids)]
        for tab_id, page in pages:
            try:
                page.close()
            except PlaywrightError as e:
                raise ExternalFailureError(f"Failed to close tab {tab_id}: {e}") from e
            self._forget_page(tab_id)

    def update_tab(self, tab_id: int, active: Optional[bool] = None, pinned: Optional[bool] = None) -> LiveTab:
        self._require_page(tab_id)
        if pinned is not None:
            if pinned:
                self._pinned.add(tab_id)
            else:
                self._pinned.discard(tab_id)
            self._notify(TAB_UPDATED, tab_id)
        if active:
            self._focus(tab_id)
        return self._to_live(tab_id)

    def _focus(self, tab_id: int) -> None:
        page = self._require_page(tab_id)
        try:
            page.bring_to_front()
        except PlaywrightError as e:
            raise ExternalFailureError(f"Could not bring tab {tab_id} to front: {e}") from e
        window_id = self._page_windows[tab_id]
        self._active[window_id] = tab_id
        self._focused_window = window_id
        self._notify(TAB_ACTIVATED, tab_id)

    def open_side_panel(self, window_id: int) -> None:
        raise ExternalFailureError("Side panel is not available for Playwright windows")


def create_tab_host(config: HostConfig) -> TabHost:
    """
    Factory function to create the appropriate tab host from config.

    Args:
        config: Host configuration

    Returns:
        TabHost: Appropriate host implementation (not yet started)

    Example:
        >>> host = create_tab_host(HostConfig(provider_type="memory"))
    """
    if config.provider_type == "playwright":
        return PlaywrightTabHost(config)
    elif config.provider_type == "memory":
        return MemoryTabHost()
    else:
        raise ValueError(
            f"Unknown provider_type: {config.provider_type}. "
            f"Must be one of: playwright, memory"
        )
