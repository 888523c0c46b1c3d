"""
Live browsing snapshot - a never-persisted group mirroring the open tabs of a window.
"""
from typing import Iterable, Optional, Sequence

from browser_provider import LiveTab, TabHost
from error_handling import ExternalFailureError
from utils.event_logger import get_event_logger
from .tab_info import Group, TabRecord


DEFAULT_INTERNAL_PREFIXES = (
    "chrome://",
    "chrome-extension://",
    "edge://",
    "about:",
    "devtools://",
    "view-source:",
)

LIVE_TAB_PREFIX = "live-"


def live_record_id(live_tab_id: int) -> str:
    return f"{LIVE_TAB_PREFIX}{live_tab_id}"


def is_listable(tab: LiveTab, excluded_prefixes: Iterable[str]) -> bool:
    """True when the tab has a URL that is neither browser-internal nor our own UI."""
    if not tab.url:
        return False
    return not any(tab.url.startswith(prefix) for prefix in excluded_prefixes if prefix)


def resolve_window(host: TabHost, window_id: Optional[int]) -> Optional[int]:
    """The requested window, else the focused one, else None (all windows)."""
    if window_id is not None:
        return window_id
    try:
        return host.current_window_id()
    except ExternalFailureError as e:
        get_event_logger().system_debug("No focused window, listing tabs of all windows", error=str(e))
        return None


def build_browsing_group(
    host: TabHost,
    window_id: Optional[int] = None,
    excluded_prefixes: Sequence[str] = DEFAULT_INTERNAL_PREFIXES,
    panel_url: Optional[str] = None,
) -> Group:
    """
    Snapshot the open tabs of a window as the live browsing group.

    Args:
        host: Tab host to query
        window_id: Target window; the focused window when omitted
        excluded_prefixes: URL prefixes that are never listed
        panel_url: Address of our own panel UI, also never listed

    Returns:
        A LIVE_BROWSING group whose tabs carry ``live_tab_id``
    """
    prefixes = list(excluded_prefixes)
    if panel_url:
        prefixes.append(panel_url)

    target = resolve_window(host, window_id)
    tabs = []
    for live in host.query_tabs(window_id=target):
        if not is_listable(live, prefixes):
            continue
        tabs.append(TabRecord(
            id=live_record_id(live.id),
            url=live.url,
            title=live.title,
            custom_title=live.title or live.url,
            fav_icon_url=live.fav_icon_url or "",
            live_tab_id=live.id,
        ))
    return Group.browsing(tabs)


def parse_live_tab_id(tab_id) -> Optional[int]:
    """Real tab id behind a live pseudo-tab id (``live-12`` or ``12``)."""
    if isinstance(tab_id, bool):
        return None
    if isinstance(tab_id, int):
        return tab_id
    text = str(tab_id or "")
    if text.startswith(LIVE_TAB_PREFIX):
        text = text[len(LIVE_TAB_PREFIX):]
    try:
        return int(text)
    except ValueError:
        return None
