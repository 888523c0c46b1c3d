"""
ShelfManager - the command handlers that read, mutate and persist the shelf.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from browser_provider import LiveTab, TabHost
from error_handling import (
    EmptyError,
    ExternalFailureError,
    ForbiddenError,
    NotFoundError,
    ShelfError,
)
from shelf_config import PanelConfig, apply_settings_patch, default_settings, normalize_settings
from utils.event_logger import get_event_logger
from .browsing_snapshot import build_browsing_group, parse_live_tab_id
from .ids import create_id
from .reconciler import reconcile, render_groups
from .settings_cache import SettingsCache
from .shelf_store import ShelfStore
from .tab_info import DEFAULT_GROUP_NAME, Group, GroupKind, TabRecord, now_ms


# One message per operation the live browsing group refuses
LIVE_GROUP_ERRORS = {
    "renameGroup": "The browsing group cannot be renamed",
    "renameTab": "Tabs in the browsing group cannot be renamed",
    "removeTab": "Tabs in the browsing group cannot be deleted, close them instead",
    "clearGroup": "The browsing group cannot be cleared",
    "removeGroup": "The browsing group cannot be deleted",
    "setGroupPersistent": "The browsing group is always persistent",
    "moveTab": "Tabs cannot be dragged into or out of the browsing group",
    "restoreGroup": "The browsing group is already open",
}


@dataclass
class ShelfState:
    """Canonical groups plus merged settings, as read at one moment"""
    groups: List[Group] = field(default_factory=list)
    settings: Dict[str, Any] = field(default_factory=default_settings)

    def find_group(self, group_id: str) -> Optional[Group]:
        for group in self.groups:
            if group.id == group_id:
                return group
        return None

    def group_of_kind(self, kind: GroupKind) -> Group:
        for group in self.groups:
            if group.kind is kind:
                return group
        raise NotFoundError(f"No {kind.value} group")


def destination_index(
    length: int,
    source_index: int,
    target_index: Optional[int],
    insert_after: bool,
    same_group: bool,
) -> int:
    """
    Where to insert a moved tab once it has been removed from its source.

    The index is computed against the destination as it was *before* the
    removal. Within one group, removing a tab that sat before the target
    shifts the target left by one, so the index is decremented to match.

    Args:
        length: Number of tabs in the destination before the removal
        source_index: Position of the moved tab in its source group
        target_index: Position of the drop target, or None to append
        insert_after: Insert after (True) or before (False) the target
        same_group: Source and destination are the same group

    Returns:
        Insert position, clamped into the valid range after the removal
    """
    upper = length - 1 if same_group else length
    if target_index is None or target_index < 0:
        return max(0, upper)
    index = target_index + (1 if insert_after else 0)
    if same_group and source_index < index:
        index -= 1
    return max(0, min(index, upper))


class ShelfManager:
    """
    Command handlers for the tab shelf.

    Every handler reads canonical state, applies one change, persists once
    and returns a result, or raises a ShelfError subclass without writing.

    Responsibilities:
    - Capture tabs from the browser into groups
    - Restore shelved tabs back into the browser
    - Rename, reorder, move and delete groups and tabs
    - Read and update settings
    """

    def __init__(
        self,
        store: ShelfStore,
        host: TabHost,
        settings_cache: Optional[SettingsCache] = None,
        panel: Optional[PanelConfig] = None,
    ):
        """
        Initialize ShelfManager.

        Args:
            store: Persisted store for groups and settings
            host: Tab host that owns the real browser tabs
            settings_cache: Cache to keep in sync when settings change
            panel: Panel location and internal URL prefixes
        """
        self.store = store
        self.host = host
        self.settings_cache = settings_cache
        self.panel = panel or PanelConfig()

    # ----------------- state -----------------
    def load_state(self) -> ShelfState:
        """Read and reconcile the persisted groups and settings."""
        return ShelfState(
            groups=reconcile(self.store.read_raw_groups()),
            settings=normalize_settings(self.store.read_settings()),
        )

    def save_groups(self, groups: List[Group]) -> None:
        self.store.write_groups(groups)

    def _find_group(self, state: ShelfState, group_id: str) -> Group:
        if GroupKind.for_id(group_id) is GroupKind.LIVE_BROWSING:
            return Group.browsing()
        group = state.find_group(group_id)
        if group is None:
            raise NotFoundError("Group not found", group_id=group_id)
        return group

    @staticmethod
    def _find_tab(group: Group, tab_id: str) -> TabRecord:
        tab = group.find_tab(tab_id)
        if tab is None:
            raise NotFoundError("Tab not found", group_id=group.id, tab_id=tab_id)
        return tab

    @staticmethod
    def _refuse_live(group: Group, operation: str) -> None:
        if group.kind is GroupKind.LIVE_BROWSING:
            raise ForbiddenError(LIVE_GROUP_ERRORS[operation], group_id=group.id, command=operation)

    @staticmethod
    def _record_from_live(tab: LiveTab) -> TabRecord:
        return TabRecord(
            id=create_id("tab"),
            url=tab.url,
            title=tab.title or "",
            custom_title="",
            fav_icon_url=tab.fav_icon_url or "",
        )

    @staticmethod
    def _insert_user_group(groups: List[Group], group: Group) -> List[Group]:
        """New user groups go first, right after the pinned group."""
        pinned = [g for g in groups if g.kind is GroupKind.PINNED]
        others = [g for g in groups if g.kind is not GroupKind.PINNED]
        return [*pinned, group, *others]

    def _close_captured(self, tab_ids: List[int]) -> None:
        # Not rolled back: the shelved copies stay even if the originals survive
        try:
            self.host.remove_tabs(tab_ids)
        except ExternalFailureError as e:
            get_event_logger().system_error(
                "Captured tabs could not be closed, they remain open and shelved",
                error=e, tab_count=len(tab_ids),
            )

    # ----------------- capture -----------------
    def capture_window(self) -> Group:
        """Shelve every unpinned tab of the current window into a new group."""
        window_id = self.host.current_window_id()
        eligible = [tab for tab in self.host.query_tabs(window_id=window_id) if not tab.pinned and tab.url]
        if not eligible:
            raise EmptyError("The current window has no tabs to capture")

        state = self.load_state()
        group = Group(
            id=create_id("group"),
            name=f"Captured {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            kind=GroupKind.USER,
            created_at=now_ms(),
            persistent=False,
            tabs=[self._record_from_live(tab) for tab in eligible],
        )
        self.save_groups(self._insert_user_group(state.groups, group))
        get_event_logger().group_captured(group.id, len(group.tabs), window_id=window_id)

        self._close_captured([tab.id for tab in eligible])
        return group

    def capture_active_tab(self) -> TabRecord:
        """Shelve the active tab of the current window into the quick-capture group."""
        window_id = self.host.current_window_id()
        active = self.host.query_tabs(window_id=window_id, active=True)
        live = active[0] if active else None
        if live is None or not live.url:
            raise EmptyError("There is no active tab to capture")

        state = self.load_state()
        quick = state.group_of_kind(GroupKind.QUICK_CAPTURE)
        record = self._record_from_live(live)
        quick.tabs.insert(0, record)
        self.save_groups(state.groups)
        get_event_logger().tab_captured(record.id, url=record.url)

        self._close_captured([live.id])
        return record

    # ----------------- read -----------------
    def get_data(self, window_id: Optional[int] = None) -> Dict[str, Any]:
        state = self.load_state()
        browsing = None
        if state.settings.get("showBrowsingTabs"):
            browsing = build_browsing_group(
                self.host,
                window_id=window_id,
                excluded_prefixes=self.panel.internal_schemes,
                panel_url=self.panel.panel_url,
            )
        return {"groups": render_groups(state.groups, browsing), "settings": state.settings}

    def get_user_groups(self) -> List[Dict[str, Any]]:
        return [group.summary() for group in self.load_state().groups if group.kind is GroupKind.USER]

    # ----------------- settings -----------------
    def set_settings(self, patch: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        if patch is not None and not isinstance(patch, Mapping):
            raise ShelfError("Settings must be an object")
        try:
            merged = apply_settings_patch(self.store.read_settings(), patch)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}" for err in e.errors()
            )
            raise ShelfError(f"Invalid settings: {problems}") from e

        self.store.write_settings(merged)
        if self.settings_cache is not None:
            self.settings_cache.update(merged)
        get_event_logger().settings_changed(merged)
        return merged

    def initialize_settings(self) -> Dict[str, Any]:
        """Write the defaults on first run, otherwise just refresh the cache."""
        current = self.store.read_settings()
        if current is None:
            settings = default_settings()
            self.store.write_settings(settings)
        else:
            settings = normalize_settings(current)
        if self.settings_cache is not None:
            self.settings_cache.update(settings)
        return settings

    # ----------------- groups -----------------
    def add_group(self, name: Optional[str] = None) -> Group:
        state = self.load_state()
        group = Group(
            id=create_id("group"),
            name=name or DEFAULT_GROUP_NAME,
            kind=GroupKind.USER,
            created_at=now_ms(),
            persistent=False,
        )
        self.save_groups(self._insert_user_group(state.groups, group))
        return group

    def rename_group(self, group_id: str, name: Optional[str]) -> Group:
        state = self.load_state()
        group = self._find_group(state, group_id)
        self._refuse_live(group, "renameGroup")
        if group.kind.is_system:
            raise ForbiddenError("Default groups cannot be renamed", group_id=group_id)
        group.name = name or group.name
        self.save_groups(state.groups)
        return group

    def set_group_persistent(self, group_id: str, persistent: Any) -> Group:
        state = self.load_state()
        group = self._find_group(state, group_id)
        self._refuse_live(group, "setGroupPersistent")
        if group.kind.is_system:
            raise ForbiddenError("Default groups cannot change persistence", group_id=group_id)
        if isinstance(persistent, bool):
            group.persistent = persistent
        elif isinstance(persistent, int) and persistent in (0, 1):
            group.persistent = bool(persistent)
        else:
            raise ShelfError("persistent must be a boolean", group_id=group_id, command="setGroupPersistent")
        self.save_groups(state.groups)
        return group

    def clear_group(self, group_id: str) -> bool:
        state = self.load_state()
        group = self._find_group(state, group_id)
        self._refuse_live(group, "clearGroup")
        group.tabs = []
        self.save_groups(state.groups)
        return True

    def remove_group(self, group_id: str) -> bool:
        state = self.load_state()
        group = self._find_group(state, group_id)
        self._refuse_live(group, "removeGroup")
        if group.kind.is_system:
            raise ForbiddenError("Default groups cannot be deleted", group_id=group_id)
        if group.persistent:
            raise ForbiddenError("Persistent groups cannot be deleted", group_id=group_id)
        self.save_groups([g for g in state.groups if g.id != group_id])
        get_event_logger().group_removed(group_id)
        return True

    # ----------------- tabs -----------------
    def rename_tab(self, group_id: str, tab_id: str, title: Optional[str]) -> TabRecord:
        state = self.load_state()
        group = self._find_group(state, group_id)
        self._refuse_live(group, "renameTab")
        tab = self._find_tab(group, tab_id)
        tab.custom_title = title or tab.custom_title
        self.save_groups(state.groups)
        return tab

    def remove_tab(self, group_id: str, tab_id: str) -> bool:
        state = self.load_state()
        group = self._find_group(state, group_id)
        self._refuse_live(group, "removeTab")
        tab = self._find_tab(group, tab_id)
        group.tabs.remove(tab)
        self.save_groups(state.groups)
        return True

    def move_tab(
        self,
        from_group_id: str,
        to_group_id: str,
        tab_id: str,
        target_tab_id: Optional[str] = None,
        insert_after: bool = False,
    ) -> bool:
        """
        Move a tab within a group or across groups.

        Without a target the tab goes to the end of the destination;
        otherwise right before or after the target tab.
        """
        for group_id in (from_group_id, to_group_id):
            if GroupKind.for_id(group_id) is GroupKind.LIVE_BROWSING:
                raise ForbiddenError(LIVE_GROUP_ERRORS["moveTab"], group_id=group_id, command="moveTab")
        if from_group_id == to_group_id and target_tab_id is not None and tab_id == target_tab_id:
            return True

        state = self.load_state()
        source = self._find_group(state, from_group_id)
        destination = self._find_group(state, to_group_id)

        source_index = source.index_of(tab_id)
        if source_index < 0:
            raise NotFoundError("Tab not found", group_id=from_group_id, tab_id=tab_id)

        same_group = source is destination
        target_index = destination.index_of(target_tab_id) if target_tab_id is not None else None
        index = destination_index(
            length=len(destination.tabs),
            source_index=source_index,
            target_index=target_index,
            insert_after=bool(insert_after),
            same_group=same_group,
        )
        tab = source.tabs.pop(source_index)
        destination.tabs.insert(index, tab)
        self.save_groups(state.groups)
        get_event_logger().tab_moved(tab_id, from_group_id, to_group_id, index)
        return True

    # ----------------- restore -----------------
    def restore_tab(self, group_id: str, tab_id: str, active: bool = True, window_id: Optional[int] = None) -> bool:
        """
        Reopen a shelved tab.

        Non-persistent groups give the tab up once it is open again. For the
        live browsing group the already-open tab is focused instead.
        """
        state = self.load_state()
        group = self._find_group(state, group_id)
        if group.kind is GroupKind.LIVE_BROWSING:
            return self._focus_live_tab(tab_id)

        tab = self._find_tab(group, tab_id)
        self.host.create_tab(tab.url, active=bool(active), window_id=window_id)
        if not group.persistent:
            group.tabs.remove(tab)
            self.save_groups(state.groups)
        get_event_logger().tab_restored(tab.id, group.id, kept=group.persistent)
        return True

    def _focus_live_tab(self, tab_id: Any) -> bool:
        live_id = parse_live_tab_id(tab_id)
        if live_id is None:
            raise NotFoundError("Tab not found", tab_id=tab_id)
        if self.host.get_tab(live_id) is None:
            raise ExternalFailureError("Tab is already closed", tab_id=live_id)
        self.host.update_tab(live_id, active=True)
        return True

    def restore_group(self, group_id: str) -> bool:
        """Reopen every tab of a group, one after another, in order."""
        state = self.load_state()
        group = self._find_group(state, group_id)
        self._refuse_live(group, "restoreGroup")

        for tab in list(group.tabs):
            self.host.create_tab(tab.url, active=False)

        count = len(group.tabs)
        if not group.persistent:
            group.tabs = []
            self.save_groups(state.groups)
        get_event_logger().group_restored(group.id, count, kept=group.persistent)
        return True

    def close_live_tab(self, tab_id: Any) -> bool:
        live_id = parse_live_tab_id(tab_id)
        if live_id is None:
            raise NotFoundError("Tab not found", tab_id=tab_id)
        self.host.remove_tabs([live_id])
        return True
