"""
TabRecord and Group - the shelved data model.

Groups are a tagged variant: every group carries a ``GroupKind`` that is
derived once, from the reserved ids, when a record is parsed. Everything
downstream dispatches on the kind.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import time


PINNED_GROUP_ID = "pinned-default"
QUICK_GROUP_ID = "quick-default"
BROWSING_GROUP_ID = "browsing-live"

PINNED_GROUP_NAME = "Pinned"
QUICK_GROUP_NAME = "Quick Capture"
BROWSING_GROUP_NAME = "Currently Browsing"
DEFAULT_GROUP_NAME = "New Group"

BROWSING_GROUP_TYPE = "browsing"


class GroupKind(str, Enum):
    """Which variant a group is"""
    PINNED = "pinned"
    QUICK_CAPTURE = "quick_capture"
    USER = "user"
    LIVE_BROWSING = "live_browsing"

    @classmethod
    def for_id(cls, group_id: str) -> "GroupKind":
        """Resolve the kind of a group from its id."""
        return _RESERVED_KINDS.get(group_id, cls.USER)

    @property
    def is_system(self) -> bool:
        return self in (GroupKind.PINNED, GroupKind.QUICK_CAPTURE)


_RESERVED_KINDS = {
    PINNED_GROUP_ID: GroupKind.PINNED,
    QUICK_GROUP_ID: GroupKind.QUICK_CAPTURE,
    BROWSING_GROUP_ID: GroupKind.LIVE_BROWSING,
}


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class TabRecord:
    """
    A shelved tab.

    Attributes:
        id: Opaque identifier, stable once created
        url: Address the tab is restored to
        title: Page title at capture time
        custom_title: User-chosen title; empty means "use title"
        fav_icon_url: Favicon address at capture time
        live_tab_id: Real browser tab id (live browsing pseudo-tabs only)
    """
    id: str
    url: str
    title: str = ""
    custom_title: str = ""
    fav_icon_url: str = ""
    live_tab_id: Optional[int] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("id is required")

    @property
    def display_title(self) -> str:
        return self.custom_title or self.title or self.url

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "customTitle": self.custom_title,
            "favIconUrl": self.fav_icon_url,
        }
        if self.live_tab_id is not None:
            data["liveTabId"] = self.live_tab_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TabRecord":
        return cls(
            id=data.get("id"),
            url=data.get("url") or "",
            title=data.get("title") or "",
            custom_title=data.get("customTitle") or "",
            fav_icon_url=data.get("favIconUrl") or "",
            live_tab_id=data.get("liveTabId"),
        )


@dataclass
class Group:
    """
    An ordered, named collection of shelved tabs.

    Attributes:
        id: Opaque identifier (fixed for system groups)
        name: Display name
        kind: Variant tag
        created_at: Creation time in epoch milliseconds (0 for system groups)
        persistent: When True, restoring does not remove tabs
        tabs: Ordered tab records
    """
    id: str
    name: str
    kind: GroupKind = GroupKind.USER
    created_at: int = 0
    persistent: bool = False
    tabs: List[TabRecord] = field(default_factory=list)

    def __post_init__(self):
        if not self.id:
            raise ValueError("id is required")

    def index_of(self, tab_id: Any) -> int:
        for index, tab in enumerate(self.tabs):
            if tab.id == tab_id:
                return index
        return -1

    def find_tab(self, tab_id: Any) -> Optional[TabRecord]:
        index = self.index_of(tab_id)
        return self.tabs[index] if index >= 0 else None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at,
            "persistent": self.persistent,
            "tabs": [tab.to_dict() for tab in self.tabs],
        }
        if self.kind is GroupKind.LIVE_BROWSING:
            data["type"] = BROWSING_GROUP_TYPE
        return data

    def summary(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "persistent": self.persistent}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Group":
        group_id = data.get("id")
        kind = GroupKind.for_id(group_id)
        if data.get("type") == BROWSING_GROUP_TYPE:
            kind = GroupKind.LIVE_BROWSING
        tabs = []
        for raw_tab in data.get("tabs") or []:
            if isinstance(raw_tab, dict) and raw_tab.get("id"):
                tabs.append(TabRecord.from_dict(raw_tab))
        return cls(
            id=group_id,
            name=data.get("name") or "",
            kind=kind,
            created_at=data.get("createdAt") or 0,
            persistent=bool(data.get("persistent", False)),
            tabs=tabs,
        )

    @classmethod
    def pinned(cls, tabs: Optional[List[TabRecord]] = None) -> "Group":
        return cls(id=PINNED_GROUP_ID, name=PINNED_GROUP_NAME, kind=GroupKind.PINNED,
                   persistent=True, tabs=tabs or [])

    @classmethod
    def quick_capture(cls, tabs: Optional[List[TabRecord]] = None) -> "Group":
        return cls(id=QUICK_GROUP_ID, name=QUICK_GROUP_NAME, kind=GroupKind.QUICK_CAPTURE,
                   persistent=False, tabs=tabs or [])

    @classmethod
    def browsing(cls, tabs: Optional[List[TabRecord]] = None) -> "Group":
        # persistent only so the UI never offers to delete it
        return cls(id=BROWSING_GROUP_ID, name=BROWSING_GROUP_NAME, kind=GroupKind.LIVE_BROWSING,
                   persistent=True, tabs=tabs or [])
