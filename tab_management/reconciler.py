"""
Turns the raw stored group list into the canonical, render-ready order:

    [pinned, *user groups in stored order, quick capture, (live browsing)]
"""
from typing import Any, Iterable, List, Optional

from utils.event_logger import get_event_logger
from .tab_info import (
    Group,
    GroupKind,
    PINNED_GROUP_NAME,
    QUICK_GROUP_NAME,
)


def parse_groups(raw_groups: Iterable[Any]) -> List[Group]:
    """Parse stored records, skipping anything malformed."""
    groups = []
    for raw in raw_groups or []:
        if not isinstance(raw, dict):
            continue
        try:
            groups.append(Group.from_dict(raw))
        except ValueError as e:
            get_event_logger().system_warning("Skipping malformed stored group", error=str(e))
    return groups


def ensure_pinned_group(groups: List[Group]) -> Group:
    """Find the pinned group, force-correcting it, or insert a fresh one first."""
    for group in groups:
        if group.kind is GroupKind.PINNED:
            group.name = PINNED_GROUP_NAME
            group.persistent = True
            return group
    pinned = Group.pinned()
    groups.insert(0, pinned)
    return pinned


def ensure_quick_group(groups: List[Group]) -> Group:
    """Find the quick-capture group, force-correcting it, or append a fresh one."""
    for group in groups:
        if group.kind is GroupKind.QUICK_CAPTURE:
            group.name = QUICK_GROUP_NAME
            group.persistent = False
            return group
    quick = Group.quick_capture()
    groups.append(quick)
    return quick


def reconcile(raw_groups: Iterable[Any]) -> List[Group]:
    """
    Build the canonical persisted group list.

    Missing system groups are synthesized; present ones keep their tabs but
    get their canonical name and persistence flag back. Stale live browsing
    records from older data are dropped. When a system id appears twice the
    first occurrence wins.
    """
    groups = parse_groups(raw_groups)
    pinned = ensure_pinned_group(groups)
    quick = ensure_quick_group(groups)
    middle = [group for group in groups if group.kind is GroupKind.USER]
    return [pinned, *middle, quick]


def render_groups(groups: List[Group], browsing: Optional[Group] = None) -> List[Group]:
    """Canonical list with the live browsing snapshot, if any, last."""
    rendered = [group for group in groups if group.kind is not GroupKind.LIVE_BROWSING]
    if browsing is not None:
        rendered.append(browsing)
    return rendered
