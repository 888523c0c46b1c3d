"""
Unit tests for turning stored group records into the canonical order.
"""
import pytest

from tab_management.reconciler import parse_groups, reconcile, render_groups
from tab_management.tab_info import (
    BROWSING_GROUP_ID,
    PINNED_GROUP_ID,
    QUICK_GROUP_ID,
    Group,
    GroupKind,
    TabRecord,
)


def _raw(group_id, name="G", persistent=False, tabs=None, **extra):
    return {"id": group_id, "name": name, "createdAt": 1, "persistent": persistent, "tabs": tabs or [], **extra}


def _tab(tab_id, url="https://example.com"):
    return {"id": tab_id, "url": url, "title": "T", "customTitle": "", "favIconUrl": ""}


class TestReconcile:
    """Canonical ordering and system group repair"""

    def test_empty_storage_yields_two_system_groups(self):
        groups = reconcile([])

        assert [g.id for g in groups] == [PINNED_GROUP_ID, QUICK_GROUP_ID]
        assert groups[0].name == "Pinned"
        assert groups[0].persistent is True
        assert groups[1].name == "Quick Capture"
        assert groups[1].persistent is False

    @pytest.mark.parametrize("order", [
        ["quick", "a", "pinned", "b"],
        ["a", "b", "quick", "pinned"],
        ["pinned", "quick", "a", "b"],
    ])
    def test_any_order_becomes_pinned_users_quick(self, order):
        records = {
            "pinned": _raw(PINNED_GROUP_ID, "Pinned", True),
            "quick": _raw(QUICK_GROUP_ID, "Quick Capture"),
            "a": _raw("group_a", "A"),
            "b": _raw("group_b", "B"),
        }
        groups = reconcile([records[key] for key in order])

        ids = [g.id for g in groups]
        assert ids[0] == PINNED_GROUP_ID
        assert ids[-1] == QUICK_GROUP_ID
        user_order = [key for key in order if key in ("a", "b")]
        assert ids[1:-1] == [f"group_{key}" for key in user_order]

    def test_system_groups_get_names_and_flags_back_but_keep_tabs(self):
        groups = reconcile([
            _raw(PINNED_GROUP_ID, "Renamed", False, tabs=[_tab("t1")]),
            _raw(QUICK_GROUP_ID, "Also renamed", True, tabs=[_tab("t2")]),
        ])

        pinned, quick = groups
        assert (pinned.name, pinned.persistent) == ("Pinned", True)
        assert (quick.name, quick.persistent) == ("Quick Capture", False)
        assert [t.id for t in pinned.tabs] == ["t1"]
        assert [t.id for t in quick.tabs] == ["t2"]

    def test_stale_live_group_is_dropped(self):
        groups = reconcile([
            _raw(BROWSING_GROUP_ID, "Currently Browsing", True, type="browsing"),
            _raw("group_a", "A"),
        ])

        assert [g.kind for g in groups] == [GroupKind.PINNED, GroupKind.USER, GroupKind.QUICK_CAPTURE]

    def test_malformed_records_are_skipped(self):
        groups = reconcile(["junk", None, {"name": "no id"}, _raw("group_a", "A", tabs=[_tab("t1"), {"url": "x"}])])

        assert [g.id for g in groups] == [PINNED_GROUP_ID, "group_a", QUICK_GROUP_ID]
        assert [t.id for t in groups[1].tabs] == ["t1"]

    def test_duplicate_system_id_keeps_first(self):
        groups = reconcile([
            _raw(PINNED_GROUP_ID, tabs=[_tab("first")]),
            _raw(PINNED_GROUP_ID, tabs=[_tab("second")]),
        ])

        pinned = [g for g in groups if g.kind is GroupKind.PINNED]
        assert len(pinned) == 1
        assert [t.id for t in pinned[0].tabs] == ["first"]


class TestRenderGroups:

    def test_live_group_goes_last(self):
        canonical = reconcile([_raw("group_a", "A")])
        browsing = Group.browsing([TabRecord(id="live-3", url="https://x.test", live_tab_id=3)])

        rendered = render_groups(canonical, browsing)

        assert [g.id for g in rendered] == [PINNED_GROUP_ID, "group_a", QUICK_GROUP_ID, BROWSING_GROUP_ID]
        assert rendered[-1].to_dict()["type"] == "browsing"

    def test_without_snapshot_nothing_is_added(self):
        canonical = reconcile([])
        assert render_groups(canonical) == canonical


class TestParseGroups:

    def test_kind_comes_from_reserved_ids(self):
        groups = parse_groups([_raw(PINNED_GROUP_ID), _raw(QUICK_GROUP_ID), _raw("group_x")])
        assert [g.kind for g in groups] == [GroupKind.PINNED, GroupKind.QUICK_CAPTURE, GroupKind.USER]

    def test_tab_fields_map_from_camel_case(self):
        raw = _raw("group_x", tabs=[{
            "id": "t1", "url": "https://a.test", "title": "A", "customTitle": "Mine", "favIconUrl": "https://a.test/f.ico",
        }])
        tab = parse_groups([raw])[0].tabs[0]

        assert tab.custom_title == "Mine"
        assert tab.fav_icon_url == "https://a.test/f.ico"
        assert tab.display_title == "Mine"
