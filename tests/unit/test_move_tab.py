"""
Unit tests for moving tabs within and across groups.
"""
import pytest

from error_handling import ForbiddenError, NotFoundError
from tab_management.tab_info import BROWSING_GROUP_ID, Group, GroupKind, TabRecord
from tab_management.tab_manager import destination_index


def _seed(manager, **groups):
    """Store user groups built from tab id lists, in the given order."""
    state = manager.load_state()
    created = []
    for group_id, tab_ids in groups.items():
        created.append(Group(
            id=group_id,
            name=group_id,
            kind=GroupKind.USER,
            tabs=[TabRecord(id=t, url=f"https://{t}.test") for t in tab_ids],
        ))
    manager.save_groups([state.groups[0], *created, *state.groups[1:]])


def _tab_ids(manager, group_id):
    return [t.id for t in manager.load_state().find_group(group_id).tabs]


class TestDestinationIndex:

    def test_same_group_after_later_target(self):
        # [A,B,C] move A after B -> [B,A,C]
        assert destination_index(3, source_index=0, target_index=1, insert_after=True, same_group=True) == 1

    def test_same_group_before_earlier_target(self):
        # [A,B,C] move C before A -> [C,A,B]
        assert destination_index(3, source_index=2, target_index=0, insert_after=False, same_group=True) == 0

    def test_same_group_without_target_goes_last(self):
        assert destination_index(3, source_index=0, target_index=None, insert_after=False, same_group=True) == 2

    def test_cross_group_without_target_appends(self):
        assert destination_index(2, source_index=5, target_index=None, insert_after=False, same_group=False) == 2

    def test_cross_group_after_last(self):
        assert destination_index(2, source_index=0, target_index=1, insert_after=True, same_group=False) == 2

    def test_missing_target_appends(self):
        assert destination_index(2, source_index=0, target_index=-1, insert_after=False, same_group=False) == 2

    def test_empty_destination(self):
        assert destination_index(0, source_index=0, target_index=None, insert_after=False, same_group=False) == 0


class TestMoveTab:

    def test_move_after_within_group(self, manager):
        _seed(manager, g=["A", "B", "C"])

        manager.move_tab("g", "g", "A", target_tab_id="B", insert_after=True)

        assert _tab_ids(manager, "g") == ["B", "A", "C"]

    def test_move_before_within_group(self, manager):
        _seed(manager, g=["A", "B", "C"])

        manager.move_tab("g", "g", "C", target_tab_id="A", insert_after=False)

        assert _tab_ids(manager, "g") == ["C", "A", "B"]

    def test_move_to_end_within_group(self, manager):
        _seed(manager, g=["A", "B", "C"])

        manager.move_tab("g", "g", "A")

        assert _tab_ids(manager, "g") == ["B", "C", "A"]

    def test_cross_group_without_target_appends(self, manager):
        _seed(manager, src=["A", "B"], dst=["X", "Y"])

        manager.move_tab("src", "dst", "A")

        assert _tab_ids(manager, "src") == ["B"]
        assert _tab_ids(manager, "dst") == ["X", "Y", "A"]

    def test_cross_group_before_target(self, manager):
        _seed(manager, src=["A"], dst=["X", "Y"])

        manager.move_tab("src", "dst", "A", target_tab_id="Y")

        assert _tab_ids(manager, "dst") == ["X", "A", "Y"]

    def test_into_system_group(self, manager):
        _seed(manager, src=["A"])

        manager.move_tab("src", "pinned-default", "A")

        assert _tab_ids(manager, "pinned-default") == ["A"]

    def test_same_tab_as_target_is_a_noop(self, manager, writes):
        _seed(manager, g=["A", "B"])
        writes.clear()

        assert manager.move_tab("g", "g", "A", target_tab_id="A", insert_after=True) is True

        assert writes == []
        assert _tab_ids(manager, "g") == ["A", "B"]

    def test_unknown_target_appends(self, manager):
        _seed(manager, src=["A"], dst=["X"])

        manager.move_tab("src", "dst", "A", target_tab_id="gone")

        assert _tab_ids(manager, "dst") == ["X", "A"]

    def test_missing_tab_is_not_found(self, manager, writes):
        _seed(manager, g=["A"])
        writes.clear()

        with pytest.raises(NotFoundError):
            manager.move_tab("g", "g", "Z")
        assert writes == []

    def test_missing_group_is_not_found(self, manager):
        _seed(manager, g=["A"])

        with pytest.raises(NotFoundError):
            manager.move_tab("g", "nope", "A")

    @pytest.mark.parametrize("from_id,to_id", [(BROWSING_GROUP_ID, "g"), ("g", BROWSING_GROUP_ID)])
    def test_live_group_is_refused(self, manager, from_id, to_id):
        _seed(manager, g=["A"])

        with pytest.raises(ForbiddenError):
            manager.move_tab(from_id, to_id, "A")
