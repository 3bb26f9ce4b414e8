"""Tests for grouping, ungrouping, merging and group-editing mode."""
import pytest

from furniture_builder.cad_common import PART_MEMBER, GROUP_MEMBER


def names(project):
    return sorted(g.name for g in project.list_groups())


class TestCreateGroup:

    def test_members_leave_previous_group(self, project, cabinet):
        gid = project.create_group("Pair", [(PART_MEMBER, cabinet["left"]), (PART_MEMBER, cabinet["top"])])
        assert project.get_containing_group_id(cabinet["left"]) == gid
        assert project.get_containing_group_id(cabinet["top"]) == gid
        assert (PART_MEMBER, cabinet["left"]) not in project.get_group_children(cabinet["sides"])
        assert project.get_containing_group_id(gid, GROUP_MEMBER) is None
        assert project.check_integrity() == []

    def test_new_group_is_selected_and_expanded(self, project, two_boards):
        gid = project.create_group("Boards", [(PART_MEMBER, pid) for pid in two_boards])
        assert project.selected_group_ids == [gid]
        assert project.selected_part_ids == []
        assert gid in project.expanded_group_ids

    def test_create_under_parent(self, project, cabinet):
        gid = project.create_group("Panels", [(PART_MEMBER, cabinet["top"])],
                                   parent_group_id=cabinet["cabinet"])
        assert project.get_containing_group_id(gid, GROUP_MEMBER) == cabinet["cabinet"]
        assert cabinet["top"] in project.get_descendant_part_ids(cabinet["cabinet"])

    def test_parent_inside_member_is_rejected(self, project, cabinet):
        assert project.create_group("Bad", [(GROUP_MEMBER, cabinet["cabinet"])],
                                    parent_group_id=cabinet["sides"]) is None
        assert project.check_integrity() == []

    def test_missing_member_is_rejected(self, project):
        assert project.create_group("Bad", [(PART_MEMBER, "nope")]) is None
        assert project.create_group("Empty", []) is None
        assert project.list_groups() == []

    def test_rename(self, project, cabinet):
        assert project.rename_group(cabinet["sides"], "Uprights")
        assert project.get_group(cabinet["sides"]).name == "Uprights"
        assert not project.rename_group("missing", "x")


class TestAddRemove:

    def test_add_part_to_group_moves_it(self, project, cabinet, two_boards):
        assert project.add_to_group(cabinet["sides"], [two_boards[0], cabinet["top"]], PART_MEMBER)
        assert project.get_containing_group_id(two_boards[0]) == cabinet["sides"]
        assert project.get_containing_group_id(cabinet["top"]) == cabinet["sides"]
        assert project.check_integrity() == []

    def test_cycle_is_rejected(self, project, cabinet):
        assert not project.add_to_group(cabinet["sides"], [cabinet["cabinet"]], GROUP_MEMBER)
        assert not project.add_to_group(cabinet["sides"], [cabinet["sides"]], GROUP_MEMBER)
        assert project.get_containing_group_id(cabinet["sides"], GROUP_MEMBER) == cabinet["cabinet"]
        assert project.check_integrity() == []

    def test_rejection_is_all_or_nothing(self, project, cabinet, two_boards):
        other = project.create_group("Other", [(PART_MEMBER, two_boards[0])])
        assert not project.add_to_group(cabinet["sides"], [other, cabinet["cabinet"]], GROUP_MEMBER)
        assert project.get_containing_group_id(other, GROUP_MEMBER) is None

    def test_remove_makes_member_top_level(self, project, cabinet):
        assert project.remove_from_group([cabinet["top"]], PART_MEMBER)
        assert project.get_containing_group_id(cabinet["top"]) is None
        assert project.get_group(cabinet["cabinet"]) is not None

    def test_emptied_groups_cascade_upward(self, project, two_boards):
        inner = project.create_group("Inner", [(PART_MEMBER, pid) for pid in two_boards])
        outer = project.create_group("Outer", [(GROUP_MEMBER, inner)])
        assert project.remove_from_group(list(two_boards), PART_MEMBER)
        assert project.get_group(inner) is None
        assert project.get_group(outer) is None
        assert len(project.list_parts()) == 2
        assert project.list_group_members() == []

    def test_remove_top_level_member(self, project, two_boards):
        assert not project.remove_from_group([two_boards[0]], PART_MEMBER)


class TestDeleteGroup:

    def test_ungroup_releases_children(self, project, cabinet):
        assert project.delete_group(cabinet["cabinet"])
        assert project.get_group(cabinet["cabinet"]) is None
        assert project.get_containing_group_id(cabinet["bottom"]) is None
        # Child groups survive an ungroup
        assert project.get_containing_group_id(cabinet["sides"], GROUP_MEMBER) is None
        assert project.get_containing_group_id(cabinet["left"]) == cabinet["sides"]
        assert len(project.list_parts()) == 4
        assert project.check_integrity() == []

    def test_ungroup_nested_group_makes_children_top_level(self, project, cabinet):
        assert project.delete_group(cabinet["sides"], "ungroup")
        assert project.get_containing_group_id(cabinet["left"]) is None
        assert project.get_group_children(cabinet["cabinet"]) == [
            (PART_MEMBER, cabinet["bottom"]), (PART_MEMBER, cabinet["top"])]

    def test_ungroup_into_target_parent(self, project, cabinet, two_boards):
        target = project.create_group("Target", [(PART_MEMBER, two_boards[0])])
        assert project.delete_group(cabinet["sides"], "ungroup", target_parent_id=target)
        assert project.get_containing_group_id(cabinet["left"]) == target
        assert project.get_containing_group_id(cabinet["right"]) == target

    def test_target_inside_deleted_subtree_is_rejected(self, project, cabinet):
        assert not project.delete_group(cabinet["cabinet"], "ungroup", target_parent_id=cabinet["sides"])
        assert project.get_group(cabinet["cabinet"]) is not None

    def test_recursive_delete(self, project, cabinet, two_boards):
        project.select_part(cabinet["left"])
        project.expand_all_groups()
        assert project.delete_group(cabinet["cabinet"], "recursive")
        assert project.list_groups() == []
        assert sorted(p.id for p in project.list_parts()) == sorted(two_boards)
        assert project.list_group_members() == []
        assert project.selected_part_ids == []
        assert project.expanded_group_ids == []

    def test_unknown_mode(self, project, cabinet):
        assert not project.delete_group(cabinet["cabinet"], "explode")


class TestMergeGroups:

    @pytest.fixture
    def pairs(self, project):
        ids = [project.add_part(name=f"P{i}") for i in range(6)]
        a = project.create_group("A", [(PART_MEMBER, ids[0]), (PART_MEMBER, ids[1])])
        b = project.create_group("B", [(PART_MEMBER, ids[2]), (PART_MEMBER, ids[3])])
        c = project.create_group("C", [(PART_MEMBER, ids[4]), (PART_MEMBER, ids[5])])
        return ids, a, b, c

    def test_merge_two_top_level(self, project, pairs):
        ids, a, b, _ = pairs
        merged = project.merge_groups([a, b])
        assert project.get_group(merged).name == "A & B Merged"
        assert project.get_group(a) is None and project.get_group(b) is None
        assert sorted(project.get_descendant_part_ids(merged)) == sorted(ids[:4])
        assert project.selected_group_ids == [merged]
        assert project.check_integrity() == []

    def test_merge_name_counts_others(self, project, pairs):
        _, a, b, c = pairs
        merged = project.merge_groups([a, b, c])
        assert project.get_group(merged).name == "A & 2 others Merged"

    def test_top_level_keeps_nested_groups(self, project, pairs):
        ids, a, b, _ = pairs
        inner = project.create_group("Inner", [(PART_MEMBER, ids[0])], parent_group_id=a)
        merged = project.merge_groups([a, b])
        assert project.get_containing_group_id(inner, GROUP_MEMBER) == merged
        assert project.get_containing_group_id(ids[0]) == inner

    def test_deep_flattens_nesting(self, project, pairs):
        ids, a, b, _ = pairs
        inner = project.create_group("Inner", [(PART_MEMBER, ids[0])], parent_group_id=a)
        merged = project.merge_groups([a, b], mode="deep")
        assert project.get_group(inner) is None
        assert all(project.get_containing_group_id(pid) == merged for pid in ids[:4])
        assert names(project) == ["A & B Merged", "C"]

    def test_nested_source_is_merged_through_its_ancestor(self, project, pairs):
        ids, a, b, _ = pairs
        inner = project.create_group("Inner", [(PART_MEMBER, ids[0])], parent_group_id=a)
        merged = project.merge_groups([a, inner, b], mode="deep")
        assert project.get_group(inner) is None
        assert sorted(project.get_descendant_part_ids(merged)) == sorted(ids[:4])
        assert project.check_integrity() == []

    def test_merged_group_keeps_common_parent(self, project, pairs):
        _, a, b, c = pairs
        outer = project.create_group("Outer", [(GROUP_MEMBER, a), (GROUP_MEMBER, b)])
        merged = project.merge_groups([a, b])
        assert project.get_containing_group_id(merged, GROUP_MEMBER) == outer

    def test_merge_needs_two_groups(self, project, pairs):
        _, a, _, _ = pairs
        assert project.merge_groups([a]) is None
        assert project.merge_groups([a, "missing"]) is None


class TestSelectionAndEditing:

    def test_enter_and_exit(self, project, cabinet):
        project.select_part(cabinet["left"])
        assert project.enter_group(cabinet["sides"])
        assert project.editing_group_id == cabinet["sides"]
        assert project.selected_part_ids == []
        project.select_part(cabinet["left"])
        project.exit_group()
        assert project.editing_group_id is None
        assert project.selected_part_ids == []

    def test_exit_to_parent(self, project, cabinet):
        project.enter_group(cabinet["sides"])
        project.exit_group(to_parent=True)
        assert project.editing_group_id == cabinet["cabinet"]
        project.exit_group(to_parent=True)
        assert project.editing_group_id is None

    def test_selecting_descendant_keeps_editing(self, project, cabinet):
        project.enter_group(cabinet["cabinet"])
        project.select_group(cabinet["sides"])
        assert project.editing_group_id == cabinet["cabinet"]
        assert project.selected_group_ids == [cabinet["sides"]]

    def test_selecting_other_group_exits_editing(self, project, cabinet, two_boards):
        other = project.create_group("Other", [(PART_MEMBER, pid) for pid in two_boards])
        project.enter_group(cabinet["cabinet"])
        project.select_group(other)
        assert project.editing_group_id is None

    def test_selecting_edited_group_itself_exits_editing(self, project, cabinet):
        project.enter_group(cabinet["sides"])
        project.select_group(cabinet["sides"])
        assert project.editing_group_id is None

    def test_toggle_selection(self, project, two_boards):
        a, b = two_boards
        project.select_part(a)
        project.toggle_part_selection(b)
        assert project.selected_part_ids == [a, b]
        project.toggle_part_selection(a)
        assert project.selected_part_ids == [b]

    def test_expand_and_reveal(self, project, cabinet):
        project.collapse_all_groups()
        ancestors = project.reveal_part(cabinet["left"])
        assert ancestors == [cabinet["sides"], cabinet["cabinet"]]
        assert set(project.expanded_group_ids) == {cabinet["sides"], cabinet["cabinet"]}
        project.toggle_group_expanded(cabinet["sides"])
        assert project.expanded_group_ids == [cabinet["cabinet"]]

    def test_selection_changes_are_not_edits(self, project, cabinet):
        project.clear_history()
        project.mark_clean()
        project.select_group(cabinet["cabinet"])
        project.enter_group(cabinet["sides"])
        project.set_hovered_part(cabinet["left"])
        assert not project.can_undo
        assert not project.is_dirty
