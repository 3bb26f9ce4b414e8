"""Tests for the dirty flag, cut-list staleness, undo/redo and deferred callbacks."""
import pytest

from furniture_builder.design_entities import CutList, StockConstraintSettings, ProjectData, Part
from furniture_builder.design_project import FurnitureProject


@pytest.fixture
def clean(project, cabinet):
    """The cabinet project, saved and with a fresh cut list."""
    project.set_cut_list(CutList(payload={"instructions": []}))
    project.clear_history()
    project.mark_clean()
    return project


class TestDirtyFlag:

    def test_new_project_is_clean(self):
        project = FurnitureProject("Fresh")
        assert not project.is_dirty
        assert not project.can_undo

    def test_edit_sets_dirty_and_stamps_modified_at(self, project):
        before = project.settings.modified_at
        project.add_part()
        assert project.is_dirty
        assert project.settings.modified_at >= before

    def test_selection_and_view_state_do_not_dirty(self, clean, cabinet):
        clean.select_part(cabinet["left"])
        clean.expand_all_groups()
        clean.set_file_path("/tmp/x.fbd")
        clean.set_camera_state(None)
        assert not clean.is_dirty

    def test_failed_edit_does_not_dirty(self, clean):
        assert not clean.update_part("missing", name="x")
        assert not clean.add_part(length=-1)
        assert not clean.is_dirty
        assert not clean.can_undo

    def test_mark_clean(self, project):
        project.add_part()
        project.mark_clean()
        assert not project.is_dirty


class TestCutListStaleness:

    def test_fresh_cut_list(self, clean):
        assert clean.cut_list is not None
        assert not clean.cut_list.is_stale

    @pytest.mark.parametrize("edit", [
        lambda p, ids: p.update_part(ids["left"], length=31),
        lambda p, ids: p.delete_part(ids["top"]),
        lambda p, ids: p.add_part(),
        lambda p, ids: p.remove_from_group([ids["bottom"]], "part"),
        lambda p, ids: p.delete_group(ids["sides"]),
        lambda p, ids: p.set_kerf_width(0.25),
        lambda p, ids: p.set_overage_factor(0.2),
    ])
    def test_structural_edits_mark_stale(self, clean, cabinet, edit):
        assert edit(clean, cabinet)
        assert clean.cut_list.is_stale
        assert clean.is_dirty

    def test_moving_parts_marks_stale(self, clean, cabinet):
        clean.select_part(cabinet["bottom"])
        clean.move_selected_parts((1, 0, 0))
        assert clean.cut_list.is_stale

    @pytest.mark.parametrize("edit", [
        lambda p, ids: p.rename_group(ids["sides"], "Uprights"),
        lambda p, ids: p.set_grid_size(0.5),
        lambda p, ids: p.set_project_notes("Finish with oil"),
        lambda p, ids: p.add_snap_guide("x", 12.0),
    ])
    def test_cosmetic_edits_keep_cut_list_fresh(self, clean, cabinet, edit):
        assert edit(clean, cabinet)
        assert not clean.cut_list.is_stale
        assert clean.is_dirty

    def test_mark_stale_explicitly(self, clean):
        assert clean.mark_cut_list_stale()
        assert clean.cut_list.is_stale
        assert not clean.mark_cut_list_stale()

    def test_mark_stale_without_cut_list(self, project):
        assert not project.mark_cut_list_stale()

    def test_payload_is_kept_when_marking_stale(self, clean):
        clean.mark_cut_list_stale()
        assert clean.cut_list.payload == {"instructions": []}

    def test_clear_cut_list(self, clean):
        clean.clear_cut_list()
        assert clean.cut_list is None
        assert clean.is_dirty


class TestUndoRedo:

    def test_undo_and_redo_add(self, project):
        pid = project.add_part(name="Shelf")
        assert project.undo()
        assert project.get_part(pid) is None
        assert project.can_redo
        assert project.redo()
        assert project.get_part(pid).name == "Shelf"

    def test_undo_prunes_selection(self, project):
        project.add_part()
        assert project.selected_part_ids
        project.undo()
        assert project.selected_part_ids == []
        assert project.check_integrity() == []

    def test_undo_marks_dirty(self, project):
        project.add_part()
        project.mark_clean()
        project.undo()
        assert project.is_dirty

    def test_new_edit_discards_redo(self, project):
        project.add_part(name="A")
        project.undo()
        project.add_part(name="B")
        assert not project.can_redo

    def test_batch_update_is_one_step(self, project, two_boards):
        project.update_parts(list(two_boards), color="#000000")
        project.undo()
        assert all(p.color != "#000000" for p in project.list_parts())
        # The next step back undoes adding the second board
        project.undo()
        assert len(project.list_parts()) == 1

    def test_group_edit_is_undoable(self, project, cabinet):
        project.merge_groups([cabinet["sides"], cabinet["cabinet"]])
        project.undo()
        assert project.get_group(cabinet["sides"]) is not None
        assert project.get_containing_group_id(cabinet["left"]) == cabinet["sides"]
        assert project.check_integrity() == []

    def test_undo_keeps_clipboard(self, project, cabinet):
        project.select_group(cabinet["sides"])
        project.copy_selected()
        project.add_part()
        project.undo()
        assert len(project.clipboard.parts) == 2

    def test_history_limit(self):
        project = FurnitureProject("Limited", history_limit=3)
        for i in range(5):
            project.add_part(name=f"P{i}")
        steps = 0
        while project.undo():
            steps += 1
        assert steps == 3
        assert len(project.list_parts()) == 2

    def test_no_op_edits_record_nothing(self, project):
        pid = project.add_part(name="Shelf")
        project.clear_history()
        assert project.update_part(pid, name="Shelf")
        assert project.update_part(pid, name="Shelf")
        assert not project.can_undo

    def test_nothing_to_undo(self, project):
        assert not project.undo()
        assert not project.redo()

    def test_new_project_clears_history(self, project, cabinet):
        project.new_project(units="metric", grid_size=10,
                            stock_constraints=StockConstraintSettings(constrain_grain=False),
                            name="Next")
        assert not project.can_undo
        assert not project.is_dirty
        assert project.list_parts() == []
        settings = project.settings
        assert settings.units == "metric"
        assert settings.grid_size == 10
        assert not settings.stock_constraints.constrain_grain

    def test_load_project_restores_dirty_flag(self, project):
        data = ProjectData(parts=[Part(name="Loaded")])
        project.load_project(data, file_path="/tmp/a.fbd", is_dirty=True)
        assert project.is_dirty
        assert project.file_path == "/tmp/a.fbd"
        assert not project.can_undo
        assert [p.name for p in project.list_parts()] == ["Loaded"]


class TestDeferredCallbacks:

    def test_runs_immediately_when_idle(self, project):
        calls = []
        project.run_after_flush(lambda: calls.append(1))
        assert calls == [1]

    def test_runs_after_outermost_edit_in_order(self, project):
        calls = []
        with project._mutation():
            project.add_part(name="A")
            project.run_after_flush(lambda: calls.append(("first", project.can_undo)))
            project.add_part(name="B")
            project.run_after_flush(lambda: calls.append(("second", len(project.list_parts()))))
            assert calls == []
        assert calls == [("first", True), ("second", 2)]

    def test_nested_edits_record_one_entry(self, project):
        with project._mutation():
            project.add_part(name="A")
            project.add_part(name="B")
        assert project.undo()
        assert project.list_parts() == []
        assert not project.can_undo


class TestSettingsAndExtras:

    def test_units_validation(self, project):
        assert project.set_units("metric")
        assert not project.set_units("furlongs")
        assert project.settings.units == "metric"

    def test_negative_values_rejected(self, project):
        assert not project.set_kerf_width(-1)
        assert not project.set_overage_factor(-0.1)
        assert not project.set_grid_size(0)

    def test_snap_guides(self, project):
        gid = project.add_snap_guide("y", 30, label="Counter height")
        assert project.add_snap_guide("w", 1) is None
        assert [g.label for g in project.list_snap_guides()] == ["Counter height"]
        assert project.remove_snap_guide(gid)
        assert not project.remove_snap_guide(gid)

    def test_custom_shopping_items(self, project):
        iid = project.add_custom_shopping_item("Hinges", quantity="4", unit_price="3.5")
        item = project.list_custom_shopping_items()[0]
        assert (item.quantity, item.unit_price) == (4, 3.5)
        assert project.update_custom_shopping_item(iid, quantity=6)
        assert project.list_custom_shopping_items()[0].quantity == 6
        assert project.delete_custom_shopping_item(iid)
        assert project.list_custom_shopping_items() == []
