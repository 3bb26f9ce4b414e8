"""Tests for assembly extraction, stock resolution and placement."""
import pytest

from furniture_builder.cad_common import PART_MEMBER, GROUP_MEMBER
from furniture_builder.design_assemblies import (
    selection_origin, extract_assembly, resolve_assembly_stocks, materialize_assembly
)
from furniture_builder.design_entities import (
    Assembly, AssemblyPart, AssemblyGroup, AssemblyGroupMember, EmbeddedStock, Stock
)
from furniture_builder.design_project import FurnitureProject


@pytest.fixture
def board_assembly(project, plywood, two_boards):
    """'Rails' assembly extracted from the two boards, both cut from plywood."""
    project.select_parts(list(two_boards))
    project.assign_stock_to_selected_parts(plywood)
    return project.create_assembly_from_selection("Rails", "Two rails")


@pytest.fixture
def cabinet_assembly(project, cabinet):
    project.select_group(cabinet["cabinet"])
    return project.create_assembly_from_selection("Carcass")


class TestExtraction:

    def test_origin_is_ground_center(self, project, two_boards):
        parts = [project.get_part(pid) for pid in two_boards]
        assert selection_origin(parts) == pytest.approx((20, 0, 5))
        assert selection_origin([]) is None

    def test_relative_positions(self, board_assembly):
        assert board_assembly.name == "Rails"
        assert board_assembly.description == "Two rails"
        positions = [ap.relative_position for ap in board_assembly.parts]
        assert positions[0] == pytest.approx((-10, 0.375, 0))
        assert positions[1] == pytest.approx((10, 0.375, 0))

    def test_stock_is_embedded(self, project, plywood, board_assembly):
        ap = board_assembly.parts[0]
        assert ap.stock_id == plywood
        assert ap.embedded_stock.name == "3/4 Plywood"
        assert ap.embedded_stock.matches(project.get_stock(plywood))

    def test_group_structure_uses_indices(self, cabinet_assembly):
        assert [g.name for g in cabinet_assembly.groups] == ["Sides", "Cabinet"]
        assert len(cabinet_assembly.parts) == 4
        assert len(cabinet_assembly.group_members) == 5
        assert cabinet_assembly.index_errors() == []
        nested = [m for m in cabinet_assembly.group_members if m.member_type == GROUP_MEMBER]
        assert [(m.group_index, m.member_index) for m in nested] == [(1, 0)]

    def test_extraction_does_not_change_project(self, project, cabinet):
        project.clear_history()
        project.mark_clean()
        project.select_group(cabinet["cabinet"])
        project.create_assembly_from_selection("Carcass")
        assert project.list_assemblies() == []
        assert not project.is_dirty

    def test_add_to_project(self, project, cabinet):
        project.select_group(cabinet["cabinet"])
        assembly = project.create_assembly_from_selection("Carcass", add_to_project=True)
        assert project.get_assembly(assembly.id).name == "Carcass"
        assert project.is_dirty

    def test_empty_selection(self, project, cabinet):
        assert project.create_assembly_from_selection("Nothing") is None
        assert extract_assembly("Nothing", "", [], [], [], []) is None

    def test_membership_outside_closure_is_dropped(self, project, cabinet):
        # A lone part selected inside a group carries no membership
        project.select_parts([cabinet["bottom"]])
        assembly = project.create_assembly_from_selection("Bottom only")
        assert assembly.groups == []
        assert assembly.group_members == []
        assert assembly.parts[0].relative_position == pytest.approx((0, 0.375, 0))


class TestStockResolution:

    def ref_part(self, stock_id, embedded=None):
        return AssemblyPart(stock_id=stock_id, embedded_stock=embedded)

    def test_project_stock_wins(self):
        project_stock = Stock(id="s1", name="Oak")
        assembly = Assembly(parts=[self.ref_part("s1")])
        resolution, to_add = resolve_assembly_stocks(assembly, [project_stock], [Stock(id="s1")])
        assert resolution == {"s1": "s1"}
        assert to_add == []

    def test_library_stock_is_copied_with_its_id(self):
        library_stock = Stock(id="s1", name="Oak")
        assembly = Assembly(parts=[self.ref_part("s1"), self.ref_part("s1")])
        resolution, to_add = resolve_assembly_stocks(assembly, [], [library_stock])
        assert resolution == {"s1": "s1"}
        assert [s.id for s in to_add] == ["s1"]
        assert to_add[0] is not library_stock

    def test_embedded_snapshot_matches_existing_stock(self):
        existing = Stock(id="other", name="Oak", length=96, width=8, thickness=1, color="#AA0000")
        embedded = EmbeddedStock(name="Oak", length=96, width=8, thickness=1, color="#AA0000")
        assembly = Assembly(parts=[self.ref_part("gone", embedded)])
        resolution, to_add = resolve_assembly_stocks(assembly, [existing])
        assert resolution == {"gone": "other"}
        assert to_add == []

    def test_embedded_snapshot_creates_one_stock(self):
        embedded = EmbeddedStock(name="Walnut", length=72, width=6, thickness=1, color="#5C4033")
        assembly = Assembly(parts=[self.ref_part("gone", embedded), self.ref_part("gone", embedded)])
        resolution, to_add = resolve_assembly_stocks(assembly, [])
        assert len(to_add) == 1
        assert to_add[0].id != "gone"
        assert to_add[0].name == "Walnut"
        assert resolution == {"gone": to_add[0].id}

    def test_two_ids_with_same_snapshot_share_created_stock(self):
        embedded = EmbeddedStock(name="Walnut", color="#5C4033")
        assembly = Assembly(parts=[self.ref_part("a", embedded), self.ref_part("b", embedded)])
        resolution, to_add = resolve_assembly_stocks(assembly, [])
        assert len(to_add) == 1
        assert resolution["a"] == resolution["b"] == to_add[0].id

    def test_unresolvable_reference_is_cleared(self):
        assembly = Assembly(parts=[self.ref_part("gone")])
        resolution, to_add = resolve_assembly_stocks(assembly, [])
        assert resolution == {"gone": None}
        parts, _, _, _ = materialize_assembly(assembly, (0, 0, 0), resolution)
        assert parts[0].stock_id is None


class TestMaterialize:

    def test_invalid_indices_are_skipped(self):
        assembly = Assembly(
            parts=[AssemblyPart(name="A")],
            groups=[AssemblyGroup(name="G")],
            group_members=[AssemblyGroupMember(0, PART_MEMBER, 0),
                           AssemblyGroupMember(0, PART_MEMBER, 5),
                           AssemblyGroupMember(3, GROUP_MEMBER, 0)],
        )
        parts, groups, members, top_level = materialize_assembly(assembly, (1, 2, 3))
        assert len(members) == 1
        assert members[0].member_id == parts[0].id
        assert top_level == [groups[0].id]
        assert parts[0].position == pytest.approx((1, 2, 3))


class TestPlacement:

    def test_place_round_trip(self, project, cabinet_assembly):
        new_ids = project.place_assembly(cabinet_assembly, (100, 0, 50))
        assert len(new_ids) == 4
        names = {project.get_part(pid).name: project.get_part(pid).position for pid in new_ids}
        assert names["Left Side"] == pytest.approx((90, 15, 50))
        assert names["Bottom"] == pytest.approx((100, 0.375, 50))
        placed = project.selected_group_ids[0]
        assert project.get_group(placed).name == "Cabinet"
        assert sorted(project.get_descendant_part_ids(placed)) == sorted(new_ids)
        assert project.check_integrity() == []

    def test_place_by_project_id(self, project, cabinet):
        project.select_group(cabinet["cabinet"])
        assembly = project.create_assembly_from_selection("Carcass", add_to_project=True)
        assert len(project.place_assembly(assembly.id, (0, 0, 0))) == 4
        assert project.place_assembly("missing", (0, 0, 0)) == []

    def test_place_in_other_project_creates_stock_from_snapshot(self, plywood, board_assembly):
        other = FurnitureProject("Other")
        new_ids = other.place_assembly(board_assembly, (0, 0, 0))
        stocks = other.list_stocks()
        assert len(stocks) == 1
        assert stocks[0].id != plywood
        assert stocks[0].name == "3/4 Plywood"
        assert {other.get_part(pid).stock_id for pid in new_ids} == {stocks[0].id}
        assert other.check_integrity() == []

    def test_place_in_other_project_prefers_library(self, project, plywood, board_assembly):
        library_stock = project.get_stock(plywood)
        other = FurnitureProject("Other")
        new_ids = other.place_assembly(board_assembly, (0, 0, 0), library_stocks=[library_stock])
        assert [s.id for s in other.list_stocks()] == [plywood]
        assert {other.get_part(pid).stock_id for pid in new_ids} == {plywood}

    def test_place_in_same_project_reuses_stock(self, project, plywood, board_assembly):
        new_ids = project.place_assembly(board_assembly, (0, 0, 0))
        assert len(project.list_stocks()) == 1
        assert {project.get_part(pid).stock_id for pid in new_ids} == {plywood}

    def test_loose_parts_are_selected(self, project, board_assembly):
        new_ids = project.place_assembly(board_assembly, (0, 0, 0))
        assert project.selected_part_ids == new_ids
        assert project.selected_group_ids == []

    def test_empty_assembly(self, project):
        assert project.place_assembly(Assembly(name="Empty"), (0, 0, 0)) == []

    def test_placement_is_one_undo_step(self, plywood, board_assembly):
        other = FurnitureProject("Other")
        other.place_assembly(board_assembly, (0, 0, 0))
        assert other.undo()
        assert other.list_parts() == []
        assert other.list_stocks() == []
