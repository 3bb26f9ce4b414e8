"""Tests for identity/snapshot helpers and the bounded undo history."""
import pytest

from furniture_builder.design_entities import Part, Stock
from furniture_builder.design_history import UndoHistory
from furniture_builder.design_snapshot import (
    generate_id, deep_copy, canonical_json, load_snapshot, snapshots_equal
)


class TestSnapshotHelpers:

    def test_generated_ids_are_unique(self):
        ids = {generate_id() for _ in range(500)}
        assert len(ids) == 500

    def test_canonical_json_sorts_keys(self):
        assert canonical_json({"b": 1, "a": {"d": 2, "c": 3}}) == '{"a":{"c":3,"d":2},"b":1}'

    def test_canonical_json_uses_entity_dicts(self):
        part = Part(id="p1", name="Shelf")
        assert load_snapshot(canonical_json([part])) == [part.to_dict()]

    def test_int_and_float_dimensions_serialize_identically(self):
        assert snapshots_equal(Part(id="p", length=24), Part(id="p", length=24.0))
        assert snapshots_equal(Stock(id="s", length=96, color="#808080"),
                               Stock(id="s", length=96.0, color="#808080"))

    def test_different_values_are_not_equal(self):
        assert not snapshots_equal(Part(id="p", name="A"), Part(id="p", name="B"))

    def test_deep_copy_is_independent(self):
        parts = [Part(name="Side")]
        copied = deep_copy(parts)
        copied[0].name = "Changed"
        assert parts[0].name == "Side"


class TestUndoHistory:

    def test_first_record_sets_baseline(self):
        history = UndoHistory()
        assert history.record("a") is False
        assert history.present == "a"
        assert not history.can_undo

    def test_identical_snapshots_coalesce(self):
        history = UndoHistory()
        history.record("a")
        assert history.record("b") is True
        assert history.record("b") is False
        assert history.past_count == 1

    def test_undo_and_redo_walk_the_stack(self):
        history = UndoHistory()
        for snap in ("a", "b", "c"):
            history.record(snap)
        assert history.undo() == "b"
        assert history.undo() == "a"
        assert history.undo() is None
        assert history.redo() == "b"
        assert history.present == "b"
        assert history.future_count == 1

    def test_new_record_discards_redo(self):
        history = UndoHistory()
        for snap in ("a", "b"):
            history.record(snap)
        history.undo()
        history.record("c")
        assert not history.can_redo
        assert history.undo() == "a"

    def test_limit_evicts_oldest(self):
        history = UndoHistory(limit=2)
        for snap in ("a", "b", "c", "d"):
            history.record(snap)
        assert history.past_count == 2
        assert history.undo() == "c"
        assert history.undo() == "b"
        assert history.undo() is None

    def test_clear_keeps_new_baseline(self):
        history = UndoHistory()
        for snap in ("a", "b"):
            history.record(snap)
        history.clear(present="z")
        assert not history.can_undo and not history.can_redo
        assert history.present == "z"

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            UndoHistory(limit=0)
