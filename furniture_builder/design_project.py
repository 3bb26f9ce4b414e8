"""
design_project.py

Defines the FurnitureProject class, the central manager for a furniture design.
It holds registries for all entities (Parts, Stocks, Groups, Assemblies) and,
crucially, manages the relationships between them (group membership, stock
assignment) in a dedicated membership registry.

Every structural edit goes through this class. Each edit runs inside a single
mutation scope that sets the dirty flag, marks the cut list stale where
relevant, records one undo snapshot and then runs any deferred callbacks.
Precondition failures are logged and reported through the return value;
no edit leaves a dangling reference or a cyclic group structure behind.
"""

import re
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Type, Union

from .cad_common import (
    PART_MEMBER, GROUP_MEMBER, MEMBER_TYPES, UNITS, DUPLICATE_OFFSET, HISTORY_LIMIT,
    MIN_STOCK_DIMENSION, Vector3
)
from .cad_transformations import to_tuple, to_vector, translate_point, xz_extent_center
from .design_entities import (
    Part, Stock, Group, GroupMember, Assembly, Clipboard, CutList, SnapGuide,
    CustomShoppingItem, StockConstraintSettings, CameraState, ProjectThumbnail,
    ProjectSettings, ProjectData
)
from .design_queries import (
    containing_group_id, child_members, descendant_part_ids, descendant_group_ids,
    ancestor_group_ids, is_descendant_of, expand_selection, parts_to_move,
    membership_errors, validate_parts_for_cut_list
)
from .design_assemblies import extract_assembly, resolve_assembly_stocks, materialize_assembly
from .design_history import UndoHistory
from .design_snapshot import deep_copy, canonical_json, load_snapshot, generate_id, timestamp_now

logger = logging.getLogger(__name__)

_COPY_N_PATTERN = re.compile(r"^(.+) \(copy (\d+)\)$")
_COPY_PATTERN = re.compile(r"^(.+) \(copy\)$")

UNGROUP = "ungroup"
RECURSIVE = "recursive"
MERGE_TOP_LEVEL = "top-level"
MERGE_DEEP = "deep"


def generate_copy_name(name: str) -> str:
    """'X' -> 'X (copy)' -> 'X (copy 2)' -> 'X (copy 3)' ..."""
    match = _COPY_N_PATTERN.match(name)
    if match:
        return f"{match.group(1)} (copy {int(match.group(2)) + 1})"
    match = _COPY_PATTERN.match(name)
    if match:
        return f"{match.group(1)} (copy 2)"
    return f"{name} (copy)"


def merged_group_name(names: Sequence[str]) -> str:
    """'A & B Merged' for two sources, 'A & N others Merged' for more."""
    if len(names) == 2:
        return f"{names[0]} & {names[1]} Merged"
    return f"{names[0]} & {len(names) - 1} others Merged"


@dataclass
class SelectionState:
    """Transient UI state. Never persisted and never recorded in undo history."""
    selected_part_ids: List[str] = field(default_factory=list)
    selected_group_ids: List[str] = field(default_factory=list)
    expanded_group_ids: List[str] = field(default_factory=list)
    editing_group_id: Optional[str] = None
    hovered_part_id: Optional[str] = None
    reference_part_ids: List[str] = field(default_factory=list)


class FurnitureProject:
    """
    Manages all entities and their relationships within a furniture design.
    Acts as the single source of truth and the only writer of the design graph.
    """
    def __init__(self, project_name: str = "Untitled Project", history_limit: int = HISTORY_LIMIT):
        self._settings: ProjectSettings = ProjectSettings(name=project_name)

        # --- Entity Registries (insertion ordered) ---
        self._parts: Dict[str, Part] = {}
        self._stocks: Dict[str, Stock] = {}
        self._groups: Dict[str, Group] = {}
        self._assemblies: Dict[str, Assembly] = {}

        # --- Relationship Registry (Centralized Management) ---
        # One row per contained member; (member_type, member_id) is unique
        self._group_members: List[GroupMember] = []

        # --- Other Persisted Records ---
        self._snap_guides: List[SnapGuide] = []
        self._custom_shopping_items: List[CustomShoppingItem] = []
        self._cut_list: Optional[CutList] = None

        # --- Transient State ---
        self._selection = SelectionState()
        self._clipboard = Clipboard()
        self._camera_state: Optional[CameraState] = None
        self._thumbnail: Optional[ProjectThumbnail] = None
        self._file_path: Optional[str] = None
        self._is_dirty: bool = False

        # --- Change Tracking ---
        self._history = UndoHistory(limit=history_limit)
        self._mutation_depth: int = 0
        self._deferred: List[Callable[[], None]] = []
        self._history.clear(present=self._snapshot())

        logger.info(f"Initialized FurnitureProject: {self._settings.name}")

    # --- Internal Helper: Mutation Scope ---
    @contextmanager
    def _mutation(self, stale: bool = False, dirty: bool = True):
        """
        Wraps one structural edit. Nested scopes fold into the outermost one,
        which records a single history snapshot and then flushes deferred callbacks.
        """
        self._mutation_depth += 1
        try:
            yield
            if dirty:
                self.mark_dirty()
            if stale:
                self._mark_cut_list_stale()
        finally:
            self._mutation_depth -= 1
            if self._mutation_depth == 0:
                if self._history.record(self._snapshot()):
                    logger.debug(f"History entry recorded ({self._history.past_count} past).")
                self._flush_deferred()

    def _flush_deferred(self) -> None:
        while self._deferred and self._mutation_depth == 0:
            callback = self._deferred.pop(0)
            callback()

    def run_after_flush(self, callback: Callable[[], None]) -> None:
        """
        Runs callback once the current edit has settled and its history snapshot
        is recorded. With no edit in progress it runs immediately. Callbacks run
        in the order they were scheduled.
        """
        self._deferred.append(callback)
        if self._mutation_depth == 0:
            self._flush_deferred()

    def _snapshot(self) -> str:
        # Timestamps are excluded so stamping modified_at never creates an entry
        return canonical_json(self._project_data().to_dict(include_timestamps=False))

    def _mark_cut_list_stale(self) -> bool:
        if self._cut_list is not None and not self._cut_list.is_stale:
            self._cut_list = replace(self._cut_list, is_stale=True)
            self._is_dirty = True
            logger.debug("Cut list marked stale.")
            return True
        return False

    # --- Internal Helper: Entity Construction ---
    def _build_entity(self, cls: Type, values: Dict[str, Any], registry: Dict[str, Any]) -> Optional[Any]:
        """Instantiates an entity from keyword values, dropping unknown fields."""
        allowed = {f.name for f in fields(cls)}
        unknown = set(values) - allowed
        if unknown:
            logger.warning(f"Ignoring unknown {cls.__name__} fields: {sorted(unknown)}")
        kwargs = {k: v for k, v in values.items() if k in allowed}
        if kwargs.get("id") in registry:
            logger.error(f"{cls.__name__} id {kwargs['id']} is already in use.")
            return None
        if not kwargs.get("id"):
            kwargs.pop("id", None)
        try:
            return cls(**kwargs)
        except (TypeError, ValueError) as e:
            logger.error(f"Invalid {cls.__name__} values: {e}")
            return None

    def _changed_entity(self, entity: Any, changes: Dict[str, Any]) -> Optional[Any]:
        """Returns a copy of entity with changes applied, or None if they are invalid."""
        cls = type(entity)
        allowed = {f.name for f in fields(cls)} - {"id"}
        unknown = set(changes) - allowed
        if unknown:
            logger.warning(f"Ignoring unknown or read-only {cls.__name__} fields: {sorted(unknown)}")
        kwargs = {k: v for k, v in changes.items() if k in allowed}
        try:
            return replace(entity, **kwargs)
        except (TypeError, ValueError) as e:
            logger.error(f"Invalid changes for {cls.__name__} {entity.id}: {e}")
            return None

    def _checked_stock_id(self, stock_id: Optional[str]) -> Optional[str]:
        if stock_id and stock_id not in self._stocks:
            logger.warning(f"Stock {stock_id} does not exist; part left unassigned.")
            return None
        return stock_id

    # --- Internal Helper: Relationship Cleanup ---
    def _detach_members(self, member_ids: Iterable[str], member_type: str) -> None:
        ids = set(member_ids)
        self._group_members = [gm for gm in self._group_members
                               if not (gm.member_type == member_type and gm.member_id in ids)]

    def _remove_parts(self, part_ids: Iterable[str]) -> None:
        ids = set(part_ids)
        for pid in ids:
            self._parts.pop(pid, None)
        self._detach_members(ids, PART_MEMBER)
        sel = self._selection
        sel.selected_part_ids = [p for p in sel.selected_part_ids if p not in ids]
        sel.reference_part_ids = [p for p in sel.reference_part_ids if p not in ids]
        if sel.hovered_part_id in ids:
            sel.hovered_part_id = None

    def _remove_groups(self, group_ids: Iterable[str]) -> None:
        """Removes group records, every row inside them and every row placing them in a parent."""
        ids = set(group_ids)
        for gid in ids:
            self._groups.pop(gid, None)
        self._group_members = [gm for gm in self._group_members
                               if gm.group_id not in ids and
                               not (gm.member_type == GROUP_MEMBER and gm.member_id in ids)]
        sel = self._selection
        sel.selected_group_ids = [g for g in sel.selected_group_ids if g not in ids]
        sel.expanded_group_ids = [g for g in sel.expanded_group_ids if g not in ids]
        if sel.editing_group_id in ids:
            sel.editing_group_id = None

    def _add_membership(self, group_id: str, member_type: str, member_id: str) -> None:
        self._group_members.append(GroupMember(group_id=group_id, member_type=member_type,
                                               member_id=member_id))

    def _prune_selection(self) -> None:
        """Drops selection entries that no longer refer to existing entities."""
        sel = self._selection
        sel.selected_part_ids = [p for p in sel.selected_part_ids if p in self._parts]
        sel.reference_part_ids = [p for p in sel.reference_part_ids if p in self._parts]
        sel.selected_group_ids = [g for g in sel.selected_group_ids if g in self._groups]
        sel.expanded_group_ids = [g for g in sel.expanded_group_ids if g in self._groups]
        if sel.editing_group_id not in self._groups:
            sel.editing_group_id = None
        if sel.hovered_part_id not in self._parts:
            sel.hovered_part_id = None

    # --- Internal Helper: Subgraph Copies ---
    def _selection_closure(self) -> Tuple[List[Part], List[Group], List[GroupMember]]:
        """Expands the current selection to its closure, in registry order."""
        part_ids, group_ids = expand_selection(self._selection.selected_part_ids,
                                               self._selection.selected_group_ids,
                                               self._group_members)
        parts = [p for pid, p in self._parts.items() if pid in part_ids]
        groups = [g for gid, g in self._groups.items() if gid in group_ids]
        members = [gm for gm in self._group_members if gm.group_id in group_ids]
        return parts, groups, members

    @staticmethod
    def _clone_subgraph(parts: Sequence[Part], groups: Sequence[Group], members: Sequence[GroupMember],
                        place: Callable[[Vector3], Vector3]
                        ) -> Tuple[List[Part], List[Group], List[GroupMember], List[str]]:
        """
        Copies a closed subgraph with fresh ids. Membership rows are rewritten
        through the old->new maps; only top-level items get a copy name.
        Returns (parts, groups, members, top_level_group_ids).
        """
        child_parts = {gm.member_id for gm in members if gm.member_type == PART_MEMBER}
        child_groups = {gm.member_id for gm in members if gm.member_type == GROUP_MEMBER}
        part_map: Dict[str, str] = {}
        group_map: Dict[str, str] = {}

        new_parts = []
        for part in parts:
            clone = replace(part, id=generate_id(),
                            name=part.name if part.id in child_parts else generate_copy_name(part.name),
                            position=place(part.position))
            part_map[part.id] = clone.id
            new_parts.append(clone)

        new_groups = []
        for group in groups:
            clone = replace(group, id=generate_id(),
                            name=group.name if group.id in child_groups else generate_copy_name(group.name))
            group_map[group.id] = clone.id
            new_groups.append(clone)

        new_members = []
        for gm in members:
            id_map = part_map if gm.member_type == PART_MEMBER else group_map
            if gm.group_id not in group_map or gm.member_id not in id_map:
                continue
            new_members.append(GroupMember(group_id=group_map[gm.group_id], member_type=gm.member_type,
                                           member_id=id_map[gm.member_id]))

        top_level = [group_map[g.id] for g in groups if g.id not in child_groups]
        return new_parts, new_groups, new_members, top_level

    def _insert_subgraph(self, parts: Sequence[Part], groups: Sequence[Group],
                         members: Sequence[GroupMember], top_level_group_ids: Sequence[str]) -> None:
        """Adds new entities and selects the top-level groups, or the parts if there are none."""
        for part in parts:
            self._parts[part.id] = part
        for group in groups:
            self._groups[group.id] = group
        self._group_members.extend(members)
        sel = self._selection
        sel.selected_group_ids = list(top_level_group_ids)
        sel.selected_part_ids = [] if top_level_group_ids else [p.id for p in parts]
        sel.expanded_group_ids = sel.expanded_group_ids + [g.id for g in groups]

    # --- Public API: Getters ---

    @property
    def project_name(self) -> str:
        return self._settings.name

    @property
    def settings(self) -> ProjectSettings:
        return deep_copy(self._settings)

    @property
    def is_dirty(self) -> bool:
        return self._is_dirty

    @property
    def file_path(self) -> Optional[str]:
        return self._file_path

    @property
    def cut_list(self) -> Optional[CutList]:
        return deep_copy(self._cut_list)

    @property
    def clipboard(self) -> Clipboard:
        return deep_copy(self._clipboard)

    @property
    def camera_state(self) -> Optional[CameraState]:
        return deep_copy(self._camera_state)

    @property
    def thumbnail(self) -> Optional[ProjectThumbnail]:
        return deep_copy(self._thumbnail)

    @property
    def selected_part_ids(self) -> List[str]:
        return list(self._selection.selected_part_ids)

    @property
    def selected_group_ids(self) -> List[str]:
        return list(self._selection.selected_group_ids)

    @property
    def expanded_group_ids(self) -> List[str]:
        return list(self._selection.expanded_group_ids)

    @property
    def editing_group_id(self) -> Optional[str]:
        return self._selection.editing_group_id

    @property
    def hovered_part_id(self) -> Optional[str]:
        return self._selection.hovered_part_id

    @property
    def reference_part_ids(self) -> List[str]:
        return list(self._selection.reference_part_ids)

    def get_part(self, part_id: str) -> Optional[Part]:
        return deep_copy(self._parts.get(part_id))

    def get_stock(self, stock_id: str) -> Optional[Stock]:
        return deep_copy(self._stocks.get(stock_id))

    def get_group(self, group_id: str) -> Optional[Group]:
        return deep_copy(self._groups.get(group_id))

    def get_assembly(self, assembly_id: str) -> Optional[Assembly]:
        return deep_copy(self._assemblies.get(assembly_id))

    def list_parts(self) -> List[Part]:
        return deep_copy(list(self._parts.values()))

    def list_stocks(self) -> List[Stock]:
        return deep_copy(list(self._stocks.values()))

    def list_groups(self) -> List[Group]:
        return deep_copy(list(self._groups.values()))

    def list_group_members(self) -> List[GroupMember]:
        return deep_copy(self._group_members)

    def list_assemblies(self) -> List[Assembly]:
        return deep_copy(list(self._assemblies.values()))

    def list_snap_guides(self) -> List[SnapGuide]:
        return deep_copy(self._snap_guides)

    def list_custom_shopping_items(self) -> List[CustomShoppingItem]:
        return deep_copy(self._custom_shopping_items)

    # --- Public API: Relationship Queries ---

    def get_containing_group_id(self, member_id: str, member_type: str = PART_MEMBER) -> Optional[str]:
        return containing_group_id(member_id, self._group_members, member_type)

    def get_group_children(self, group_id: str) -> List[Tuple[str, str]]:
        """Returns (member_type, member_id) pairs of a group's immediate children."""
        return [(gm.member_type, gm.member_id) for gm in child_members(group_id, self._group_members)]

    def get_descendant_part_ids(self, group_id: str) -> List[str]:
        return descendant_part_ids(group_id, self._group_members)

    def get_ancestor_group_ids(self, member_id: str, member_type: str = PART_MEMBER) -> List[str]:
        return ancestor_group_ids(member_id, self._group_members, member_type)

    def is_descendant_of(self, candidate_id: str, ancestor_id: str) -> bool:
        return is_descendant_of(candidate_id, ancestor_id, self._group_members)

    def validate_parts_for_cut_list(self) -> List[Dict[str, str]]:
        return validate_parts_for_cut_list(list(self._parts.values()), list(self._stocks.values()))

    def check_integrity(self) -> List[str]:
        """Lists every violated reference or containment invariant (empty when consistent)."""
        errors = membership_errors(self._group_members, set(self._parts), set(self._groups))
        for part in self._parts.values():
            if part.stock_id and part.stock_id not in self._stocks:
                errors.append(f'Part "{part.name}" references non-existent stock ID "{part.stock_id}"')
        sel = self._selection
        for pid in sel.selected_part_ids + sel.reference_part_ids:
            if pid not in self._parts:
                errors.append(f'Selection references non-existent part ID "{pid}"')
        for gid in sel.selected_group_ids + sel.expanded_group_ids:
            if gid not in self._groups:
                errors.append(f'Selection references non-existent group ID "{gid}"')
        if sel.editing_group_id is not None and sel.editing_group_id not in self._groups:
            errors.append(f'Editing non-existent group ID "{sel.editing_group_id}"')
        return errors

    # --- Public API: Parts ---

    def add_part(self, **values) -> Optional[str]:
        """Adds a part (defaults fill missing fields) and selects it. Returns its id."""
        part = self._build_entity(Part, values, self._parts)
        if part is None:
            return None
        part = replace(part, stock_id=self._checked_stock_id(part.stock_id))
        with self._mutation(stale=True):
            self._parts[part.id] = part
            self._selection.selected_part_ids = [part.id]
        logger.info(f"Added part '{part.name}' ({part.id})")
        return part.id

    def update_part(self, part_id: str, **changes) -> bool:
        return self.batch_update_parts([(part_id, changes)])

    def update_parts(self, part_ids: Sequence[str], **changes) -> bool:
        """Applies the same changes to several parts."""
        return self.batch_update_parts([(pid, dict(changes)) for pid in part_ids])

    def batch_update_parts(self, updates: Sequence[Tuple[str, Dict[str, Any]]]) -> bool:
        """
        Applies per-part changes as one edit. All changes are validated first;
        if any is invalid nothing is applied. Unknown part ids are skipped.
        """
        updated: Dict[str, Part] = {}
        for part_id, changes in updates:
            part = updated.get(part_id) or self._parts.get(part_id)
            if part is None:
                logger.warning(f"Cannot update part {part_id}: not found.")
                continue
            changes = dict(changes)
            if "stock_id" in changes:
                changes["stock_id"] = self._checked_stock_id(changes["stock_id"])
            new_part = self._changed_entity(part, changes)
            if new_part is None:
                return False
            updated[part_id] = new_part
        if not updated:
            return False
        with self._mutation(stale=True):
            self._parts.update(updated)
        logger.debug(f"Updated {len(updated)} part(s)")
        return True

    def move_selected_parts(self, delta: Sequence[float]) -> List[str]:
        """
        Translates the parts affected by the current selection. Outside group
        editing a selected part moves its whole containing group.
        Returns the ids of the moved parts.
        """
        sel = self._selection
        targets = parts_to_move(sel.selected_part_ids, sel.selected_group_ids,
                                self._group_members, sel.editing_group_id)
        moved = [pid for pid in self._parts if pid in targets]
        if not moved:
            return []
        with self._mutation(stale=True):
            for pid in moved:
                part = self._parts[pid]
                self._parts[pid] = replace(part, position=translate_point(part.position, delta))
        logger.debug(f"Moved {len(moved)} part(s) by {tuple(delta)}")
        return moved

    def delete_part(self, part_id: str) -> bool:
        if part_id not in self._parts:
            logger.warning(f"Cannot delete part {part_id}: not found.")
            return False
        with self._mutation(stale=True):
            self._remove_parts([part_id])
        logger.info(f"Deleted part {part_id}")
        return True

    def delete_selected_parts(self) -> int:
        ids = [pid for pid in self._selection.selected_part_ids if pid in self._parts]
        if not ids:
            return 0
        with self._mutation(stale=True):
            self._remove_parts(ids)
        logger.info(f"Deleted {len(ids)} selected part(s)")
        return len(ids)

    def duplicate_part(self, part_id: str) -> Optional[str]:
        """Duplicates a single part (as a top-level part) and selects the copy."""
        part = self._parts.get(part_id)
        if part is None:
            logger.warning(f"Cannot duplicate part {part_id}: not found.")
            return None
        clone = replace(part, id=generate_id(), name=generate_copy_name(part.name),
                        position=translate_point(part.position, DUPLICATE_OFFSET))
        with self._mutation(stale=True):
            self._parts[clone.id] = clone
            self._selection.selected_part_ids = [clone.id]
            self._selection.selected_group_ids = []
        logger.info(f"Duplicated part '{part.name}' as '{clone.name}' ({clone.id})")
        return clone.id

    def duplicate_selected(self) -> List[str]:
        """
        Duplicates the selection closure (selected parts and groups with all their
        descendants) with fresh ids and a fixed offset. Returns the new part ids.
        """
        parts, groups, members = self._selection_closure()
        if not parts and not groups:
            return []
        new_parts, new_groups, new_members, top_level = self._clone_subgraph(
            parts, groups, members, lambda pos: translate_point(pos, DUPLICATE_OFFSET))
        with self._mutation(stale=True):
            self._insert_subgraph(new_parts, new_groups, new_members, top_level)
        logger.info(f"Duplicated {len(new_parts)} part(s) in {len(new_groups)} group(s)")
        return [p.id for p in new_parts]

    def reset_selected_parts_to_stock(self) -> int:
        """Re-applies color (and grain direction unless 'none') from each selected part's stock."""
        updated: Dict[str, Part] = {}
        for pid in self._selection.selected_part_ids:
            part = self._parts.get(pid)
            if part is None or not part.stock_id:
                continue
            stock = self._stocks.get(part.stock_id)
            if stock is None:
                continue
            grain = part.grain_direction if stock.grain_direction == "none" else stock.grain_direction
            updated[pid] = replace(part, color=stock.color, grain_direction=grain)
        if not updated:
            return 0
        with self._mutation(stale=True):
            self._parts.update(updated)
        return len(updated)

    def assign_stock_to_selected_parts(self, stock_id: Optional[str]) -> bool:
        """Assigns a stock (inheriting its color and grain) to the selected parts, or unassigns with None."""
        ids = [pid for pid in self._selection.selected_part_ids if pid in self._parts]
        if not ids:
            return False
        stock = None
        if stock_id is not None:
            stock = self._stocks.get(stock_id)
            if stock is None:
                logger.warning(f"Cannot assign stock {stock_id}: not found.")
                return False
        with self._mutation(stale=True):
            for pid in ids:
                part = self._parts[pid]
                if stock is None:
                    self._parts[pid] = replace(part, stock_id=None)
                else:
                    grain = part.grain_direction if stock.grain_direction == "none" else stock.grain_direction
                    self._parts[pid] = replace(part, stock_id=stock.id, color=stock.color,
                                               grain_direction=grain)
        return True

    # --- Public API: Clipboard ---

    def copy_selected(self) -> int:
        """Copies the selection closure to the clipboard. Returns the number of copied parts."""
        parts, groups, members = self._selection_closure()
        if not parts and not groups:
            return 0
        self._clipboard = Clipboard(parts=deep_copy(parts), groups=deep_copy(groups),
                                    group_members=deep_copy(members))
        logger.info(f"Copied {len(parts)} part(s) in {len(groups)} group(s)")
        return len(parts)

    def clear_clipboard(self) -> None:
        self._clipboard = Clipboard()

    def _paste(self, place: Callable[[Vector3], Vector3]) -> List[str]:
        clip = self._clipboard
        new_parts, new_groups, new_members, top_level = self._clone_subgraph(
            clip.parts, clip.groups, clip.group_members, place)
        with self._mutation(stale=True):
            self._insert_subgraph(new_parts, new_groups, new_members, top_level)
        # The next paste remaps from this output so repeated pastes never collide
        self._clipboard = Clipboard(parts=deep_copy(new_parts), groups=deep_copy(new_groups),
                                    group_members=deep_copy(new_members))
        logger.info(f"Pasted {len(new_parts)} part(s) in {len(new_groups)} group(s)")
        return [p.id for p in new_parts]

    def paste_clipboard(self) -> List[str]:
        """Pastes the clipboard with a fixed offset. Returns the new part ids."""
        if self._clipboard.is_empty:
            return []
        return self._paste(lambda pos: translate_point(pos, DUPLICATE_OFFSET))

    def paste_at_position(self, position: Sequence[float]) -> List[str]:
        """
        Pastes the clipboard centered on position in X/Z. Heights are kept.
        The center is the midpoint of the copied parts' X/Z position extent.
        """
        if self._clipboard.is_empty:
            return []
        target = to_vector(position)
        cx, cz = xz_extent_center([p.position for p in self._clipboard.parts])
        return self._paste(lambda pos: (float(target[0] + pos[0] - cx), pos[1],
                                        float(target[2] + pos[2] - cz)))

    # --- Public API: Stocks ---

    def add_stock(self, **values) -> Optional[str]:
        stock = self._build_entity(Stock, values, self._stocks)
        if stock is None:
            return None
        with self._mutation(stale=True):
            self._stocks[stock.id] = stock
        logger.info(f"Added stock '{stock.name}' ({stock.id})")
        return stock.id

    def update_stock(self, stock_id: str, **changes) -> bool:
        """Updates a stock. Dimensions are clamped to a small positive minimum."""
        stock = self._stocks.get(stock_id)
        if stock is None:
            logger.warning(f"Cannot update stock {stock_id}: not found.")
            return False
        for dim in ("length", "width", "thickness"):
            if changes.get(dim) is not None:
                changes[dim] = max(MIN_STOCK_DIMENSION, changes[dim])
        new_stock = self._changed_entity(stock, changes)
        if new_stock is None:
            return False
        with self._mutation(stale=True):
            self._stocks[stock_id] = new_stock
        return True

    def delete_stock(self, stock_id: str) -> bool:
        """Deletes a stock and unassigns it from every part that referenced it."""
        if stock_id not in self._stocks:
            logger.warning(f"Cannot delete stock {stock_id}: not found.")
            return False
        with self._mutation(stale=True):
            del self._stocks[stock_id]
            for pid, part in list(self._parts.items()):
                if part.stock_id == stock_id:
                    self._parts[pid] = replace(part, stock_id=None)
        logger.info(f"Deleted stock {stock_id}")
        return True

    # --- Public API: Assemblies ---

    def add_assembly(self, assembly: Assembly) -> bool:
        if assembly.id in self._assemblies:
            logger.error(f"Assembly id {assembly.id} is already in use.")
            return False
        with self._mutation():
            self._assemblies[assembly.id] = deep_copy(assembly)
        logger.info(f"Added assembly '{assembly.name}' ({assembly.id})")
        return True

    def update_assembly(self, assembly_id: str, **changes) -> bool:
        assembly = self._assemblies.get(assembly_id)
        if assembly is None:
            logger.warning(f"Cannot update assembly {assembly_id}: not found.")
            return False
        changes.setdefault("modified_at", timestamp_now())
        new_assembly = self._changed_entity(assembly, changes)
        if new_assembly is None:
            return False
        with self._mutation():
            self._assemblies[assembly_id] = new_assembly
        return True

    def delete_assembly(self, assembly_id: str) -> bool:
        if assembly_id not in self._assemblies:
            logger.warning(f"Cannot delete assembly {assembly_id}: not found.")
            return False
        with self._mutation():
            del self._assemblies[assembly_id]
        return True

    def create_assembly_from_selection(self, name: str, description: str = "",
                                       add_to_project: bool = False) -> Optional[Assembly]:
        """
        Extracts an Assembly from the selection closure. Positions become relative
        to the selection's ground origin (box center X/Z, box bottom Y).
        Returns None for an empty selection. The project is only changed when
        add_to_project is set.
        """
        parts, groups, members = self._selection_closure()
        assembly = extract_assembly(name, description, parts, groups, members,
                                    list(self._stocks.values()))
        if assembly is None:
            return None
        if add_to_project:
            self.add_assembly(assembly)
        logger.info(f"Created assembly '{name}' from {len(parts)} part(s)")
        return assembly

    def place_assembly(self, assembly: Union[str, Assembly], position: Sequence[float],
                       library_stocks: Optional[Sequence[Stock]] = None) -> List[str]:
        """
        Materializes an assembly (project assembly id or Assembly record) at position.
        Stock references are resolved project -> library -> embedded snapshot -> unassigned.
        Returns the new part ids.
        """
        if isinstance(assembly, str):
            record = self._assemblies.get(assembly)
            if record is None:
                logger.warning(f"Cannot place assembly {assembly}: not found.")
                return []
            assembly = record
        if not assembly.parts and not assembly.groups:
            logger.warning(f"Assembly '{assembly.name}' is empty; nothing placed.")
            return []
        resolution, stocks_to_add = resolve_assembly_stocks(
            assembly, list(self._stocks.values()), list(library_stocks or []))
        new_parts, new_groups, new_members, top_level = materialize_assembly(
            assembly, to_tuple(to_vector(position)), resolution)
        with self._mutation(stale=True):
            for stock in stocks_to_add:
                self._stocks[stock.id] = stock
            self._insert_subgraph(new_parts, new_groups, new_members, top_level)
        logger.info(f"Placed assembly '{assembly.name}': {len(new_parts)} part(s), "
                    f"{len(stocks_to_add)} new stock(s)")
        return [p.id for p in new_parts]

    # --- Public API: Groups ---

    def create_group(self, name: str, members: Sequence[Tuple[str, str]],
                     parent_group_id: Optional[str] = None) -> Optional[str]:
        """
        Creates a group from (member_type, member_id) pairs. Each member leaves
        the group it was in. The new group is top-level unless parent_group_id
        is given. Returns the new group id.
        """
        if not members:
            logger.warning(f"Cannot create group '{name}' without members.")
            return None
        unique: List[Tuple[str, str]] = []
        for member_type, member_id in members:
            if member_type not in MEMBER_TYPES:
                logger.error(f"Invalid member type '{member_type}'.")
                return None
            registry = self._parts if member_type == PART_MEMBER else self._groups
            if member_id not in registry:
                logger.error(f"Cannot group {member_type} {member_id}: not found.")
                return None
            if (member_type, member_id) not in unique:
                unique.append((member_type, member_id))
        if parent_group_id is not None:
            if parent_group_id not in self._groups:
                logger.error(f"Parent group {parent_group_id} not found.")
                return None
            for member_type, member_id in unique:
                if member_type == GROUP_MEMBER and is_descendant_of(parent_group_id, member_id,
                                                                     self._group_members):
                    logger.error(f"Cannot create group under {parent_group_id}: it is inside member group {member_id}.")
                    return None

        group = Group(name=name)
        with self._mutation(stale=True):
            for member_type, member_id in unique:
                self._detach_members([member_id], member_type)
            self._groups[group.id] = group
            for member_type, member_id in unique:
                self._add_membership(group.id, member_type, member_id)
            if parent_group_id is not None:
                self._add_membership(parent_group_id, GROUP_MEMBER, group.id)
            sel = self._selection
            sel.selected_part_ids = []
            sel.selected_group_ids = [group.id]
            sel.expanded_group_ids = sel.expanded_group_ids + [group.id]
        logger.info(f"Created group '{name}' ({group.id}) with {len(unique)} member(s)")
        return group.id

    def rename_group(self, group_id: str, name: str) -> bool:
        group = self._groups.get(group_id)
        if group is None:
            logger.warning(f"Cannot rename group {group_id}: not found.")
            return False
        with self._mutation():
            self._groups[group_id] = replace(group, name=name)
        return True

    def delete_group(self, group_id: str, mode: str = UNGROUP,
                     target_parent_id: Optional[str] = None) -> bool:
        """
        Deletes a group.
        'ungroup' removes only the group: its immediate children become top-level,
        or move to target_parent_id when given. 'recursive' removes the group,
        all descendant groups and all descendant parts.
        """
        if group_id not in self._groups:
            logger.warning(f"Cannot delete group {group_id}: not found.")
            return False
        if mode == UNGROUP:
            if target_parent_id is not None:
                if target_parent_id not in self._groups:
                    logger.error(f"Target parent group {target_parent_id} not found.")
                    return False
                if is_descendant_of(target_parent_id, group_id, self._group_members):
                    logger.error(f"Cannot move children of {group_id} into its own subtree ({target_parent_id}).")
                    return False
            children = [(gm.member_type, gm.member_id) for gm in child_members(group_id, self._group_members)]
            with self._mutation(stale=True):
                self._remove_groups([group_id])
                if target_parent_id is not None:
                    for member_type, member_id in children:
                        self._add_membership(target_parent_id, member_type, member_id)
            logger.info(f"Ungrouped {group_id}: {len(children)} child(ren) released")
            return True
        if mode == RECURSIVE:
            group_ids = descendant_group_ids(group_id, self._group_members)
            part_ids = descendant_part_ids(group_id, self._group_members)
            with self._mutation(stale=True):
                self._remove_parts(part_ids)
                self._remove_groups(group_ids)
            logger.info(f"Deleted group {group_id} with {len(group_ids) - 1} nested group(s) "
                        f"and {len(part_ids)} part(s)")
            return True
        logger.error(f"Unknown delete mode '{mode}'.")
        return False

    def add_to_group(self, group_id: str, member_ids: Sequence[str], member_type: str) -> bool:
        """Moves members into a group. Rejected entirely if any move would create a cycle."""
        if group_id not in self._groups:
            logger.warning(f"Cannot add to group {group_id}: not found.")
            return False
        if member_type not in MEMBER_TYPES:
            logger.error(f"Invalid member type '{member_type}'.")
            return False
        registry = self._parts if member_type == PART_MEMBER else self._groups
        ids = list(dict.fromkeys(member_ids))
        if not ids:
            return False
        for member_id in ids:
            if member_id not in registry:
                logger.error(f"Cannot add {member_type} {member_id}: not found.")
                return False
            if member_type == GROUP_MEMBER and is_descendant_of(group_id, member_id, self._group_members):
                logger.error(f"Cannot add group {member_id} to {group_id}: would create a cycle.")
                return False
        with self._mutation(stale=True):
            self._detach_members(ids, member_type)
            for member_id in ids:
                self._add_membership(group_id, member_type, member_id)
        return True

    def remove_from_group(self, member_ids: Sequence[str], member_type: str) -> bool:
        """
        Makes members top-level. Groups left empty are deleted, and the removal
        cascades upward through parents emptied in turn.
        """
        ids = set(member_ids)
        affected = [gm.group_id for gm in self._group_members
                    if gm.member_type == member_type and gm.member_id in ids]
        if not affected:
            logger.warning(f"None of the given {member_type}s belong to a group.")
            return False
        with self._mutation(stale=True):
            self._detach_members(ids, member_type)
            pending = list(dict.fromkeys(affected))
            while pending:
                gid = pending.pop(0)
                if gid not in self._groups or child_members(gid, self._group_members):
                    continue
                parent = containing_group_id(gid, self._group_members, GROUP_MEMBER)
                self._remove_groups([gid])
                logger.debug(f"Removed empty group {gid}")
                if parent is not None:
                    pending.append(parent)
        return True

    def merge_groups(self, group_ids: Sequence[str], mode: str = MERGE_TOP_LEVEL) -> Optional[str]:
        """
        Merges two or more groups into a new group.
        'top-level' moves each source's immediate children into the new group;
        'deep' flattens all descendant parts into it and removes nested groups.
        A source nested inside another source is handled as part of that source.
        The new group takes the sources' common parent if they share one.
        """
        ids = [gid for gid in dict.fromkeys(group_ids) if gid in self._groups]
        if len(ids) < 2:
            logger.warning("Merging requires at least two existing groups.")
            return None
        if mode not in (MERGE_TOP_LEVEL, MERGE_DEEP):
            logger.error(f"Unknown merge mode '{mode}'.")
            return None

        roots = [gid for gid in ids
                 if not any(other != gid and is_descendant_of(gid, other, self._group_members)
                            for other in ids)]
        name = merged_group_name([self._groups[gid].name for gid in ids])
        parents = {containing_group_id(gid, self._group_members, GROUP_MEMBER) for gid in roots}
        parent_id = parents.pop() if len(parents) == 1 else None

        if mode == MERGE_TOP_LEVEL:
            new_members = [(gm.member_type, gm.member_id) for root in roots
                           for gm in child_members(root, self._group_members)]
            doomed = roots
        else:
            new_members = []
            for root in roots:
                new_members.extend((PART_MEMBER, pid) for pid in descendant_part_ids(root, self._group_members))
            new_members = list(dict.fromkeys(new_members))
            doomed = list(dict.fromkeys(g for root in roots
                                        for g in descendant_group_ids(root, self._group_members)))

        merged = Group(name=name)
        with self._mutation(stale=True):
            for member_type, member_id in new_members:
                self._detach_members([member_id], member_type)
            self._remove_groups(doomed)
            self._groups[merged.id] = merged
            for member_type, member_id in new_members:
                self._add_membership(merged.id, member_type, member_id)
            if parent_id is not None:
                self._add_membership(parent_id, GROUP_MEMBER, merged.id)
            sel = self._selection
            sel.selected_part_ids = []
            sel.selected_group_ids = [merged.id]
            sel.expanded_group_ids = sel.expanded_group_ids + [merged.id]
        logger.info(f"Merged {len(ids)} groups into '{name}' ({merged.id}, mode {mode})")
        return merged.id

    # --- Public API: Selection & Group Editing ---

    def select_part(self, part_id: Optional[str]) -> None:
        sel = self._selection
        sel.selected_part_ids = [part_id] if part_id in self._parts else []
        sel.selected_group_ids = []

    def toggle_part_selection(self, part_id: str) -> None:
        sel = self._selection
        if part_id in sel.selected_part_ids:
            sel.selected_part_ids = [p for p in sel.selected_part_ids if p != part_id]
        elif part_id in self._parts:
            sel.selected_part_ids = sel.selected_part_ids + [part_id]

    def select_parts(self, part_ids: Sequence[str]) -> None:
        sel = self._selection
        sel.selected_part_ids = [p for p in dict.fromkeys(part_ids) if p in self._parts]
        sel.selected_group_ids = []

    def clear_selection(self) -> None:
        self._selection.selected_part_ids = []
        self._selection.selected_group_ids = []

    def select_group(self, group_id: str) -> None:
        """
        Selects a single group. While editing, a proper descendant of the edited
        group keeps edit mode; any other group exits it.
        """
        if group_id not in self._groups:
            logger.warning(f"Cannot select group {group_id}: not found.")
            return
        sel = self._selection
        editing = sel.editing_group_id
        if editing is not None and not (group_id != editing and
                                        is_descendant_of(group_id, editing, self._group_members)):
            editing = None
        sel.selected_group_ids = [group_id]
        sel.selected_part_ids = []
        sel.editing_group_id = editing

    def toggle_group_selection(self, group_id: str) -> None:
        sel = self._selection
        if group_id in sel.selected_group_ids:
            sel.selected_group_ids = [g for g in sel.selected_group_ids if g != group_id]
        elif group_id in self._groups:
            sel.selected_group_ids = sel.selected_group_ids + [group_id]
            sel.editing_group_id = None

    def clear_group_selection(self) -> None:
        self._selection.selected_group_ids = []

    def enter_group(self, group_id: str) -> bool:
        """Enters editing mode for a group. Clears the selection."""
        if group_id not in self._groups:
            logger.warning(f"Cannot enter group {group_id}: not found.")
            return False
        sel = self._selection
        sel.editing_group_id = group_id
        sel.selected_part_ids = []
        sel.selected_group_ids = []
        return True

    def exit_group(self, to_parent: bool = False) -> None:
        """
        Leaves group editing mode and clears the part selection.
        With to_parent, steps out one level into the parent group instead.
        """
        sel = self._selection
        if sel.editing_group_id is None:
            return
        parent = None
        if to_parent:
            parent = containing_group_id(sel.editing_group_id, self._group_members, GROUP_MEMBER)
        sel.editing_group_id = parent
        sel.selected_part_ids = []

    def expand_group(self, group_id: str) -> None:
        if group_id in self._groups and group_id not in self._selection.expanded_group_ids:
            self._selection.expanded_group_ids = self._selection.expanded_group_ids + [group_id]

    def collapse_group(self, group_id: str) -> None:
        self._selection.expanded_group_ids = [g for g in self._selection.expanded_group_ids if g != group_id]

    def toggle_group_expanded(self, group_id: str) -> None:
        if group_id in self._selection.expanded_group_ids:
            self.collapse_group(group_id)
        else:
            self.expand_group(group_id)

    def expand_all_groups(self) -> None:
        self._selection.expanded_group_ids = list(self._groups)

    def collapse_all_groups(self) -> None:
        self._selection.expanded_group_ids = []

    def reveal_part(self, part_id: str) -> List[str]:
        """Expands every ancestor group of a part. Returns the ancestor ids."""
        ancestors = ancestor_group_ids(part_id, self._group_members)
        for gid in ancestors:
            self.expand_group(gid)
        return ancestors

    def set_hovered_part(self, part_id: Optional[str]) -> None:
        self._selection.hovered_part_id = part_id if part_id in self._parts else None

    def add_reference_part(self, part_id: str) -> None:
        if part_id in self._parts and part_id not in self._selection.reference_part_ids:
            self._selection.reference_part_ids = self._selection.reference_part_ids + [part_id]

    def remove_reference_part(self, part_id: str) -> None:
        self._selection.reference_part_ids = [p for p in self._selection.reference_part_ids if p != part_id]

    def clear_reference_parts(self) -> None:
        self._selection.reference_part_ids = []

    # --- Public API: Project Settings ---

    def _update_settings(self, stale: bool = False, **changes) -> bool:
        new_settings = self._changed_entity(self._settings, changes)
        if new_settings is None:
            return False
        with self._mutation(stale=stale):
            self._settings = new_settings
        return True

    def set_project_name(self, name: str) -> bool:
        return self._update_settings(name=name)

    def set_units(self, units: str) -> bool:
        if units not in UNITS:
            logger.error(f"Invalid units '{units}'.")
            return False
        return self._update_settings(units=units)

    def set_grid_size(self, grid_size: float) -> bool:
        if grid_size <= 0:
            logger.error(f"Grid size must be positive, got {grid_size}")
            return False
        return self._update_settings(grid_size=float(grid_size))

    def set_kerf_width(self, kerf_width: float) -> bool:
        if kerf_width < 0:
            logger.error(f"Kerf width cannot be negative, got {kerf_width}")
            return False
        return self._update_settings(stale=True, kerf_width=float(kerf_width))

    def set_overage_factor(self, overage_factor: float) -> bool:
        if overage_factor < 0:
            logger.error(f"Overage factor cannot be negative, got {overage_factor}")
            return False
        return self._update_settings(stale=True, overage_factor=float(overage_factor))

    def set_project_notes(self, notes: str) -> bool:
        return self._update_settings(project_notes=notes)

    def set_stock_constraints(self, constraints: StockConstraintSettings) -> bool:
        return self._update_settings(stock_constraints=deep_copy(constraints))

    # --- Public API: Snap Guides & Shopping Items ---

    def add_snap_guide(self, axis: str, position: float, label: Optional[str] = None) -> Optional[str]:
        try:
            guide = SnapGuide(axis=axis, position=float(position), label=label)
        except ValueError as e:
            logger.error(f"Invalid snap guide: {e}")
            return None
        with self._mutation():
            self._snap_guides.append(guide)
        return guide.id

    def remove_snap_guide(self, guide_id: str) -> bool:
        if not any(g.id == guide_id for g in self._snap_guides):
            return False
        with self._mutation():
            self._snap_guides = [g for g in self._snap_guides if g.id != guide_id]
        return True

    def clear_snap_guides(self) -> None:
        if self._snap_guides:
            with self._mutation():
                self._snap_guides = []

    def add_custom_shopping_item(self, name: str, quantity: int = 1, unit_price: float = 0.0,
                                 description: Optional[str] = None,
                                 category: Optional[str] = None) -> str:
        item = CustomShoppingItem(name=name, quantity=int(quantity), unit_price=float(unit_price),
                                  description=description, category=category)
        with self._mutation():
            self._custom_shopping_items.append(item)
        return item.id

    def update_custom_shopping_item(self, item_id: str, **changes) -> bool:
        for index, item in enumerate(self._custom_shopping_items):
            if item.id == item_id:
                new_item = self._changed_entity(item, changes)
                if new_item is None:
                    return False
                with self._mutation():
                    self._custom_shopping_items[index] = new_item
                return True
        logger.warning(f"Cannot update shopping item {item_id}: not found.")
        return False

    def delete_custom_shopping_item(self, item_id: str) -> bool:
        if not any(i.id == item_id for i in self._custom_shopping_items):
            return False
        with self._mutation():
            self._custom_shopping_items = [i for i in self._custom_shopping_items if i.id != item_id]
        return True

    # --- Public API: View State ---

    def set_camera_state(self, camera_state: Optional[CameraState]) -> None:
        self._camera_state = deep_copy(camera_state)

    def set_thumbnail(self, thumbnail: Optional[ProjectThumbnail]) -> None:
        self._thumbnail = deep_copy(thumbnail)

    def set_file_path(self, file_path: Optional[str]) -> None:
        self._file_path = file_path

    # --- Public API: Cut List & Dirty Flag ---

    def set_cut_list(self, cut_list: Optional[CutList]) -> None:
        with self._mutation():
            self._cut_list = deep_copy(cut_list)

    def mark_cut_list_stale(self) -> bool:
        """Marks the cut list stale. A no-op (returns False) if there is none or it is already stale."""
        if self._cut_list is None or self._cut_list.is_stale:
            return False
        with self._mutation():
            self._mark_cut_list_stale()
        return True

    def clear_cut_list(self) -> None:
        with self._mutation():
            self._cut_list = None

    def mark_dirty(self) -> None:
        self._is_dirty = True
        self._settings = replace(self._settings, modified_at=timestamp_now())

    def mark_clean(self) -> None:
        """Clears the dirty flag. Call after a successful save."""
        self._is_dirty = False

    # --- Public API: Undo / Redo ---

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    def undo(self) -> bool:
        return self._restore_snapshot(self._history.undo)

    def redo(self) -> bool:
        return self._restore_snapshot(self._history.redo)

    def _restore_snapshot(self, step: Callable[[], Optional[str]]) -> bool:
        if self._mutation_depth > 0:
            logger.error("Cannot undo or redo while an edit is in progress.")
            return False
        snapshot = step()
        if snapshot is None:
            return False
        data = ProjectData.from_dict(load_snapshot(snapshot))
        data.settings = replace(data.settings, created_at=self._settings.created_at,
                                modified_at=self._settings.modified_at)
        self._apply_project_data(data)
        self._prune_selection()
        self._is_dirty = True
        return True

    def clear_history(self) -> None:
        """Drops undo/redo entries, keeping the current state as the baseline."""
        self._history.clear(present=self._snapshot())

    # --- Public API: Project Lifecycle ---

    def _project_data(self) -> ProjectData:
        return ProjectData(
            settings=self._settings,
            parts=list(self._parts.values()),
            stocks=list(self._stocks.values()),
            groups=list(self._groups.values()),
            group_members=list(self._group_members),
            assemblies=list(self._assemblies.values()),
            snap_guides=list(self._snap_guides),
            custom_shopping_items=list(self._custom_shopping_items),
            cut_list=self._cut_list,
        )

    def get_project_data(self) -> ProjectData:
        """Returns a detached copy of the persisted subset of the project."""
        return deep_copy(self._project_data())

    def _apply_project_data(self, data: ProjectData) -> None:
        self._settings = data.settings
        self._parts = {p.id: p for p in data.parts}
        self._stocks = {s.id: s for s in data.stocks}
        self._groups = {g.id: g for g in data.groups}
        self._group_members = list(data.group_members)
        self._assemblies = {a.id: a for a in data.assemblies}
        self._snap_guides = list(data.snap_guides)
        self._custom_shopping_items = list(data.custom_shopping_items)
        self._cut_list = data.cut_list

    def new_project(self, units: Optional[str] = None, grid_size: Optional[float] = None,
                    stock_constraints: Optional[StockConstraintSettings] = None,
                    name: str = "Untitled Project") -> None:
        """Replaces the workspace with an empty project. Undo history is cleared afterwards."""
        settings = ProjectSettings(name=name)
        if units in UNITS:
            settings.units = units
        if grid_size:
            settings.grid_size = float(grid_size)
        if stock_constraints is not None:
            settings.stock_constraints = deep_copy(stock_constraints)
        with self._mutation(dirty=False):
            self._apply_project_data(ProjectData(settings=settings))
            self._reset_transient_state(file_path=None)
        self.run_after_flush(self.clear_history)
        logger.info(f"Started new project '{name}'")

    def load_project(self, data: ProjectData, file_path: Optional[str] = None,
                     camera_state: Optional[CameraState] = None,
                     thumbnail: Optional[ProjectThumbnail] = None, is_dirty: bool = False) -> None:
        """
        Replaces the workspace with loaded project data. Undo history is cleared afterwards.
        is_dirty restores the flag of a project that was swapped out unsaved.
        """
        with self._mutation(dirty=False):
            self._apply_project_data(deep_copy(data))
            self._reset_transient_state(file_path=file_path)
            self._camera_state = deep_copy(camera_state)
            self._thumbnail = deep_copy(thumbnail)
            self._is_dirty = is_dirty
        self.run_after_flush(self.clear_history)
        logger.info(f"Loaded project '{self._settings.name}' "
                    f"({len(self._parts)} parts, {len(self._stocks)} stocks, {len(self._groups)} groups)")

    def _reset_transient_state(self, file_path: Optional[str]) -> None:
        self._selection = SelectionState()
        self._clipboard = Clipboard()
        self._camera_state = None
        self._thumbnail = None
        self._file_path = file_path
        self._is_dirty = False
