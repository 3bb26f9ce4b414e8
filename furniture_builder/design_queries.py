"""
design_queries.py

Pure query functions over the design graph. Group containment is stored as a
flat list of GroupMember join records; these helpers answer containment,
descendant, ancestor and selection-closure questions without mutating anything.

Traversals keep a visited set so they terminate even if the member list were
to contain a cycle.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .cad_common import PART_MEMBER, GROUP_MEMBER
from .design_entities import Part, Stock, GroupMember

logger = logging.getLogger(__name__)


def containing_group_id(member_id: str, group_members: Sequence[GroupMember],
                        member_type: str = PART_MEMBER) -> Optional[str]:
    """Returns the id of the group directly containing the member, or None if top-level."""
    for gm in group_members:
        if gm.member_type == member_type and gm.member_id == member_id:
            return gm.group_id
    return None


def child_members(group_id: str, group_members: Sequence[GroupMember]) -> List[GroupMember]:
    """Returns the membership rows of the group's immediate children."""
    return [gm for gm in group_members if gm.group_id == group_id]


def descendant_part_ids(group_id: str, group_members: Sequence[GroupMember]) -> List[str]:
    """Collects the ids of all parts reachable through nested group membership."""
    part_ids: List[str] = []
    seen_parts: Set[str] = set()
    visited: Set[str] = set()
    stack = [group_id]
    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)
        for gm in child_members(current, group_members):
            if gm.member_type == PART_MEMBER:
                if gm.member_id not in seen_parts:
                    seen_parts.add(gm.member_id)
                    part_ids.append(gm.member_id)
            else:
                stack.append(gm.member_id)
    return part_ids


def descendant_group_ids(group_id: str, group_members: Sequence[GroupMember],
                         include_self: bool = True) -> List[str]:
    """Collects the ids of all groups nested (transitively) inside a group."""
    result: List[str] = []
    visited: Set[str] = set()
    stack = [group_id]
    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)
        result.append(current)
        for gm in child_members(current, group_members):
            if gm.member_type == GROUP_MEMBER:
                stack.append(gm.member_id)
    if not include_self:
        result.remove(group_id)
    return result


def ancestor_group_ids(member_id: str, group_members: Sequence[GroupMember],
                       member_type: str = PART_MEMBER) -> List[str]:
    """Walks the parent chain upward, nearest parent first."""
    ancestors: List[str] = []
    current_id, current_type = member_id, member_type
    while True:
        parent_id = containing_group_id(current_id, group_members, current_type)
        if parent_id is None or parent_id in ancestors:
            break
        ancestors.append(parent_id)
        current_id, current_type = parent_id, GROUP_MEMBER
    return ancestors


def is_descendant_of(candidate_id: str, ancestor_id: str,
                     group_members: Sequence[GroupMember]) -> bool:
    """
    True if candidate_id equals ancestor_id or is a group nested (transitively)
    inside it. Used as the guard before any operation that re-parents a group.
    """
    if candidate_id == ancestor_id:
        return True
    return candidate_id in descendant_group_ids(ancestor_id, group_members, include_self=False)


def expand_selection(part_ids: Iterable[str], group_ids: Iterable[str],
                     group_members: Sequence[GroupMember]) -> Tuple[Set[str], Set[str]]:
    """
    Expands a mixed part/group selection to its closure: every selected group
    plus all of its descendant groups, and every selected part plus all parts
    contained by those groups.
    """
    closure_parts: Set[str] = set(part_ids)
    closure_groups: Set[str] = set()
    for gid in group_ids:
        closure_groups.update(descendant_group_ids(gid, group_members))
    for gid in closure_groups:
        closure_parts.update(descendant_part_ids(gid, group_members))
    return closure_parts, closure_groups


def top_level_group_ids(group_ids: Iterable[str], group_members: Sequence[GroupMember]) -> List[str]:
    """Returns the groups of a set that are not themselves members of another group in the set."""
    group_set = set(group_ids)
    nested = {gm.member_id for gm in group_members
              if gm.member_type == GROUP_MEMBER and gm.group_id in group_set}
    return [gid for gid in group_ids if gid not in nested]


def parts_to_move(selected_part_ids: Sequence[str], selected_group_ids: Sequence[str],
                  group_members: Sequence[GroupMember], editing_group_id: Optional[str]) -> Set[str]:
    """
    Resolves the set of parts a move acts on. Inside an entered group only the
    explicitly selected parts (plus parts of selected sub-groups) move; otherwise
    a selected part drags its whole containing group along.
    """
    result: Set[str] = set(selected_part_ids)
    if editing_group_id is None:
        for pid in selected_part_ids:
            gid = containing_group_id(pid, group_members)
            if gid is not None:
                result.update(descendant_part_ids(gid, group_members))
    for gid in selected_group_ids:
        result.update(descendant_part_ids(gid, group_members))
    return result


def membership_errors(group_members: Sequence[GroupMember], part_ids: Set[str],
                      group_ids: Set[str]) -> List[str]:
    """
    Reports membership rows that break the forest invariant: dangling group or
    member ids, members with more than one parent, and groups that contain themselves.
    """
    errors: List[str] = []
    parents: Dict[Tuple[str, str], str] = {}
    for gm in group_members:
        if gm.group_id not in group_ids:
            errors.append(f'GroupMember references non-existent group ID "{gm.group_id}"')
        known = part_ids if gm.member_type == PART_MEMBER else group_ids
        if gm.member_id not in known:
            errors.append(f'GroupMember references non-existent {gm.member_type} ID "{gm.member_id}"')
        key = (gm.member_type, gm.member_id)
        if key in parents:
            errors.append(f'{gm.member_type.capitalize()} "{gm.member_id}" belongs to more than one group')
        else:
            parents[key] = gm.group_id
    for gid in sorted(group_ids):
        if gid in ancestor_group_ids(gid, group_members, GROUP_MEMBER):
            errors.append(f'Group "{gid}" contains itself')
    return errors


def validate_parts_for_cut_list(parts: Sequence[Part], stocks: Sequence[Stock]) -> List[Dict[str, str]]:
    """
    Checks parts against their assigned stock before cut list generation.
    Returns issue records with partId, partName, type, message and severity.
    """
    issues: List[Dict[str, str]] = []
    stock_map = {s.id: s for s in stocks}

    def issue(part: Part, kind: str, message: str, severity: str = "error"):
        issues.append({"partId": part.id, "partName": part.name, "type": kind,
                       "message": message, "severity": severity})

    for part in parts:
        if not part.stock_id:
            issue(part, "no_stock", "No stock assigned")
            continue
        stock = stock_map.get(part.stock_id)
        if stock is None:
            issue(part, "no_stock", "Assigned stock not found")
            continue

        cut_length = part.length + (part.extra_length or 0)
        cut_width = part.width + (part.extra_width or 0)

        if part.thickness > stock.thickness:
            issue(part, "exceeds_thickness",
                  f'Thickness ({part.thickness}") exceeds stock ({stock.thickness}")')

        fits_normal = cut_length <= stock.length and cut_width <= stock.width
        fits_rotated = (not part.grain_sensitive and
                        cut_length <= stock.width and cut_width <= stock.length)
        if not fits_normal and not fits_rotated:
            # Glue-up panels may exceed the stock width, never its length
            if not (part.glue_up_panel and cut_length <= stock.length):
                issue(part, "exceeds_dimensions",
                      f'Dimensions ({cut_length}" x {cut_width}") exceed stock '
                      f'({stock.length}" x {stock.width}")')

        if part.grain_sensitive and stock.grain_direction != "none":
            if part.grain_direction != stock.grain_direction:
                issue(part, "grain_mismatch",
                      f"Grain direction ({part.grain_direction}) doesn't match stock "
                      f"({stock.grain_direction})", severity="warning")
    return issues
