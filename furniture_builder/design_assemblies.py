"""
design_assemblies.py

Conversion between live workspace entities and portable Assembly records.

- Extraction turns a set of parts/groups into an index-addressed Assembly with
  positions relative to a computed origin and embedded stock snapshots.
- Stock resolution decides, per original stock id, which destination stock a
  placed part should reference (project, library copy, embedded snapshot, or none).
- Materialization mints fresh entities from an Assembly at a target position.

These are pure functions; FurnitureProject applies their results.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .cad_common import PART_MEMBER, Vector3
from .cad_transformations import (
    bounding_box_of_parts, ground_origin, relative_to, translate_point
)
from .design_entities import (
    Part, Stock, Group, GroupMember, Assembly, AssemblyPart, AssemblyGroup,
    AssemblyGroupMember, EmbeddedStock
)
from .design_queries import top_level_group_ids
from .design_snapshot import deep_copy, timestamp_now

logger = logging.getLogger(__name__)

# Maps an original stock id to the destination stock id (None clears the reference)
StockResolution = Dict[str, Optional[str]]


def selection_origin(parts: Sequence[Part]) -> Optional[Vector3]:
    """
    Returns the placement origin of a set of parts: bounding box center on X/Z
    and bounding box bottom on Y. None for an empty set.
    """
    if not parts:
        return None
    return ground_origin(bounding_box_of_parts(parts))


def assembly_part_from_part(part: Part, origin: Sequence[float],
                            stock_map: Dict[str, Stock]) -> AssemblyPart:
    """Converts a live Part to an AssemblyPart relative to origin, embedding its stock."""
    embedded = None
    if part.stock_id:
        stock = stock_map.get(part.stock_id)
        if stock is not None:
            embedded = EmbeddedStock.from_stock(stock)
    return AssemblyPart(
        name=part.name,
        length=part.length,
        width=part.width,
        thickness=part.thickness,
        relative_position=relative_to(part.position, origin),
        rotation=part.rotation,
        stock_id=part.stock_id,
        grain_sensitive=part.grain_sensitive,
        grain_direction=part.grain_direction,
        color=part.color,
        notes=part.notes,
        extra_length=part.extra_length,
        extra_width=part.extra_width,
        glue_up_panel=part.glue_up_panel,
        ignore_overlap=part.ignore_overlap,
        embedded_stock=embedded,
    )


def build_assembly(name: str, description: str, parts: Sequence[Part], groups: Sequence[Group],
                   group_members: Sequence[GroupMember], stocks: Sequence[Stock],
                   origin: Sequence[float], assembly_id: Optional[str] = None) -> Assembly:
    """
    Builds an Assembly from explicit entity lists and an origin.
    Membership rows are kept only when both the group and the member are part
    of the given lists, and are rewritten to positional indices.
    """
    stock_map = {s.id: s for s in stocks}
    part_index = {p.id: i for i, p in enumerate(parts)}
    group_index = {g.id: i for i, g in enumerate(groups)}

    assembly_parts = [assembly_part_from_part(p, origin, stock_map) for p in parts]
    assembly_groups = [AssemblyGroup(original_id=g.id, name=g.name) for g in groups]

    assembly_members: List[AssemblyGroupMember] = []
    for gm in group_members:
        if gm.group_id not in group_index:
            continue
        index_map = part_index if gm.member_type == PART_MEMBER else group_index
        if gm.member_id not in index_map:
            continue
        assembly_members.append(AssemblyGroupMember(
            group_index=group_index[gm.group_id],
            member_type=gm.member_type,
            member_index=index_map[gm.member_id],
        ))

    now = timestamp_now()
    assembly = Assembly(name=name, description=description, parts=assembly_parts,
                        groups=assembly_groups, group_members=assembly_members,
                        created_at=now, modified_at=now)
    if assembly_id:
        assembly.id = assembly_id
    logger.debug(f"Built assembly '{name}' with {len(assembly_parts)} parts, "
                 f"{len(assembly_groups)} groups, {len(assembly_members)} memberships")
    return assembly


def extract_assembly(name: str, description: str, parts: Sequence[Part], groups: Sequence[Group],
                     group_members: Sequence[GroupMember], stocks: Sequence[Stock]) -> Optional[Assembly]:
    """Extracts an assembly from a selection closure, or None when it contains no parts."""
    origin = selection_origin(parts)
    if origin is None:
        logger.warning(f"Cannot extract assembly '{name}': selection contains no parts.")
        return None
    return build_assembly(name, description, parts, groups, group_members, stocks, origin)


def resolve_assembly_stocks(assembly: Assembly, project_stocks: Sequence[Stock],
                            library_stocks: Sequence[Stock] = ()) -> Tuple[StockResolution, List[Stock]]:
    """
    Resolves every distinct stock id referenced by the assembly's parts.

    Each id is resolved once, trying in order:
      1. a stock with that id in the destination project (reused as-is);
      2. a stock with that id in the library (copied into the project);
      3. the part's embedded snapshot: an existing or already-added stock with the
         same name, dimensions and color, otherwise a new stock built from it;
      4. nothing, in which case the reference is cleared.

    Returns the id resolution map and the stocks that must be added to the project.
    """
    project_map = {s.id: s for s in project_stocks}
    library_map = {s.id: s for s in library_stocks}
    resolution: StockResolution = {}
    stocks_to_add: List[Stock] = []

    for ap in assembly.parts:
        sid = ap.stock_id
        if not sid or sid in resolution:
            continue
        if sid in project_map:
            resolution[sid] = sid
            continue
        if sid in library_map:
            copied = deep_copy(library_map[sid])
            stocks_to_add.append(copied)
            resolution[sid] = copied.id
            logger.debug(f"Stock '{copied.name}' ({sid}) copied from library.")
            continue
        if ap.embedded_stock is not None:
            candidates = list(project_stocks) + stocks_to_add
            match = next((s for s in candidates if ap.embedded_stock.matches(s)), None)
            if match is not None:
                resolution[sid] = match.id
                logger.debug(f"Embedded stock '{ap.embedded_stock.name}' matched existing stock {match.id}.")
            else:
                created = ap.embedded_stock.to_stock()
                stocks_to_add.append(created)
                resolution[sid] = created.id
                logger.debug(f"Created stock '{created.name}' ({created.id}) from embedded snapshot.")
            continue
        resolution[sid] = None
        logger.warning(f"Stock {sid} could not be resolved for assembly '{assembly.name}'; "
                       f"parts will be unassigned.")
    return resolution, stocks_to_add


def materialize_assembly(assembly: Assembly, position: Sequence[float],
                         resolution: Optional[StockResolution] = None
                         ) -> Tuple[List[Part], List[Group], List[GroupMember], List[str]]:
    """
    Mints new parts, groups and memberships from an assembly placed at position.
    Returns (parts, groups, group_members, top_level_group_ids).
    Membership templates with out-of-range indices are skipped.
    """
    resolution = resolution or {}
    new_parts: List[Part] = []
    for ap in assembly.parts:
        stock_id = ap.stock_id
        if stock_id and stock_id in resolution:
            stock_id = resolution[stock_id]
        new_parts.append(Part(
            name=ap.name,
            length=ap.length,
            width=ap.width,
            thickness=ap.thickness,
            position=translate_point(position, ap.relative_position),
            rotation=ap.rotation,
            stock_id=stock_id,
            grain_sensitive=ap.grain_sensitive,
            grain_direction=ap.grain_direction,
            color=ap.color,
            notes=ap.notes,
            extra_length=ap.extra_length,
            extra_width=ap.extra_width,
            glue_up_panel=ap.glue_up_panel,
            ignore_overlap=ap.ignore_overlap,
        ))
    new_groups = [Group(name=ag.name) for ag in assembly.groups]

    new_members: List[GroupMember] = []
    for agm in assembly.group_members:
        targets = new_parts if agm.member_type == PART_MEMBER else new_groups
        if not (0 <= agm.group_index < len(new_groups) and 0 <= agm.member_index < len(targets)):
            logger.warning(f"Skipping membership with invalid indices in assembly '{assembly.name}': "
                           f"group {agm.group_index}, {agm.member_type} {agm.member_index}")
            continue
        new_members.append(GroupMember(
            group_id=new_groups[agm.group_index].id,
            member_type=agm.member_type,
            member_id=targets[agm.member_index].id,
        ))

    top_level = top_level_group_ids([g.id for g in new_groups], new_members)
    return new_parts, new_groups, new_members, top_level
