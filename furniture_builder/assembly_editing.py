"""
assembly_editing.py

Assembly edit session: temporarily swaps a project's workspace for the contents
of one assembly so it can be edited with the normal part/group operations, then
turns the edited workspace back into an Assembly record.

The previous project (data, file path, dirty flag, expanded groups, reference
parts and camera) is kept aside until it is restored or discarded.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence

from .cad_transformations import mean_xz
from .design_assemblies import build_assembly, resolve_assembly_stocks, materialize_assembly
from .design_entities import Assembly, Stock, CameraState, ProjectThumbnail, ProjectData
from .design_project import FurnitureProject
from .design_snapshot import deep_copy

logger = logging.getLogger(__name__)

EDITING_NAME_PREFIX = "Editing: "


@dataclass
class PreviousProject:
    """Everything needed to put the workspace back the way it was before editing started."""
    data: ProjectData
    file_path: Optional[str] = None
    is_dirty: bool = False
    expanded_group_ids: List[str] = field(default_factory=list)
    reference_part_ids: List[str] = field(default_factory=list)
    camera_state: Optional[CameraState] = None
    thumbnail: Optional[ProjectThumbnail] = None


class AssemblyEditingSession:
    """
    Drives one assembly edit on a FurnitureProject.
    start() -> (edit the project) -> save() -> cancel() -> restore_previous_project()
    or start_fresh().
    """
    def __init__(self, project: FurnitureProject):
        self.project = project
        self._assembly: Optional[Assembly] = None
        self._previous: Optional[PreviousProject] = None

    @property
    def is_active(self) -> bool:
        return self._assembly is not None

    @property
    def assembly_id(self) -> Optional[str]:
        return self._assembly.id if self._assembly else None

    @property
    def assembly_name(self) -> str:
        return self._assembly.name if self._assembly else ""

    @property
    def has_previous_project(self) -> bool:
        return self._previous is not None

    def start(self, assembly: Assembly, library_stocks: Optional[Sequence[Stock]] = None) -> bool:
        """
        Snapshots the current project and loads the assembly's parts and groups
        into the workspace. Stocks the assembly needs are merged into the
        workspace's stock list. Undo history is cleared.
        """
        if self.is_active:
            logger.warning(f"Already editing assembly '{self.assembly_name}'.")
            return False

        project = self.project
        current = project.get_project_data()
        self._previous = PreviousProject(
            data=current,
            file_path=project.file_path,
            is_dirty=project.is_dirty,
            expanded_group_ids=project.expanded_group_ids,
            reference_part_ids=project.reference_part_ids,
            camera_state=project.camera_state,
            thumbnail=project.thumbnail,
        )
        self._assembly = deep_copy(assembly)

        resolution, stocks_to_add = resolve_assembly_stocks(assembly, current.stocks, list(library_stocks or []))
        parts, groups, members, _ = materialize_assembly(assembly, (0.0, 0.0, 0.0), resolution)
        workspace = ProjectData(
            settings=replace(current.settings, name=f"{EDITING_NAME_PREFIX}{assembly.name}"),
            parts=parts,
            stocks=current.stocks + [s for s in stocks_to_add
                                     if s.id not in {c.id for c in current.stocks}],
            groups=groups,
            group_members=members,
        )
        project.load_project(workspace)
        project.expand_all_groups()
        logger.info(f"Started editing assembly '{assembly.name}' ({len(parts)} parts)")
        return True

    def save(self) -> Optional[Assembly]:
        """
        Builds the edited Assembly from the workspace, keeping the assembly's id.
        Positions are made relative to the mean X/Z of all parts; Y is kept.
        Returns None when no edit is active or the workspace has no parts.
        The caller decides where the assembly is stored.
        """
        if not self.is_active:
            return None
        data = self.project.get_project_data()
        if not data.parts:
            logger.warning(f"Assembly '{self.assembly_name}' has no parts; not saved.")
            return None

        cx, cz = mean_xz([p.position for p in data.parts])
        assembly = build_assembly(self._assembly.name, self._assembly.description, data.parts,
                                  data.groups, data.group_members, data.stocks, (cx, 0.0, cz),
                                  assembly_id=self._assembly.id)
        assembly.thumbnail = self._assembly.thumbnail
        assembly.thumbnail_data = self._assembly.thumbnail_data
        assembly.created_at = self._assembly.created_at
        logger.info(f"Saved assembly '{assembly.name}' with {len(assembly.parts)} parts")
        return assembly

    def cancel(self) -> None:
        """Ends the edit without restoring. The previous project stays available."""
        if not self.is_active:
            return
        logger.info(f"Stopped editing assembly '{self.assembly_name}'")
        self._assembly = None

    def restore_previous_project(self) -> bool:
        """Puts the project snapshot taken by start() back into the workspace."""
        previous = self._previous
        if previous is None:
            return False
        project = self.project
        project.load_project(previous.data, file_path=previous.file_path,
                             camera_state=previous.camera_state, thumbnail=previous.thumbnail,
                             is_dirty=previous.is_dirty)
        for gid in previous.expanded_group_ids:
            project.expand_group(gid)
        for pid in previous.reference_part_ids:
            project.add_reference_part(pid)
        self._assembly = None
        self._previous = None
        logger.info(f"Restored project '{project.project_name}'")
        return True

    def start_fresh(self) -> None:
        """Discards the snapshot and starts a new project with the previous units, grid and constraints."""
        previous = self._previous
        self._assembly = None
        self._previous = None
        if previous is None:
            self.project.new_project()
            return
        settings = previous.data.settings
        self.project.new_project(units=settings.units, grid_size=settings.grid_size,
                                 stock_constraints=settings.stock_constraints)
