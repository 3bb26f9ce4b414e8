"""
design_reader.py

Provides functions to read a JSON design document and reconstruct a FurnitureProject.
Reading goes through four stages: parse, structural validation, migration of
missing defaults, and referential-integrity validation. A separate repair path
drops broken membership rows and unassigns dangling stock references so that a
damaged file can still be opened.
"""

import re
import json
import logging
from copy import deepcopy
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from .cad_common import (
    DESIGN_FILE_VERSION, DESIGN_FILE_EXTENSION, DEFAULT_UNITS, DEFAULT_KERF_WIDTH,
    DEFAULT_OVERAGE_FACTOR, UNITS, PART_MEMBER, DesignFileError
)
from .design_entities import (
    GroupMember, StockConstraintSettings, CameraState, ProjectThumbnail, ProjectData
)
from .design_project import FurnitureProject
from .design_queries import membership_errors, is_descendant_of

logger = logging.getLogger(__name__)

REQUIRED_ARRAYS = ("parts", "stocks", "groups", "groupMembers")
ENTITY_ARRAYS = ("parts", "stocks", "groups", "assemblies")


@dataclass
class FileValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    data: Optional[Dict[str, Any]] = None  # migrated document when valid


@dataclass
class FileRepairResult:
    success: bool
    repair_actions: List[str] = field(default_factory=list)
    remaining_errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    repaired_data: Optional[Dict[str, Any]] = None


# --- Parsing & Validation ---

def _load_json(text: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise DesignFileError(f"Invalid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise DesignFileError("Invalid file: not a JSON object")
    return parsed


def parse_design_document(text: str) -> FileValidationResult:
    """Parses JSON text and validates it as a design document."""
    try:
        document = _load_json(text)
    except DesignFileError as e:
        return FileValidationResult(valid=False, errors=[str(e)])
    return validate_design_document(document)


def _structure_errors(document: Dict[str, Any]) -> Tuple[List[str], List[str]]:
    errors: List[str] = []
    warnings: List[str] = []

    version = document.get("version")
    if not isinstance(version, (int, float)) or isinstance(version, bool):
        errors.append("Missing or invalid version number")
    elif version > DESIGN_FILE_VERSION:
        errors.append(f"File version {version} is newer than supported version {DESIGN_FILE_VERSION}. "
                      f"Please update furniture_builder.")

    project = document.get("project")
    if not isinstance(project, dict):
        errors.append("Missing project metadata")
    else:
        if not isinstance(project.get("name"), str):
            errors.append("Missing project name")
        if project.get("units") not in UNITS:
            warnings.append(f"Invalid units, defaulting to {DEFAULT_UNITS}")

    for key in REQUIRED_ARRAYS:
        if not isinstance(document.get(key), list):
            errors.append(f"Missing {key} array")
    if document.get("assemblies") is not None and not isinstance(document["assemblies"], list):
        errors.append("Invalid assemblies array")

    for key in ENTITY_ARRAYS:
        entries = document.get(key)
        if not isinstance(entries, list):
            continue
        for i, entry in enumerate(entries):
            if not isinstance(entry, dict):
                errors.append(f"{key} entry {i} is not an object")
    return errors, warnings


def migrate_design_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Brings a structurally valid document up to the current version, filling in
    defaults for fields older files may lack. The input is not modified.
    """
    migrated = deepcopy(document)
    project = migrated["project"]
    if project.get("units") not in UNITS:
        project["units"] = DEFAULT_UNITS
    if project.get("kerfWidth") is None:
        project["kerfWidth"] = DEFAULT_KERF_WIDTH
    if project.get("overageFactor") is None:
        project["overageFactor"] = DEFAULT_OVERAGE_FACTOR
    if project.get("projectNotes") is None:
        project["projectNotes"] = ""
    if project.get("stockConstraints") is None:
        project["stockConstraints"] = StockConstraintSettings().to_dict()

    for part in migrated["parts"]:
        part.setdefault("grainSensitive", True)
        part.setdefault("grainDirection", "length")
        if part.get("rotation") is None:
            part["rotation"] = {"x": 0, "y": 0, "z": 0}

    for stock in migrated["stocks"]:
        if stock.get("pricingUnit") is None:
            stock["pricingUnit"] = "per_item"
        if stock.get("pricePerUnit") is None:
            stock["pricePerUnit"] = 0

    migrated["version"] = DESIGN_FILE_VERSION
    return migrated


def _membership_rows(document: Dict[str, Any]) -> Tuple[List[GroupMember], List[str]]:
    rows: List[GroupMember] = []
    errors: List[str] = []
    for i, raw in enumerate(document["groupMembers"]):
        try:
            rows.append(GroupMember.from_dict(raw))
        except (ValueError, TypeError, AttributeError) as e:
            errors.append(f"GroupMember {i} is invalid: {e}")
    return rows, errors


def _referential_integrity(document: Dict[str, Any]) -> Tuple[List[str], List[str]]:
    """Membership problems are errors; dangling stock references are warnings."""
    part_ids = {p.get("id") for p in document["parts"]}
    stock_ids = {s.get("id") for s in document["stocks"]}
    group_ids = {g.get("id") for g in document["groups"]}

    warnings: List[str] = []
    for part in document["parts"]:
        if part.get("stockId") and part["stockId"] not in stock_ids:
            warnings.append(f'Part "{part.get("name")}" references non-existent stock ID "{part["stockId"]}"')

    rows, errors = _membership_rows(document)
    errors.extend(membership_errors(rows, part_ids, group_ids))

    for assembly in document.get("assemblies") or []:
        for part in assembly.get("parts") or []:
            if isinstance(part, dict) and part.get("stockId") and part["stockId"] not in stock_ids:
                warnings.append(f'Assembly "{assembly.get("name")}" part references non-existent '
                                f'stock ID "{part["stockId"]}"')
    return errors, warnings


def validate_design_document(document: Any) -> FileValidationResult:
    """
    Validates a parsed design document. On success the result carries the
    migrated document, ready for document_to_project_data().
    """
    if not isinstance(document, dict):
        return FileValidationResult(valid=False, errors=["Invalid file: not a JSON object"])

    errors, warnings = _structure_errors(document)
    if errors:
        return FileValidationResult(valid=False, errors=errors, warnings=warnings)

    migrated = migrate_design_document(document)
    integrity_errors, integrity_warnings = _referential_integrity(migrated)
    warnings.extend(integrity_warnings)
    if integrity_errors:
        return FileValidationResult(valid=False, errors=integrity_errors, warnings=warnings)

    try:
        ProjectData.from_dict(migrated)
    except (ValueError, TypeError, AttributeError) as e:
        return FileValidationResult(valid=False, errors=[f"Invalid entity data: {e}"], warnings=warnings)

    return FileValidationResult(valid=True, warnings=warnings, data=migrated)


# --- Repair ---

def repair_design_document(text: str) -> FileRepairResult:
    """
    Attempts to repair a damaged design document.
    Membership rows pointing at missing groups or members, rows giving a member
    a second parent and rows that would close a cycle are removed; dangling
    part stock references are cleared. Parts themselves are never removed.
    """
    try:
        document = _load_json(text)
    except DesignFileError as e:
        return FileRepairResult(success=False, remaining_errors=[str(e)])

    if not isinstance(document.get("project"), dict):
        return FileRepairResult(success=False,
                                remaining_errors=["Missing project metadata - cannot repair"])

    actions: List[str] = []
    warnings: List[str] = []
    if not isinstance(document.get("version"), (int, float)):
        document["version"] = DESIGN_FILE_VERSION
        actions.append("Restored missing version number")
    if not isinstance(document["project"].get("name"), str):
        document["project"]["name"] = "Untitled Project"
        actions.append("Restored missing project name")
    for key in REQUIRED_ARRAYS:
        if not isinstance(document.get(key), list):
            document[key] = []
            actions.append(f"Created missing {key} array")
    if document.get("assemblies") is not None and not isinstance(document["assemblies"], list):
        del document["assemblies"]
        actions.append("Removed invalid assemblies array")
    for key in ENTITY_ARRAYS:
        entries = document.get(key)
        if entries is None:
            continue
        kept_entries = [entry for entry in entries if isinstance(entry, dict)]
        if len(kept_entries) < len(entries):
            actions.append(f"Removed {len(entries) - len(kept_entries)} invalid {key} entries")
            document[key] = kept_entries

    part_ids = {p.get("id") for p in document["parts"]}
    stock_ids = {s.get("id") for s in document["stocks"]}
    group_ids = {g.get("id") for g in document["groups"]}

    original_count = len(document["groupMembers"])
    kept: List[GroupMember] = []
    placed = set()
    for raw in document["groupMembers"]:
        try:
            gm = GroupMember.from_dict(raw)
        except (ValueError, TypeError, AttributeError):
            actions.append(f"Removed invalid membership record {raw!r}")
            continue
        if gm.group_id not in group_ids:
            actions.append(f'Removed orphaned membership to non-existent group "{gm.group_id}"')
            continue
        known = part_ids if gm.member_type == PART_MEMBER else group_ids
        if gm.member_id not in known:
            actions.append(f'Removed membership referencing non-existent {gm.member_type} "{gm.member_id}"')
            continue
        if (gm.member_type, gm.member_id) in placed:
            actions.append(f'Removed duplicate membership of {gm.member_type} "{gm.member_id}"')
            continue
        if gm.member_type != PART_MEMBER and is_descendant_of(gm.group_id, gm.member_id, kept):
            actions.append(f'Removed membership placing group "{gm.member_id}" inside its own subtree')
            continue
        placed.add((gm.member_type, gm.member_id))
        kept.append(gm)
    document["groupMembers"] = [gm.to_dict() for gm in kept]
    if len(kept) < original_count:
        actions.append(f"Removed {original_count - len(kept)} broken group membership(s)")

    for part in document["parts"]:
        if part.get("stockId") and part["stockId"] not in stock_ids:
            warnings.append(f'Part "{part.get("name")}" had invalid stock reference - stock unassigned')
            part["stockId"] = None

    result = validate_design_document(document)
    if not result.valid:
        return FileRepairResult(success=False, repair_actions=actions,
                                remaining_errors=result.errors, warnings=warnings + result.warnings)
    logger.info(f"Repaired design document: {len(actions)} action(s)")
    return FileRepairResult(success=True, repair_actions=actions, warnings=warnings + result.warnings,
                            repaired_data=result.data)


# --- Conversion & Reading ---

def document_to_project_data(document: Dict[str, Any]) -> ProjectData:
    """
    Converts a validated (migrated) document into ProjectData.
    Part stock references that point at no stock are cleared.
    """
    data = ProjectData.from_dict(document)
    stock_ids = {s.id for s in data.stocks}
    for i, part in enumerate(data.parts):
        if part.stock_id and part.stock_id not in stock_ids:
            data.parts[i] = replace(part, stock_id=None)
    return data


def document_view_state(document: Dict[str, Any]) -> Tuple[Optional[CameraState], Optional[ProjectThumbnail]]:
    """Returns the camera state and thumbnail stored in a document, if any."""
    camera = document.get("cameraState")
    thumbnail = document.get("thumbnail")
    return (CameraState.from_dict(camera) if camera else None,
            ProjectThumbnail.from_dict(thumbnail) if thumbnail else None)


def load_document_into(project: FurnitureProject, document: Dict[str, Any],
                       file_path: Optional[str] = None) -> None:
    """Replaces the contents of project with a validated document."""
    camera, thumbnail = document_view_state(document)
    project.load_project(document_to_project_data(document), file_path=file_path,
                         camera_state=camera, thumbnail=thumbnail)


def read_design_file(file_path: str, repair: bool = False) -> Optional[FurnitureProject]:
    """
    Read a design file and return a FurnitureProject instance, or None if the
    file cannot be read or does not validate. With repair, an invalid file is
    passed through repair_design_document() before giving up.
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Error reading design file {file_path}: {e}")
        return None

    result = parse_design_document(text)
    document = result.data
    if not result.valid:
        logger.error(f"Design file {file_path} is invalid: {'; '.join(result.errors)}")
        if not repair:
            return None
        repaired = repair_design_document(text)
        if not repaired.success:
            logger.error(f"Design file {file_path} could not be repaired: "
                         f"{'; '.join(repaired.remaining_errors)}")
            return None
        for action in repaired.repair_actions:
            logger.warning(f"Repair: {action}")
        document = repaired.repaired_data
    for warning in result.warnings:
        logger.warning(warning)

    project = FurnitureProject(document["project"].get("name", get_project_name_from_path(file_path)))
    load_document_into(project, document, file_path=file_path)
    logger.info(f"Read project '{project.project_name}' from {file_path}")
    return project


def get_file_summary(document: Dict[str, Any]) -> Dict[str, int]:
    return {
        "parts": len(document.get("parts") or []),
        "stocks": len(document.get("stocks") or []),
        "groups": len(document.get("groups") or []),
    }


def get_project_name_from_path(file_path: str) -> str:
    """Extracts a project name from a file path, dropping the design file extension."""
    file_name = re.split(r"[/\\]", file_path)[-1] or "Untitled"
    return re.sub(rf"\.{DESIGN_FILE_EXTENSION}$", "", file_name, flags=re.IGNORECASE)
