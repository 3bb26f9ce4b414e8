"""
design_writer.py

Provides functions to serialize a FurnitureProject instance into the JSON design
document format. The document is assembled from the project's persisted data
(ProjectData) plus its view state (thumbnail, camera), and only then written to disk.
"""

import os
import json
import logging
from typing import Any, Dict

from .cad_common import DESIGN_FILE_VERSION, DESIGN_FILE_EXTENSION
from .design_project import FurnitureProject
from .design_snapshot import timestamp_now

logger = logging.getLogger(__name__)

# Optional top-level keys, omitted from the document when empty
OPTIONAL_ARRAY_KEYS = ("assemblies", "snapGuides", "customShoppingItems")


def build_document(project: FurnitureProject) -> Dict[str, Any]:
    """Constructs the design document (a plain dict) for the project."""
    data = project.get_project_data()
    body = data.to_dict()

    # 1. Version and project metadata; modifiedAt always reflects save time
    document: Dict[str, Any] = {"version": DESIGN_FILE_VERSION}
    document["project"] = body["project"]
    document["project"]["modifiedAt"] = timestamp_now()

    # 2. Required entity arrays
    for key in ("parts", "stocks", "groups", "groupMembers"):
        document[key] = body[key]

    # 3. Optional arrays and records
    for key in OPTIONAL_ARRAY_KEYS:
        if body[key]:
            document[key] = body[key]
    if body["cutList"]:
        document["cutList"] = body["cutList"]

    thumbnail = project.thumbnail
    if thumbnail is not None:
        document["thumbnail"] = thumbnail.to_dict()
    camera_state = project.camera_state
    if camera_state is not None:
        document["cameraState"] = camera_state.to_dict()

    logger.debug(f"Built document for '{project.project_name}': {len(document['parts'])} parts, "
                 f"{len(document['stocks'])} stocks, {len(document['groups'])} groups")
    return document


def stringify_document(document: Dict[str, Any], pretty_print: bool = True) -> str:
    """Serializes a design document to JSON text (two-space indented when pretty_print)."""
    return json.dumps(document, indent=2 if pretty_print else None)


def save_design_file(project: FurnitureProject, file_path: str, pretty_print: bool = True) -> bool:
    """
    Builds the document for the project and saves it to a design file.

    Args:
        project: The FurnitureProject instance to save.
        file_path: The desired output file path (extension will be forced to .fbd).
        pretty_print: If True, indents the JSON for readability.

    Returns:
        True on success. On success the project's file path is updated and it is marked clean.
    """
    # Built before any I/O so the saved content is the state at call time
    document = build_document(project)
    text = stringify_document(document, pretty_print)

    base, _ = os.path.splitext(file_path)
    output_path = f"{base}.{DESIGN_FILE_EXTENSION}"
    try:
        output_dir = os.path.dirname(output_path)
        if output_dir:  # Handle case where path is just filename in current dir
            os.makedirs(output_dir, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(text)
    except OSError as e:
        logger.error(f"Failed to save design file to {output_path}: {e}", exc_info=True)
        return False

    project.set_file_path(output_path)
    project.mark_clean()
    logger.info(f"Design file successfully saved to: {output_path}")
    return True
