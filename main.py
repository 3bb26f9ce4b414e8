"""
main.py

Demonstrates usage of the furniture design framework: building a small cabinet
from parts and stock, grouping it, turning it into an assembly, placing copies
and saving/loading the design file.
"""

import os
import logging
import sys # For basic logging setup

from furniture_builder import FurnitureProject
from furniture_builder.assembly_editing import AssemblyEditingSession
from furniture_builder.design_writer import save_design_file
from furniture_builder.design_reader import read_design_file

# --- Basic Logging Setup ---
logging.basicConfig(
    level=logging.DEBUG, # Set to DEBUG to see detailed logs
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout # Log to console
)

logger = logging.getLogger(__name__)


def build_cabinet(project: FurnitureProject) -> str:
    """Adds a simple open cabinet carcass and returns its group id."""
    plywood = project.add_stock(name="3/4 Plywood", length=96, width=48, thickness=0.75,
                                grain_direction="length", pricing_unit="per_item", price_per_unit=65)
    if not plywood:
        raise RuntimeError("Failed to add stock")

    # Sides stand on edge: 30" tall, 12" deep
    left = project.add_part(name="Left Side", length=30, width=12, thickness=0.75,
                            position=(-11.625, 15, 0), rotation=(0, 0, 90))
    right = project.add_part(name="Right Side", length=30, width=12, thickness=0.75,
                             position=(11.625, 15, 0), rotation=(0, 0, 90))
    bottom = project.add_part(name="Bottom", length=22.5, width=12, thickness=0.75,
                              position=(0, 0.375, 0))
    top = project.add_part(name="Top", length=22.5, width=12, thickness=0.75,
                           position=(0, 29.625, 0))
    part_ids = [left, right, bottom, top]
    if not all(part_ids):
        raise RuntimeError("Failed to add cabinet parts")

    project.select_parts(part_ids)
    project.assign_stock_to_selected_parts(plywood)

    sides = project.create_group("Sides", [("part", left), ("part", right)])
    cabinet = project.create_group("Cabinet", [("group", sides), ("part", bottom), ("part", top)])
    return cabinet


def run_demo_1():
    """Demonstrates parts, stock, groups, duplication and undo."""
    logger.info("--- Starting Demo 1 ---")
    project = FurnitureProject("Demo Cabinet")
    cabinet = build_cabinet(project)

    # Duplicate the whole cabinet; the copy is offset and renamed "Cabinet (copy)"
    project.select_group(cabinet)
    new_parts = project.duplicate_selected()
    logger.info(f"Duplicated cabinet: {len(new_parts)} new parts")
    logger.info(f" Groups now: {[g.name for g in project.list_groups()]}")

    # Undo the duplication, then redo it
    project.undo()
    logger.info(f" After undo: {len(project.list_parts())} parts")
    project.redo()
    logger.info(f" After redo: {len(project.list_parts())} parts")

    # Validate parts against their stock before generating a cut list
    for issue in project.validate_parts_for_cut_list():
        logger.warning(f" Cut list issue: {issue['partName']}: {issue['message']}")

    # --- Output ---
    output_dir = "./output"
    os.makedirs(output_dir, exist_ok=True)
    file_path = os.path.join(output_dir, "demo_cabinet.fbd")
    logger.info(f"Saving design file to: {file_path}")
    save_design_file(project, file_path)

    # --- Load Test ---
    loaded = read_design_file(file_path)
    if loaded:
        logger.info(f"Successfully loaded project: {loaded.project_name}")
        logger.info(f" Loaded Parts: {len(loaded.list_parts())}")
        logger.info(f" Loaded Stocks: {len(loaded.list_stocks())}")
        logger.info(f" Loaded Groups: {len(loaded.list_groups())}")
        logger.info(f" Integrity errors: {loaded.check_integrity()}")
    else:
        logger.error("Failed to load project back from design file.")

    logger.info("--- Demo 1 Finished ---")


def run_demo_2():
    """Demonstrates assemblies: extraction, placement and an assembly edit session."""
    logger.info("--- Starting Demo 2 ---")
    project = FurnitureProject("Demo Assemblies")
    cabinet = build_cabinet(project)

    project.select_group(cabinet)
    assembly = project.create_assembly_from_selection("Wall Cabinet", "Open carcass", add_to_project=True)
    if not assembly:
        logger.error("Failed to create assembly"); return
    logger.info(f"Assembly '{assembly.name}': {len(assembly.parts)} parts, {len(assembly.groups)} groups")

    # Place two more cabinets side by side
    for x in (30, 60):
        placed = project.place_assembly(assembly.id, (x, 0, 0))
        logger.info(f" Placed at x={x}: {len(placed)} parts")

    # Edit the assembly: make the cabinet deeper, then go back to the project
    session = AssemblyEditingSession(project)
    session.start(assembly)
    project.select_parts([p.id for p in project.list_parts()])
    project.update_parts(project.selected_part_ids, width=16)
    edited = session.save()
    session.cancel()
    session.restore_previous_project()
    if edited:
        project.update_assembly(edited.id, parts=edited.parts, groups=edited.groups,
                                group_members=edited.group_members)
        logger.info(f"Updated assembly '{edited.name}' in project '{project.project_name}'")

    logger.info(f" Parts: {len(project.list_parts())}, groups: {len(project.list_groups())}, "
                f"assemblies: {len(project.list_assemblies())}")
    logger.info("--- Demo 2 Finished ---")


if __name__ == '__main__':
    run_demo_1()
    print("\n" + "="*60 + "\n") # Separator
    run_demo_2()
