"""
Furniture-Builder Framework

This framework provides an editable in-memory model of furniture and woodworking
designs: parts, stock materials, nestable groups and reusable assemblies, with
undo/redo and a JSON design file format.

Main entry point:
- FBProject: the design project holding all entities and structural edit operations.
"""

# Import the main project class from the design_project module
from .design_project import FurnitureProject
from .design_reader import read_design_file
from .design_writer import save_design_file

# Create a shorter alias for the main project class
FBProject = FurnitureProject

# Current package version
__version__ = "0.1.0"
