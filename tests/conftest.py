"""
Shared fixtures for furniture design tests.
"""
import pytest

from furniture_builder.cad_common import PART_MEMBER, GROUP_MEMBER
from furniture_builder.design_project import FurnitureProject


@pytest.fixture
def project():
    """An empty project."""
    return FurnitureProject("Test Project")


@pytest.fixture
def plywood(project):
    """Id of a plywood sheet stock added to the project."""
    return project.add_stock(name="3/4 Plywood", length=96, width=48, thickness=0.75,
                             grain_direction="length", color="#C19A6B", price_per_unit=65)


@pytest.fixture
def cabinet(project):
    """A small carcass: the 'Sides' group (two parts) nested in 'Cabinet' with a bottom and top.

    Returns a dict of ids: left, right, bottom, top, sides, cabinet.
    """
    ids = {
        "left": project.add_part(name="Left Side", length=30, width=12, position=(-10, 15, 0)),
        "right": project.add_part(name="Right Side", length=30, width=12, position=(10, 15, 0)),
        "bottom": project.add_part(name="Bottom", length=20, width=12, position=(0, 0.375, 0)),
        "top": project.add_part(name="Top", length=20, width=12, position=(0, 29.625, 0)),
    }
    ids["sides"] = project.create_group("Sides", [(PART_MEMBER, ids["left"]), (PART_MEMBER, ids["right"])])
    ids["cabinet"] = project.create_group("Cabinet", [(GROUP_MEMBER, ids["sides"]),
                                                      (PART_MEMBER, ids["bottom"]),
                                                      (PART_MEMBER, ids["top"])])
    project.clear_selection()
    return ids


@pytest.fixture
def two_boards(project):
    """Two loose 10 x 4 boards resting on the ground, 20 apart along X."""
    a = project.add_part(name="Board A", length=10, width=4, position=(10, 0.375, 5))
    b = project.add_part(name="Board B", length=10, width=4, position=(30, 0.375, 5))
    project.clear_selection()
    return a, b
