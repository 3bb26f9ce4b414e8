"""
cad_common.py

Common types and constants shared across the furniture design framework.
Provides the exception hierarchy, the 3D bounding box value type and the
project-wide default values.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

logger = logging.getLogger(__name__)

# TYPES

Vector3 = Tuple[float, float, float]


class FurnitureBuilderError(Exception):
    """Base exception for the furniture design framework."""
    pass


class ProjectConfigurationError(FurnitureBuilderError, ValueError):
    """Raised when an entity is constructed with invalid values."""
    pass


class DesignFileError(FurnitureBuilderError):
    """Raised when a design document cannot be parsed or validated."""
    pass


@dataclass(frozen=True)
class BoundingBox3D:
    """Represents an axis-aligned 3D bounding box."""
    min_x: float = float('inf')
    min_y: float = float('inf')
    min_z: float = float('inf')
    max_x: float = float('-inf')
    max_y: float = float('-inf')
    max_z: float = float('-inf')

    def is_valid(self) -> bool:
        return (self.min_x <= self.max_x and
                self.min_y <= self.max_y and
                self.min_z <= self.max_z)

    def union(self, other: 'BoundingBox3D') -> 'BoundingBox3D':
        if not other.is_valid():
            return self
        if not self.is_valid():
            return other
        return BoundingBox3D(
            min_x=min(self.min_x, other.min_x),
            min_y=min(self.min_y, other.min_y),
            min_z=min(self.min_z, other.min_z),
            max_x=max(self.max_x, other.max_x),
            max_y=max(self.max_y, other.max_y),
            max_z=max(self.max_z, other.max_z)
        )

    @property
    def center(self) -> Vector3:
        return ((self.min_x + self.max_x) / 2,
                (self.min_y + self.max_y) / 2,
                (self.min_z + self.max_z) / 2)

# CONSTANTS

DESIGN_FILE_VERSION = 1
DESIGN_FILE_EXTENSION = "fbd"

DEFAULT_UNITS = "imperial"
DEFAULT_GRID_SIZE = 0.0625  # 1/16"
DEFAULT_KERF_WIDTH = 0.125  # 1/8"
DEFAULT_OVERAGE_FACTOR = 0.1
HISTORY_LIMIT = 100

# Positional offset applied to duplicated and pasted parts
DUPLICATE_OFFSET: Vector3 = (2.0, 0.0, 2.0)

MIN_STOCK_DIMENSION = 0.001

STOCK_COLORS = (
    "#C19A6B",  # maple
    "#8B5A2B",  # walnut
    "#DEB887",  # birch
    "#A0522D",  # cherry
    "#D2B48C",  # pine
    "#6F4E37",  # oak (dark)
    "#F5DEB3",  # poplar
    "#808080",  # MDF
)

PART_MEMBER = "part"
GROUP_MEMBER = "group"
MEMBER_TYPES = (PART_MEMBER, GROUP_MEMBER)

UNITS = ("imperial", "metric")
PART_GRAIN_DIRECTIONS = ("length", "width")
STOCK_GRAIN_DIRECTIONS = ("length", "width", "none")
PRICING_UNITS = ("board_foot", "per_item")
GUIDE_AXES = ("x", "y", "z")
