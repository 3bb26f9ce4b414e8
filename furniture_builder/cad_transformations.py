"""
cad_transformations.py

3D vector helpers using NumPy.
Provides conversions between position tuples and arrays, translation helpers,
part half-extent arithmetic, bounding boxes over sets of parts and the
origin/centering computations used by duplication, paste and assemblies.
"""

import logging
from typing import Iterable, Sequence, Tuple

import numpy as np

from .cad_common import BoundingBox3D, Vector3

logger = logging.getLogger(__name__)


def to_vector(point: Sequence[float]) -> np.ndarray:
    """Return a float array of shape (3,) for an (x, y, z) point."""
    vec = np.asarray(point, dtype=float)
    if vec.shape != (3,):
        raise ValueError(f"Expected a 3D point, got shape {vec.shape}")
    return vec


def to_tuple(vec: np.ndarray) -> Vector3:
    """Return an (x, y, z) tuple of Python floats."""
    return (float(vec[0]), float(vec[1]), float(vec[2]))


def translate_point(point: Sequence[float], delta: Sequence[float]) -> Vector3:
    """Return point + delta."""
    return to_tuple(to_vector(point) + to_vector(delta))


def relative_to(point: Sequence[float], origin: Sequence[float]) -> Vector3:
    """Return point - origin."""
    return to_tuple(to_vector(point) - to_vector(origin))


def part_half_extents(length: float, width: float, thickness: float) -> np.ndarray:
    """
    Return the half-extents of a part along (x, y, z).
    Length runs along X, thickness along Y and width along Z.
    Rotation is not taken into account.
    """
    return np.array([length, thickness, width], dtype=float) / 2.0


def part_bounds(position: Sequence[float], length: float, width: float, thickness: float) -> BoundingBox3D:
    """Return the axis-aligned box of a single part centered at position."""
    center = to_vector(position)
    half = part_half_extents(length, width, thickness)
    lo = center - half
    hi = center + half
    return BoundingBox3D(min_x=float(lo[0]), min_y=float(lo[1]), min_z=float(lo[2]),
                         max_x=float(hi[0]), max_y=float(hi[1]), max_z=float(hi[2]))


def bounding_box_of_parts(parts: Iterable) -> BoundingBox3D:
    """
    Return the union of the boxes of the given parts.
    Each part needs position, length, width and thickness attributes.
    An empty iterable yields an invalid box.
    """
    bbox = BoundingBox3D()
    for part in parts:
        bbox = bbox.union(part_bounds(part.position, part.length, part.width, part.thickness))
    return bbox


def ground_origin(bbox: BoundingBox3D) -> Vector3:
    """Return (center x, minimum y, center z) of a box so placed copies rest on the ground plane."""
    if not bbox.is_valid():
        raise ValueError("Cannot compute an origin for an empty bounding box")
    cx, _, cz = bbox.center
    return (cx, bbox.min_y, cz)


def xz_extent_center(positions: Sequence[Sequence[float]]) -> Tuple[float, float]:
    """Return the midpoint of the X/Z extent (min/max) of a set of positions."""
    if len(positions) == 0:
        raise ValueError("Cannot compute the center of an empty position set")
    pts = np.asarray(positions, dtype=float)
    lo = pts.min(axis=0)
    hi = pts.max(axis=0)
    return (float((lo[0] + hi[0]) / 2), float((lo[2] + hi[2]) / 2))


def mean_xz(positions: Sequence[Sequence[float]]) -> Tuple[float, float]:
    """Return the arithmetic mean of the X and Z coordinates of a set of positions."""
    if len(positions) == 0:
        raise ValueError("Cannot compute the mean of an empty position set")
    pts = np.asarray(positions, dtype=float)
    mean = pts.mean(axis=0)
    return (float(mean[0]), float(mean[2]))
