"""
Geometry Module
===============

2D geometry helpers shared by the placement, refinement and orientation code.

This module provides:
- rotation, translation and reflection of atom subsets
- centres and bounding boxes of point sets
- angles between vectors and turn (winding) determinants
- segment crossing tests using Shapely

All functions work on numpy arrays of shape (N, 2). Rows holding NaN are
atoms without a position and are ignored where a set of points is reduced.
"""

import math
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
from shapely.geometry import LineString


def get_angle(dx: float, dy: float) -> float:
    """
    Angle of the vector (dx, dy) measured from the positive x axis.

    Args:
        dx: x component.
        dy: y component.

    Returns:
        Angle in radians in the range [0, 2π).

    Example:
        >>> round(get_angle(0.0, 1.0), 4)
        1.5708
    """
    angle = math.atan2(dy, dx)
    if angle < 0:
        angle += 2 * math.pi
    return angle


def vector_angle(a: np.ndarray, b: np.ndarray) -> float:
    """Unsigned angle between two vectors in radians, in [0, π]."""
    na = np.linalg.norm(a)
    nb = np.linalg.norm(b)
    if na == 0 or nb == 0:
        return 0.0
    cos_theta = np.clip(np.dot(a, b) / (na * nb), -1.0, 1.0)
    return float(np.arccos(cos_theta))


def normalize(v: np.ndarray) -> np.ndarray:
    """Unit vector in the direction of ``v`` (zero vectors are returned as is)."""
    norm = np.linalg.norm(v)
    if norm == 0:
        return np.array(v, dtype=float)
    return np.asarray(v, dtype=float) / norm


def turn_determinant(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> float:
    """
    Signed area spanned by the turn a → b → c.

    Positive for an anticlockwise turn, negative for a clockwise turn and
    zero when the points are collinear.
    """
    return float((b[0] - a[0]) * (c[1] - b[1]) - (b[1] - a[1]) * (c[0] - b[0]))


def center(coords: np.ndarray, indices: Optional[Iterable[int]] = None) -> np.ndarray:
    """
    Geometric centre of a set of points.

    Args:
        coords: (N, 2) coordinates, NaN rows are skipped.
        indices: Optional subset of rows (duplicates count multiple times).

    Returns:
        The centre as a length-2 array, (0, 0) for an empty set.
    """
    pts = coords if indices is None else coords[list(indices)]
    if len(pts) == 0:
        return np.zeros(2)
    mask = ~np.isnan(pts).any(axis=1)
    if not mask.any():
        return np.zeros(2)
    return pts[mask].mean(axis=0)


def bounds(
    coords: np.ndarray, indices: Optional[Iterable[int]] = None
) -> Tuple[float, float, float, float]:
    """Bounding box (min_x, min_y, max_x, max_y) of the placed points."""
    pts = coords if indices is None else coords[list(indices)]
    mask = ~np.isnan(pts).any(axis=1)
    if not mask.any():
        return 0.0, 0.0, 0.0, 0.0
    pts = pts[mask]
    min_x, min_y = pts.min(axis=0)
    max_x, max_y = pts.max(axis=0)
    return float(min_x), float(min_y), float(max_x), float(max_y)


def bounds_center(coords: np.ndarray) -> np.ndarray:
    """Centre of the bounding box of the placed points."""
    min_x, min_y, max_x, max_y = bounds(coords)
    return np.array([(min_x + max_x) / 2, (min_y + max_y) / 2])


def rotate(
    coords: np.ndarray,
    indices: Optional[Sequence[int]],
    pivot: np.ndarray,
    angle: float,
) -> None:
    """
    Rotate points anticlockwise by ``angle`` radians about ``pivot``, in place.

    Args:
        coords: (N, 2) coordinates to modify.
        indices: Rows to rotate, None for all rows.
        pivot: Centre of rotation.
        angle: Rotation angle in radians.
    """
    rows = slice(None) if indices is None else list(indices)
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    rel = coords[rows] - pivot
    rotated = np.empty_like(rel)
    rotated[:, 0] = rel[:, 0] * cos_a - rel[:, 1] * sin_a
    rotated[:, 1] = rel[:, 0] * sin_a + rel[:, 1] * cos_a
    coords[rows] = rotated + pivot


def translate(
    coords: np.ndarray, indices: Optional[Sequence[int]], offset: np.ndarray
) -> None:
    """Translate points by ``offset`` in place."""
    rows = slice(None) if indices is None else list(indices)
    coords[rows] = coords[rows] + offset


def reflect(
    coords: np.ndarray,
    indices: Sequence[int],
    beg: np.ndarray,
    end: np.ndarray,
) -> None:
    """
    Reflect points across the line through ``beg`` and ``end``, in place.

    Notes:
        Uses the closed form x' = a(x - x0) + b(y - y0) + x0,
        y' = b(x - x0) - a(y - y0) + y0 with
        a = (dx² - dy²)/(dx² + dy²) and b = 2 dx dy/(dx² + dy²).
    """
    dx = end[0] - beg[0]
    dy = end[1] - beg[1]
    denom = dx * dx + dy * dy
    if denom == 0:
        return
    a = (dx * dx - dy * dy) / denom
    b = 2 * dx * dy / denom
    for idx in indices:
        x = coords[idx, 0] - beg[0]
        y = coords[idx, 1] - beg[1]
        coords[idx, 0] = a * x + b * y + beg[0]
        coords[idx, 1] = b * x - a * y + beg[1]


def segments_cross(
    p1: np.ndarray, p2: np.ndarray, p3: np.ndarray, p4: np.ndarray
) -> bool:
    """True if segment p1-p2 intersects segment p3-p4 (touching included)."""
    return LineString([tuple(p1), tuple(p2)]).intersects(
        LineString([tuple(p3), tuple(p4)])
    )


def median_bond_length(coords: np.ndarray, pairs: Iterable[Tuple[int, int]]) -> float:
    """Median length of the given bonds, 0 if there are none."""
    lengths = [float(np.linalg.norm(coords[u] - coords[v])) for u, v in pairs]
    if not lengths:
        return 0.0
    return float(np.median(lengths))
