"""
Tests for the geometry module.

Tests cover:
- Angles and orientation tests
- Rotation, translation and reflection in place
- Bounding boxes and centres
- Segment crossing
"""

import math

import numpy as np
import pytest

from structure_layout.geometry import (
    bounds,
    bounds_center,
    center,
    get_angle,
    median_bond_length,
    normalize,
    reflect,
    rotate,
    segments_cross,
    translate,
    turn_determinant,
    vector_angle,
)


class TestAngles:
    """Tests for angle helpers."""

    @pytest.mark.parametrize(
        "dx, dy, expected",
        [(1, 0, 0.0), (0, 1, math.pi / 2), (-1, 0, math.pi), (0, -1, 1.5 * math.pi)],
    )
    def test_get_angle(self, dx, dy, expected):
        """Test angles are in [0, 2π)."""
        assert get_angle(dx, dy) == pytest.approx(expected)

    def test_vector_angle(self):
        """Test the unsigned angle between vectors."""
        assert vector_angle(np.array([1, 0]), np.array([0, 2])) == pytest.approx(math.pi / 2)
        assert vector_angle(np.array([1, 0]), np.array([0, 0])) == 0.0

    def test_normalize(self):
        """Test unit vectors."""
        np.testing.assert_allclose(normalize(np.array([3.0, 4.0])), [0.6, 0.8])
        np.testing.assert_allclose(normalize(np.array([0.0, 0.0])), [0.0, 0.0])

    def test_turn_determinant_sign(self):
        """Test anticlockwise turns are positive."""
        a, b = np.array([0, 0]), np.array([1, 0])
        assert turn_determinant(a, b, np.array([1, 1])) > 0
        assert turn_determinant(a, b, np.array([1, -1])) < 0
        assert turn_determinant(a, b, np.array([2, 0])) == 0


class TestTransforms:
    """Tests for in-place transformations."""

    def test_rotate_subset(self, square_coords):
        """Test rotating selected rows about a pivot."""
        rotate(square_coords, [1], np.array([0.0, 0.0]), math.pi / 2)
        np.testing.assert_allclose(square_coords[1], [0.0, 1.0], atol=1e-12)
        np.testing.assert_allclose(square_coords[2], [1.0, 1.0])

    def test_rotate_all(self, square_coords):
        """Test a half turn about the centre maps the square onto itself."""
        rotate(square_coords, None, np.array([0.5, 0.5]), math.pi)
        np.testing.assert_allclose(square_coords[0], [1.0, 1.0], atol=1e-12)

    def test_translate(self, square_coords):
        """Test translation of a subset."""
        translate(square_coords, [0, 1], np.array([2.0, -1.0]))
        np.testing.assert_allclose(square_coords[:2], [[2.0, -1.0], [3.0, -1.0]])
        np.testing.assert_allclose(square_coords[2], [1.0, 1.0])

    def test_reflect(self, square_coords):
        """Test reflection across the diagonal swaps x and y."""
        reflect(square_coords, [1, 3], np.array([0.0, 0.0]), np.array([1.0, 1.0]))
        np.testing.assert_allclose(square_coords[1], [0.0, 1.0], atol=1e-12)
        np.testing.assert_allclose(square_coords[3], [1.0, 0.0], atol=1e-12)

    def test_reflect_twice_is_identity(self, square_coords):
        """Test reflecting twice restores the points."""
        original = square_coords.copy()
        beg, end = np.array([0.2, -0.4]), np.array([1.3, 0.9])
        reflect(square_coords, range(4), beg, end)
        reflect(square_coords, range(4), beg, end)
        np.testing.assert_allclose(square_coords, original, atol=1e-12)


class TestBounds:
    """Tests for centres and bounding boxes."""

    def test_center_skips_unset(self):
        """Test NaN rows are ignored."""
        coords = np.array([[0.0, 0.0], [np.nan, np.nan], [2.0, 2.0]])
        np.testing.assert_allclose(center(coords), [1.0, 1.0])
        np.testing.assert_allclose(center(coords, []), [0.0, 0.0])

    def test_bounds(self, square_coords):
        """Test the bounding box."""
        assert bounds(square_coords) == (0.0, 0.0, 1.0, 1.0)
        np.testing.assert_allclose(bounds_center(square_coords), [0.5, 0.5])


class TestSegments:
    """Tests for segment helpers."""

    def test_crossing(self):
        """Test the diagonals of a square cross, its sides do not."""
        p = [np.array(v) for v in ([0, 0], [1, 1], [0, 1], [1, 0])]
        assert segments_cross(p[0], p[1], p[2], p[3])
        assert not segments_cross(p[0], p[3], p[2], p[1])

    def test_median_bond_length(self, square_coords):
        """Test the median over bonds."""
        pairs = [(0, 1), (1, 2), (0, 2)]
        assert median_bond_length(square_coords, pairs) == pytest.approx(1.0)
        assert median_bond_length(square_coords, []) == 0.0
