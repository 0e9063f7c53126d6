"""Tests for Delaunay triangulation."""

import numpy as np
import pytest
from scipy.spatial import ConvexHull

from geo_relief.processing.triangulation import (
    delaunay_triangles, is_degenerate, signed_areas, triangulation_area,
    drop_degenerate_triangles
)


class TestDelaunay:
    """Test triangulation of scattered points."""

    def test_unit_square(self):
        """Test that a square splits into two triangles."""
        points = np.array([[0, 0], [1, 0], [1, 1], [0, 1]], dtype=float)
        triangles = delaunay_triangles(points)

        assert triangles.shape == (2, 3)
        assert triangles.dtype == np.int64
        assert triangulation_area(points, triangles) == pytest.approx(1.0)

    def test_counter_clockwise(self):
        """Test that every triangle has a positive signed area."""
        rng = np.random.default_rng(0)
        points = rng.uniform(-10, 10, (50, 2))
        triangles = delaunay_triangles(points)

        assert np.all(signed_areas(points, triangles) > 0)
        assert triangles.min() >= 0
        assert triangles.max() < len(points)

    def test_covers_convex_hull(self):
        rng = np.random.default_rng(1)
        points = rng.uniform(0, 100, (80, 2))
        triangles = delaunay_triangles(points)
        assert triangulation_area(points, triangles) == pytest.approx(ConvexHull(points).volume)

    def test_extra_columns_ignored(self):
        points = np.array([[0, 0, 5], [1, 0, 6], [0, 1, 7]], dtype=float)
        assert delaunay_triangles(points).shape == (1, 3)

    def test_collinear(self):
        points = np.array([[0, 0], [1, 1], [2, 2], [3, 3]], dtype=float)
        assert delaunay_triangles(points).shape == (0, 3)

    def test_duplicates(self):
        points = np.array([[0, 0], [0, 0], [1, 1]], dtype=float)
        assert delaunay_triangles(points).shape == (0, 3)

    def test_too_few_points(self):
        assert delaunay_triangles(np.array([[0.0, 0.0], [1.0, 0.0]])).shape == (0, 3)
        assert delaunay_triangles(np.empty((0, 2))).shape == (0, 3)


class TestDegeneracy:
    """Test degeneracy checks."""

    def test_is_degenerate(self):
        assert is_degenerate([[0, 0], [1, 0], [2, 0]])
        assert is_degenerate([[0, 0], [0, 0], [0, 0], [1, 1]])
        assert not is_degenerate([[0, 0], [1, 0], [0, 1]])

    def test_drop_zero_area(self):
        points = np.array([[0, 0], [1, 0], [2, 0], [0, 1]], dtype=float)
        triangles = np.array([[0, 1, 2], [0, 1, 3]])
        np.testing.assert_array_equal(drop_degenerate_triangles(points, triangles), [[0, 1, 3]])

    def test_signed_area_orientation(self):
        points = np.array([[0, 0], [1, 0], [0, 1]], dtype=float)
        assert signed_areas(points, [[0, 1, 2]])[0] == pytest.approx(0.5)
        assert signed_areas(points, [[0, 2, 1]])[0] == pytest.approx(-0.5)
