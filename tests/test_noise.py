"""Tests for procedural terrain synthesis."""

import math

import numpy as np
import pytest

from geo_relief.processing.noise import (
    noise2, fbm, sample_heights_at, sample_height_field, scatter_markers,
    gaussian_peaks_field, sinusoid_field
)


class TestNoise:
    """Test the base noise and fbm."""

    def test_noise2_closed_form(self):
        """Test noise2 against its formula."""
        x, y = 0.3, -1.2
        expected = (math.sin(1.7 * x + 0.8 * math.cos(1.3 * y))
                    + math.cos(1.9 * y + 0.7 * math.sin(1.1 * x))) * 0.5
        assert noise2(x, y) == pytest.approx(expected)

    def test_noise2_range(self):
        xs, ys = np.meshgrid(np.linspace(-20, 20, 50), np.linspace(-20, 20, 50))
        values = noise2(xs, ys)
        assert np.all(values >= -1.0)
        assert np.all(values <= 1.0)

    def test_fbm_at_origin(self):
        """Test that octaves at the origin sum to 31/32 of the base value."""
        assert fbm(0.0, 0.0) == pytest.approx(noise2(0.0, 0.0) * 31 / 32)

    def test_fbm_scalar_and_array(self):
        """Test that scalar and array inputs agree."""
        xs = np.array([0.1, 2.5, -3.0])
        ys = np.array([1.0, 0.5, 4.0])
        values = fbm(xs, ys)

        assert isinstance(fbm(0.1, 1.0), float)
        assert values.shape == (3,)
        for x, y, v in zip(xs, ys, values):
            assert fbm(x, y) == pytest.approx(v)

    def test_sample_heights_scaling(self):
        assert sample_heights_at(0.25, 0.75, 8.0, 28.0) == pytest.approx(fbm(2.0, 6.0) * 28.0)


class TestHeightFieldSampling:
    """Test grid sampling of the fbm surface."""

    def test_shape_and_corners(self):
        """Test that the transform spans the unit square."""
        field = sample_height_field(5, 7)
        assert field.shape == (5, 7)

        u, v = field.transform @ (6, 4)
        assert u == pytest.approx(1.0)
        assert v == pytest.approx(1.0)
        assert field.values[0, 0] == pytest.approx(sample_heights_at(0.0, 0.0))
        assert field.values[4, 6] == pytest.approx(sample_heights_at(1.0, 1.0))

    def test_deterministic(self):
        np.testing.assert_array_equal(sample_height_field(9, 9).values,
                                      sample_height_field(9, 9).values)

    def test_invalid_dimensions(self):
        with pytest.raises(ValueError):
            sample_height_field(0, 5)


class TestMarkers:
    """Test marker scattering."""

    def test_markers_inside_margin(self):
        markers = scatter_markers(100, margin=0.1, seed=4)
        assert markers.shape == (100, 3)
        assert np.all(markers[:, :2] >= 0.1)
        assert np.all(markers[:, :2] <= 0.9)

    def test_lift_without_jitter(self):
        """Test that markers sit exactly ``lift`` above the surface."""
        markers = scatter_markers(20, lift=2.0, seed=1)
        surface = sample_heights_at(markers[:, 0], markers[:, 1])
        np.testing.assert_allclose(markers[:, 2], surface + 2.0)

    def test_jitter_bounds(self):
        markers = scatter_markers(200, jitter=1.5, lift=1.2, seed=2)
        offset = markers[:, 2] - sample_heights_at(markers[:, 0], markers[:, 1])
        assert np.all(offset >= 1.2 - 0.75)
        assert np.all(offset <= 1.2 + 0.75)

    def test_seed_reproducible(self):
        np.testing.assert_array_equal(scatter_markers(10, seed=3),
                                      scatter_markers(10, seed=3))


class TestSyntheticFields:
    """Test the synthetic demo fields."""

    def test_gaussian_peaks(self):
        field = gaussian_peaks_field(40, 50)
        assert field.shape == (40, 50)
        assert field.max > 50.0
        assert field.min >= 0.0

    def test_sinusoid(self):
        field = sinusoid_field(30, 20)
        assert field.shape == (30, 20)
        assert not field.is_flat()
