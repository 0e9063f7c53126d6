"""Tests for the elevation color ramp."""

import numpy as np
import pytest

from geo_relief.processing.color import (
    N_BANDS, RAMP_ANCHORS, quantize, color_ramp, color_ramp_array,
    ramp_midpoint, luminance, normalize_elevations
)


class TestQuantize:
    """Test ramp input quantization."""

    def test_steps(self):
        assert quantize(0.99) == pytest.approx(11 / 12)
        assert quantize(1.0) == pytest.approx(1.0)
        assert quantize(0.0) == 0.0

    def test_clamped(self):
        assert quantize(-3.0) == 0.0
        assert quantize(5.0) == 1.0

    def test_nan_maps_to_zero(self):
        assert quantize(np.nan) == 0.0


class TestColorRamp:
    """Test the color ramp."""

    def test_endpoints(self):
        """Test that the ends of the ramp hit the first and last anchors."""
        assert color_ramp(0.0) == pytest.approx(RAMP_ANCHORS[0][1])
        assert color_ramp(1.0) == pytest.approx(RAMP_ANCHORS[-1][1])

    def test_out_of_range_clamped(self):
        assert color_ramp(-2.0) == color_ramp(0.0)
        assert color_ramp(3.0) == color_ramp(1.0)

    def test_midpoint(self):
        assert ramp_midpoint() == pytest.approx((0.05, 0.75, 0.75))

    def test_components_in_unit_range(self):
        colors = color_ramp_array(np.linspace(-0.5, 1.5, 301))
        assert colors.shape == (301, 3)
        assert np.all(colors >= 0.0)
        assert np.all(colors <= 1.0)

    def test_luminance_non_decreasing(self):
        """Test that brighter colors mean higher elevation."""
        lum = luminance(color_ramp_array(np.linspace(0.0, 1.0, 1001)))
        assert np.all(np.diff(lum) >= -1e-12)
        assert lum[-1] > lum[0]

    def test_no_jumps_between_steps(self):
        """Test that consecutive quantization steps have close colors."""
        steps = color_ramp_array(np.arange(N_BANDS + 1) / N_BANDS)
        assert np.abs(np.diff(steps, axis=0)).max() < 0.2

    def test_scalar_matches_array(self):
        values = np.array([0.1, 0.4, 0.7])
        for t, rgb in zip(values, color_ramp_array(values)):
            assert color_ramp(t) == pytest.approx(tuple(rgb))


class TestNormalize:
    """Test elevation normalization."""

    def test_range(self):
        np.testing.assert_allclose(normalize_elevations([0.0, 5.0, 10.0]), [0.0, 0.5, 1.0])

    def test_flat_and_empty(self):
        assert normalize_elevations([3.0, 3.0, 3.0]) is None
        assert normalize_elevations([]) is None
