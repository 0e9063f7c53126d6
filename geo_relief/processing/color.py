"""
Elevation-to-color mapping.

The ramp is quantized to 12 bands before lookup, giving a terraced look,
and interpolates linearly between four anchor colors. Anchors are chosen
so the ramp is continuous at every breakpoint and its luminance grows
with elevation up to the last breakpoint.
"""

import numpy as np

N_BANDS = 12

# (t, (r, g, b)); constant after the last anchor
RAMP_ANCHORS = (
    (0.0, (0.02, 0.08, 0.45)),   # deep blue
    (0.25, (0.02, 0.45, 0.55)),  # teal
    (0.5, (0.05, 0.75, 0.75)),   # cyan
    (0.8, (0.70, 0.90, 0.30)),   # yellow-green
)

_BREAKS = np.array([t for t, _ in RAMP_ANCHORS])
_COLORS = np.array([rgb for _, rgb in RAMP_ANCHORS])

# Rec. 709 luma weights
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722])


def quantize(t, n_bands=N_BANDS):
    """
    Clamp ``t`` to [0, 1] and snap it down to one of ``n_bands`` steps.

    NaN maps to 0.
    """
    t = np.nan_to_num(np.asarray(t, dtype=np.float64), nan=0.0)
    t = np.clip(t, 0.0, 1.0)
    return np.floor(t * n_bands) / n_bands


def color_ramp_array(t, n_bands=N_BANDS):
    """
    Vectorized color ramp.

    Parameters
    ----------
    t : array_like
        Normalized elevations
    n_bands : int, optional
        Number of quantization steps

    Returns
    -------
    numpy.ndarray
        RGB colors, shape ``t.shape + (3,)``
    """
    q = quantize(t, n_bands)
    channels = [np.interp(q, _BREAKS, _COLORS[:, c]) for c in range(3)]
    return np.stack(channels, axis=-1)


def color_ramp(t):
    """
    Map a normalized elevation to an RGB triple.

    Parameters
    ----------
    t : float
        Normalized elevation; values outside [0, 1] are clamped

    Returns
    -------
    tuple
        (r, g, b) floats in [0, 1]
    """
    r, g, b = color_ramp_array(float(t))
    return float(r), float(g), float(b)


def ramp_midpoint():
    """Color used when the elevation range is degenerate."""
    return color_ramp(0.5)


def luminance(rgb):
    """Relative luminance of one color or an (..., 3) array of colors."""
    return np.asarray(rgb, dtype=np.float64) @ LUMA_WEIGHTS


def normalize_elevations(elevations):
    """
    Rescale elevations to [0, 1].

    Parameters
    ----------
    elevations : array_like
        Raw elevations

    Returns
    -------
    numpy.ndarray or None
        Normalized values, or None when the range is empty or flat
    """
    h = np.asarray(elevations, dtype=np.float64)
    if h.size == 0:
        return None
    hmin = np.nanmin(h)
    hmax = np.nanmax(h)
    if not np.isfinite(hmax - hmin) or hmax == hmin:
        return None
    return (h - hmin) / (hmax - hmin)
