"""
Functions for procedural height-field synthesis.

The base noise is a closed-form trigonometric function rather than a
lattice gradient noise, so any (x, y), scalar or array, can be
evaluated directly. Fractal Brownian motion (fbm) layers it over five
octaves to produce terrain-like elevation.
"""

import logging

import numpy as np
from rasterio.transform import Affine

from ..core.data_model import HeightField

logger = logging.getLogger(__name__)

OCTAVES = 5


def noise2(x, y):
    """
    Deterministic pseudo-random noise of two coordinates.

    Parameters
    ----------
    x, y : float or numpy.ndarray
        Coordinates (broadcastable)

    Returns
    -------
    float or numpy.ndarray
        Value in [-1, 1]
    """
    return (np.sin(x * 1.7 + np.cos(y * 1.3) * 0.8)
            + np.cos(y * 1.9 + np.sin(x * 1.1) * 0.7)) * 0.5


def fbm(x, y, octaves=OCTAVES):
    """
    Fractal Brownian motion over :func:`noise2`.

    Each octave doubles the frequency and halves the amplitude,
    starting from frequency 1.0 and amplitude 0.5.

    Parameters
    ----------
    x, y : float or numpy.ndarray
        Coordinates (broadcastable)
    octaves : int, optional
        Number of octaves to sum

    Returns
    -------
    float or numpy.ndarray
        Sum of the octave series, roughly in [-1, 1]
    """
    value = 0.0
    amplitude = 0.5
    frequency = 1.0
    for _ in range(octaves):
        value = value + amplitude * noise2(x * frequency, y * frequency)
        amplitude *= 0.5
        frequency *= 2.0
    if np.ndim(value) == 0:
        return float(value)
    return value


def sample_heights_at(u, v, frequency=8.0, amplitude=28.0):
    """
    Evaluate the terrain surface at normalized coordinates.

    Parameters
    ----------
    u, v : float or numpy.ndarray
        Normalized coordinates, nominally in [0, 1]
    frequency : float, optional
        Scale applied to the normalized coordinates before fbm
    amplitude : float, optional
        Multiplier converting fbm output to world-unit elevation

    Returns
    -------
    float or numpy.ndarray
        Elevation in world units
    """
    u = np.asarray(u, dtype=np.float64)
    v = np.asarray(v, dtype=np.float64)
    heights = fbm(u * frequency, v * frequency) * amplitude
    if np.ndim(heights) == 0:
        return float(heights)
    return heights


def _unit_square_transform(rows, cols):
    # (col, row) -> (u, v) in [0, 1]
    sx = 1.0 / (cols - 1) if cols > 1 else 1.0
    sy = 1.0 / (rows - 1) if rows > 1 else 1.0
    return Affine.scale(sx, sy)


def sample_height_field(rows, cols, frequency=8.0, amplitude=28.0, name=None):
    """
    Sample the fbm terrain on a regular grid over the unit square.

    Parameters
    ----------
    rows, cols : int
        Grid dimensions
    frequency : float, optional
        Scale applied to the normalized coordinates before fbm
    amplitude : float, optional
        Multiplier converting fbm output to world-unit elevation
    name : str, optional
        Name of the resulting height field

    Returns
    -------
    HeightField
        Field whose transform maps (col, row) to (u, v) in [0, 1]
    """
    if rows < 1 or cols < 1:
        raise ValueError(f"Grid dimensions must be positive, got {rows}x{cols}")

    transform = _unit_square_transform(rows, cols)
    col_idx, row_idx = np.meshgrid(np.arange(cols, dtype=np.float64),
                                   np.arange(rows, dtype=np.float64))
    u, v = transform @ (col_idx, row_idx)
    heights = sample_heights_at(u, v, frequency, amplitude)

    logger.debug(f"Sampled fbm height field {rows}x{cols}, "
                 f"range=[{np.min(heights):.2f}, {np.max(heights):.2f}]")
    return HeightField(np.reshape(heights, (rows, cols)), transform=transform,
                       name=name or 'fbm')


def scatter_markers(count, frequency=8.0, amplitude=28.0, jitter=0.0,
                    lift=0.0, margin=0.025, seed=None):
    """
    Place random markers on the fbm surface.

    Parameters
    ----------
    count : int
        Number of markers
    frequency, amplitude : float, optional
        Surface parameters, as in :func:`sample_height_field`
    jitter : float, optional
        Width of the uniform random vertical offset added to each marker
    lift : float, optional
        Constant vertical offset added to each marker
    margin : float, optional
        Fraction of the unit square left empty on every side
    seed : int, optional
        Seed for the random generator

    Returns
    -------
    numpy.ndarray
        Array of shape (count, 3) holding (u, v, height)
    """
    rng = np.random.default_rng(seed)
    u = rng.uniform(margin, 1.0 - margin, count)
    v = rng.uniform(margin, 1.0 - margin, count)
    heights = np.asarray(sample_heights_at(u, v, frequency, amplitude)).reshape(-1)
    if jitter:
        heights = heights + (rng.random(count) - 0.5) * jitter
    return np.column_stack([u, v, heights + lift])


def gaussian_peaks_field(rows, cols, peaks=None, noise=0.0, seed=None):
    """
    Build a height field from a sum of Gaussian hills.

    Parameters
    ----------
    rows, cols : int
        Grid dimensions
    peaks : list of tuple, optional
        (center_col_fraction, center_row_fraction, spread, height) for each
        hill. The spread is relative to ``rows * cols``. Defaults to two
        hills.
    noise : float, optional
        Amplitude of uniform random noise added to every sample
    seed : int, optional
        Seed for the noise

    Returns
    -------
    HeightField
    """
    if peaks is None:
        peaks = [(0.3, 0.4, 0.01, 100.0), (0.7, 0.6, 0.015, 80.0)]

    col_idx, row_idx = np.meshgrid(np.arange(cols, dtype=np.float64),
                                   np.arange(rows, dtype=np.float64))
    elevation = np.zeros((rows, cols), dtype=np.float64)
    for cx, cy, spread, height in peaks:
        dx = col_idx - cols * cx
        dy = row_idx - rows * cy
        elevation += np.exp(-(dx * dx + dy * dy) / (cols * rows * spread)) * height

    if noise:
        rng = np.random.default_rng(seed)
        elevation += rng.random((rows, cols)) * noise

    return HeightField(elevation, name='gaussian_peaks')


def sinusoid_field(rows, cols):
    """
    Build the interference-pattern height field used for contour demos.

    Parameters
    ----------
    rows, cols : int
        Grid dimensions

    Returns
    -------
    HeightField
    """
    ny = (np.arange(cols, dtype=np.float64) / cols - 0.5) * 2
    nx = (np.arange(rows, dtype=np.float64) / rows - 0.5) * 2
    nx, ny = np.meshgrid(nx, ny, indexing='ij')
    elevation = (np.sin(nx * 5) * np.cos(ny * 5) * 100
                 + np.sin(nx * 2) * np.cos(ny * 2) * 50)
    return HeightField(elevation, name='sinusoid')
