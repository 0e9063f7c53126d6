"""
Functions for building elevation contour bands.

Two inputs are supported: polylines already tagged with an elevation
(grouped by exact level), and scalar grids thresholded at evenly spaced
levels with marching squares. Both return bands sorted by ascending
level.
"""

import logging
import warnings

import numpy as np
from skimage import measure

from ..core.data_model import ContourBand, GeoFeature, HeightField
from ..pipeline_config import ContourError
from .color import color_ramp, color_ramp_array, ramp_midpoint

logger = logging.getLogger(__name__)


def _line_items(lines):
    """Yield (level, coordinates) for every usable line, warning on the rest."""
    for item in lines:
        if isinstance(item, GeoFeature):
            if item.geometry_type != 'LineString':
                warnings.warn(f"Skipping {item.geometry_type} feature {item.id}: "
                              "contour grouping only accepts LineString features")
                continue
            level = item.elevation
            coords = np.asarray(item.geometry.coords, dtype=np.float64)
        else:
            level, coords = item
            level = float(level)
            coords = np.asarray(coords, dtype=np.float64)
        if coords.ndim != 2 or coords.shape[0] == 0:
            warnings.warn(f"Skipping malformed contour line at level {level}")
            continue
        if not np.isfinite(level):
            warnings.warn(f"Skipping contour line with non-finite level {level}")
            continue
        yield level, coords[:, :2]


def _band_points(coords, level, projection):
    if projection is not None:
        return projection.project_points(coords, elevation=level)
    return np.column_stack([coords, np.full(len(coords), level)])


def _make_band(level, pieces):
    offsets = []
    start = 0
    for piece in pieces:
        offsets.append(start)
        start += len(piece)
    points = np.vstack(pieces) if pieces else np.empty((0, 3))
    return ContourBand(level, points, offsets)


def group_contour_lines(lines, projection=None):
    """
    Group leveled polylines into contour bands.

    Lines sharing the exact same level are concatenated in input order
    into one band; the bands are then sorted by ascending level.

    Parameters
    ----------
    lines : iterable
        LineStringFeature objects (their ``elevation`` is the level) or
        ``(level, coordinates)`` pairs
    projection : ProjectionTransform, optional
        If given, band points are returned in local scene coordinates

    Returns
    -------
    list of ContourBand
        Bands in ascending level order; empty if no line is usable
    """
    groups = {}
    for level, coords in _line_items(lines):
        groups.setdefault(level, []).append(_band_points(coords, level, projection))

    bands = [_make_band(level, pieces) for level, pieces in groups.items()]
    bands.sort(key=lambda band: band.level)
    logger.debug(f"Grouped contour lines into {len(bands)} bands")
    return bands


def threshold_levels(vmin, vmax, n_bands):
    """
    Evenly spaced interior threshold levels.

    Parameters
    ----------
    vmin, vmax : float
        Range of the scalar field
    n_bands : int
        Number of levels

    Returns
    -------
    numpy.ndarray
        ``vmin + k * (vmax - vmin) / (n_bands + 1)`` for k = 1..n_bands,
        empty if the range is flat
    """
    if n_bands < 1:
        raise ContourError(f"n_bands must be at least 1, got {n_bands}")
    if not vmax > vmin:
        return np.empty(0)
    step = (vmax - vmin) / (n_bands + 1)
    return vmin + step * np.arange(1, n_bands + 1)


def trace_contours(height_field, n_bands, projection=None):
    """
    Extract isolines from a height field.

    Parameters
    ----------
    height_field : HeightField
        Scalar grid to threshold
    n_bands : int
        Number of evenly spaced threshold levels
    projection : ProjectionTransform, optional
        If given, band points are returned in local scene coordinates;
        otherwise they are planar (x, y) from the field transform plus
        the level

    Returns
    -------
    list of ContourBand
        One band per threshold, ascending; empty for a flat field
    """
    if not isinstance(height_field, HeightField):
        raise TypeError("height_field must be a HeightField instance")

    rows, cols = height_field.shape
    levels = threshold_levels(height_field.min, height_field.max, n_bands) \
        if rows >= 2 and cols >= 2 else np.empty(0)
    if len(levels) == 0:
        logger.info(f"No contours for {height_field!r}: flat or too small")
        return []

    bands = []
    for level in levels:
        pieces = []
        for path in measure.find_contours(height_field.values, level):
            if len(path) == 0:
                continue
            row_f, col_f = path[:, 0], path[:, 1]
            xs, ys = height_field.transform @ (col_f, row_f)
            coords = np.column_stack([xs, ys])
            pieces.append(_band_points(coords, float(level), projection))
        bands.append(_make_band(float(level), pieces))

    logger.debug(f"Traced {len(bands)} contour bands from {height_field!r}")
    return bands


def band_colors(bands):
    """
    Color each band by its normalized level.

    Parameters
    ----------
    bands : list of ContourBand
        Bands in ascending order

    Returns
    -------
    list of tuple
        One (r, g, b) per band; the ramp midpoint when all levels are equal
    """
    if not bands:
        return []
    levels = np.array([band.level for band in bands])
    lo, hi = levels.min(), levels.max()
    if hi == lo:
        return [ramp_midpoint()] * len(bands)
    return [tuple(float(c) for c in rgb)
            for rgb in color_ramp_array((levels - lo) / (hi - lo))]


def level_color(level, vmin, vmax):
    """Ramp color of a single level within [vmin, vmax]."""
    if vmax == vmin:
        return ramp_midpoint()
    return color_ramp((level - vmin) / (vmax - vmin))


def contour_segments(band):
    """
    Line-list form of a band.

    Parameters
    ----------
    band : ContourBand
        Band whose polylines are split into segments

    Returns
    -------
    numpy.ndarray
        (K, 2, 3) array of segment endpoints; polylines are not joined to
        each other
    """
    pieces = [np.stack([line[:-1], line[1:]], axis=1)
              for line in band.polylines() if len(line) > 1]
    if not pieces:
        return np.empty((0, 2, 3), dtype=np.float64)
    return np.concatenate(pieces)
