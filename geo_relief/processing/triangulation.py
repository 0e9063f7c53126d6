"""
Planar Delaunay triangulation of scattered points.

Triangulation only looks at the horizontal projection of the points,
so the resulting topology is independent of elevation. Degenerate input
is never fatal: the caller receives an empty triangle set and can fall
back to drawing points.
"""

import logging

import numpy as np
from scipy.spatial import Delaunay, QhullError

logger = logging.getLogger(__name__)

# Relative tolerance below which a triangle is considered zero-area
AREA_TOLERANCE = 1e-12


def _empty_triangles():
    return np.empty((0, 3), dtype=np.int64)


def signed_areas(points, triangles):
    """
    Signed area of each triangle in the plane.

    Parameters
    ----------
    points : numpy.ndarray
        (N, 2) planar points
    triangles : numpy.ndarray
        (M, 3) vertex indices

    Returns
    -------
    numpy.ndarray
        (M,) areas, positive for counter-clockwise triangles
    """
    points = np.asarray(points, dtype=np.float64)
    triangles = np.asarray(triangles, dtype=np.int64).reshape(-1, 3)
    a = points[triangles[:, 0]]
    b = points[triangles[:, 1]]
    c = points[triangles[:, 2]]
    return 0.5 * ((b[:, 0] - a[:, 0]) * (c[:, 1] - a[:, 1])
                  - (c[:, 0] - a[:, 0]) * (b[:, 1] - a[:, 1]))


def drop_degenerate_triangles(points, triangles, tolerance=AREA_TOLERANCE):
    """
    Remove zero-area triangles.

    Parameters
    ----------
    points : numpy.ndarray
        (N, 2) planar points
    triangles : numpy.ndarray
        (M, 3) vertex indices
    tolerance : float, optional
        Areas below ``tolerance * extent**2`` are dropped

    Returns
    -------
    numpy.ndarray
        Triangles with a non-zero area
    """
    triangles = np.asarray(triangles, dtype=np.int64).reshape(-1, 3)
    if len(triangles) == 0:
        return triangles
    points = np.asarray(points, dtype=np.float64)
    extent = np.ptp(points, axis=0).max() if len(points) else 0.0
    areas = np.abs(signed_areas(points, triangles))
    keep = areas > tolerance * max(extent * extent, np.finfo(np.float64).tiny)
    return triangles[keep]


def is_degenerate(points):
    """
    True if the points cannot span a triangle.

    That is the case for fewer than three distinct points or when all
    points lie on one line.
    """
    points = np.asarray(points, dtype=np.float64)
    if points.ndim != 2 or len(points) < 3:
        return True
    unique = np.unique(points[:, :2], axis=0)
    if len(unique) < 3:
        return True
    centered = unique - unique.mean(axis=0)
    # rank 1 <=> collinear
    singular = np.linalg.svd(centered, compute_uv=False)
    return singular[1] <= singular[0] * 1e-12


def delaunay_triangles(points):
    """
    Delaunay triangulation of 2D points.

    Parameters
    ----------
    points : array_like
        (N, 2) planar points; extra columns are ignored

    Returns
    -------
    numpy.ndarray
        (M, 3) int64 indices into ``points``, counter-clockwise in the
        input plane. Empty when the points are degenerate.
    """
    points = np.asarray(points, dtype=np.float64)
    if points.size == 0:
        return _empty_triangles()
    points = points.reshape(len(points), -1)[:, :2]

    if is_degenerate(points):
        logger.warning(f"Cannot triangulate {len(points)} points "
                       "(too few or collinear); returning no triangles")
        return _empty_triangles()

    try:
        triangulation = Delaunay(points)
    except QhullError as e:
        logger.warning(f"Delaunay triangulation failed: {e}")
        return _empty_triangles()

    triangles = triangulation.simplices.astype(np.int64)
    triangles = drop_degenerate_triangles(points, triangles)

    clockwise = signed_areas(points, triangles) < 0
    triangles[clockwise] = triangles[clockwise][:, [0, 2, 1]]

    logger.debug(f"Delaunay: {len(points)} points -> {len(triangles)} triangles")
    return triangles


def triangulation_area(points, triangles):
    """Total unsigned area covered by the triangles."""
    if len(triangles) == 0:
        return 0.0
    return float(np.abs(signed_areas(points, triangles)).sum())
