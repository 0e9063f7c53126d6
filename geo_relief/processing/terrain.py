"""
Functions for turning typed features into terrain surfaces.

Every supported feature contributes its planar vertices, all at the
feature's elevation; the points are then triangulated and colored like
any scattered elevation samples.
"""

import logging
import warnings

import numpy as np

from ..core.data_model import GeoFeature, LineStringFeature
from .contours import group_contour_lines
from .mesh import mesh_from_points

logger = logging.getLogger(__name__)


def collect_feature_points(features):
    """
    Gather (x, y, elevation) samples from features.

    Parameters
    ----------
    features : iterable of GeoFeature
        Point, LineString and Polygon features

    Returns
    -------
    numpy.ndarray
        (N, 3) array in feature order; polygon rings contribute their
        exterior vertices without the closing point
    """
    chunks = []
    for feature in features:
        if not isinstance(feature, GeoFeature) or feature.geometry_type is None:
            warnings.warn(f"Skipping unsupported feature {feature!r}")
            continue
        coords = feature.coordinates()
        if len(coords) == 0:
            continue
        chunks.append(np.column_stack([coords, np.full(len(coords), feature.elevation)]))

    if not chunks:
        return np.empty((0, 3), dtype=np.float64)
    return np.vstack(chunks)


def mesh_from_features(features, projection):
    """
    Delaunay surface through the vertices of a feature collection.

    Parameters
    ----------
    features : iterable of GeoFeature
        Input features
    projection : ProjectionTransform
        Projection to local scene coordinates

    Returns
    -------
    Mesh
        Empty when there are no features; a point cloud when the points
        cannot be triangulated
    """
    points = collect_feature_points(features)
    logger.info(f"Building surface from {len(points)} feature vertices")
    return mesh_from_points(points, projection)


def contours_from_features(features, projection=None):
    """
    Contour bands from the LineString features of a collection.

    Non-line features are ignored silently here; use
    :func:`group_contour_lines` directly to get a warning for each.
    """
    lines = [f for f in features if isinstance(f, LineStringFeature)]
    return group_contour_lines(lines, projection)
