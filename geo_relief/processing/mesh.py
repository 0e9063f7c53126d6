"""
Functions for assembling colored, lit triangle meshes.

Vertices are Y-up: positions are (x, elevation, z). Colors come from the
elevation ramp and normals are the renormalized sum of the unit normals
of every incident face.
"""

import logging

import numpy as np

from ..core.data_model import HeightField, Mesh
from ..pipeline_config import MeshError
from .color import color_ramp_array, normalize_elevations, ramp_midpoint
from .triangulation import delaunay_triangles

logger = logging.getLogger(__name__)

UP = np.array([0.0, 1.0, 0.0])


def grid_indices(rows, cols):
    """
    Two triangles per quad of a regular ``rows`` x ``cols`` vertex grid.

    Vertices are numbered row-major. Triangles are wound so that, with
    rows along +z and columns along +x, their normals point to +y.

    Returns
    -------
    numpy.ndarray
        (2 * (rows - 1) * (cols - 1), 3) int64 indices
    """
    if rows < 2 or cols < 2:
        return np.empty((0, 3), dtype=np.int64)

    iy_g, ix_g = np.meshgrid(np.arange(rows - 1), np.arange(cols - 1), indexing='ij')
    iy = iy_g.ravel()
    ix = ix_g.ravel()

    v00 = iy * cols + ix                  # (iy,   ix)
    v10 = iy * cols + (ix + 1)            # (iy,   ix+1)
    v01 = (iy + 1) * cols + ix            # (iy+1, ix)
    v11 = (iy + 1) * cols + (ix + 1)      # (iy+1, ix+1)

    tri1 = np.column_stack([v00, v01, v10])
    tri2 = np.column_stack([v10, v01, v11])
    return np.vstack([tri1, tri2]).astype(np.int64)


def face_normals(positions, indices, normalize=True):
    """
    Normal of every triangle, from the cross product of two edges.

    Parameters
    ----------
    positions : numpy.ndarray
        (N, 3) vertex positions
    indices : numpy.ndarray
        (M, 3) triangle indices
    normalize : bool, optional
        Return unit vectors (zero vectors stay zero)

    Returns
    -------
    numpy.ndarray
        (M, 3) normals
    """
    positions = np.asarray(positions, dtype=np.float64)
    indices = np.asarray(indices, dtype=np.int64).reshape(-1, 3)
    a = positions[indices[:, 0]]
    b = positions[indices[:, 1]]
    c = positions[indices[:, 2]]
    normals = np.cross(b - a, c - a)
    if normalize:
        lengths = np.linalg.norm(normals, axis=1, keepdims=True)
        normals = np.divide(normals, lengths, out=np.zeros_like(normals),
                            where=lengths > 0)
    return normals


def vertex_normals(positions, indices):
    """
    Smooth-shading vertex normals.

    Every vertex receives the sum of the unit normals of its incident
    triangles, renormalized. Vertices without a triangle get +y.

    Parameters
    ----------
    positions : numpy.ndarray
        (N, 3) vertex positions
    indices : numpy.ndarray
        (M, 3) triangle indices

    Returns
    -------
    numpy.ndarray
        (N, 3) unit normals
    """
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    indices = np.asarray(indices, dtype=np.int64).reshape(-1, 3)
    accumulated = np.zeros_like(positions)
    if len(indices):
        unit = face_normals(positions, indices)
        for corner in range(3):
            np.add.at(accumulated, indices[:, corner], unit)

    lengths = np.linalg.norm(accumulated, axis=1, keepdims=True)
    normals = np.tile(UP, (len(positions), 1))
    np.divide(accumulated, lengths, out=normals, where=lengths > 0)
    return normals


def orient_faces(positions, indices, up=UP):
    """
    Rewind triangles whose normal points away from ``up``.

    Parameters
    ----------
    positions : numpy.ndarray
        (N, 3) vertex positions
    indices : numpy.ndarray
        (M, 3) triangle indices
    up : array_like, optional
        Reference direction

    Returns
    -------
    numpy.ndarray
        Copy of ``indices`` with a consistent winding
    """
    indices = np.array(indices, dtype=np.int64).reshape(-1, 3)
    if len(indices) == 0:
        return indices
    facing = face_normals(positions, indices, normalize=False) @ np.asarray(up, dtype=np.float64)
    flip = facing < 0
    indices[flip] = indices[flip][:, [0, 2, 1]]
    return indices


def vertex_colors(elevations):
    """
    Ramp color of every vertex from its normalized elevation.

    Parameters
    ----------
    elevations : array_like
        (N,) elevations

    Returns
    -------
    numpy.ndarray
        (N, 3) colors; all equal to the ramp midpoint if the range is flat
    """
    h = np.asarray(elevations, dtype=np.float64).reshape(-1)
    if h.size == 0:
        return np.empty((0, 3), dtype=np.float64)
    t = normalize_elevations(h)
    if t is None:
        return np.tile(np.array(ramp_midpoint()), (len(h), 1))
    return color_ramp_array(t)


def validate_indices(indices, n_vertices):
    """
    Check that every index references an existing vertex.

    Raises
    ------
    MeshError
        If an index is negative or not smaller than ``n_vertices``
    """
    indices = np.asarray(indices)
    if indices.size == 0:
        return
    if indices.min() < 0 or indices.max() >= n_vertices:
        raise MeshError(f"Triangle index out of range [0, {n_vertices}): "
                        f"min={indices.min()}, max={indices.max()}")


def assemble_mesh(positions, indices=None, grid_shape=None, elevations=None,
                  up=UP, orient=True):
    """
    Build a Mesh from projected vertex positions.

    Parameters
    ----------
    positions : array_like
        (N, 3) local positions, y being elevation
    indices : array_like, optional
        (M, 3) triangle indices, e.g. from :func:`delaunay_triangles`
    grid_shape : tuple, optional
        (rows, cols) when positions form a row-major regular grid; used
        to build the indices if none are given
    elevations : array_like, optional
        Values used for coloring; defaults to the y coordinates
    up : array_like, optional
        Direction triangles are wound to face
    orient : bool, optional
        Rewind triangles so they all face ``up``

    Returns
    -------
    Mesh
    """
    positions = np.asarray(positions, dtype=np.float64)
    if positions.size == 0:
        return Mesh.empty()
    positions = positions.reshape(-1, 3)
    n_vertices = len(positions)

    if indices is None and grid_shape is not None:
        rows, cols = grid_shape
        if rows * cols != n_vertices:
            raise MeshError(f"Grid shape {rows}x{cols} does not match "
                            f"{n_vertices} vertices")
        indices = grid_indices(rows, cols)
    elif indices is None:
        indices = np.empty((0, 3), dtype=np.int64)

    indices = np.asarray(indices, dtype=np.int64).reshape(-1, 3)
    validate_indices(indices, n_vertices)

    if len(indices):
        areas = np.linalg.norm(face_normals(positions, indices, normalize=False), axis=1)
        degenerate = areas <= 0
        if degenerate.any():
            logger.debug(f"Dropping {int(degenerate.sum())} zero-area triangles")
            indices = indices[~degenerate]
    if orient:
        indices = orient_faces(positions, indices, up)

    if elevations is None:
        elevations = positions[:, 1]
    colors = vertex_colors(elevations)
    normals = vertex_normals(positions, indices)

    mesh = Mesh(positions, colors, indices, normals)
    logger.info(f"Assembled {mesh!r}")
    return mesh


def mesh_from_height_field(height_field, projection):
    """
    Grid mesh of a height field.

    Parameters
    ----------
    height_field : HeightField
        Elevation samples; the field transform gives planar coordinates
    projection : ProjectionTransform
        Projection from planar coordinates and elevation to the scene

    Returns
    -------
    Mesh
        (rows * cols) vertices and 2 triangles per grid quad
    """
    if not isinstance(height_field, HeightField):
        raise TypeError("height_field must be a HeightField instance")
    rows, cols = height_field.shape
    if rows == 0 or cols == 0:
        return Mesh.empty()
    xs, ys = height_field.coordinates()
    heights = height_field.values.ravel()
    positions = projection.project_points(np.column_stack([xs.ravel(), ys.ravel()]),
                                          elevation=heights)
    return assemble_mesh(positions, grid_shape=(rows, cols), elevations=heights)


def mesh_from_points(points, projection):
    """
    Delaunay surface through scattered (x, y, elevation) points.

    Parameters
    ----------
    points : array_like
        (N, 3) source points
    projection : ProjectionTransform
        Projection to local scene coordinates

    Returns
    -------
    Mesh
        Triangulated surface, or a point cloud if the points are degenerate
    """
    points = np.asarray(points, dtype=np.float64)
    if points.size == 0:
        return Mesh.empty()
    points = points.reshape(-1, 3)
    positions = projection.project_points(points)
    # triangulate in the local horizontal plane (x, z)
    triangles = delaunay_triangles(positions[:, [0, 2]])
    return assemble_mesh(positions, indices=triangles, elevations=points[:, 2])
