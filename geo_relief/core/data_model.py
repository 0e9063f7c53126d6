"""
Core data models for terrain surfaces and elevation bands.

This module defines the standard data structures used throughout
the package: height fields, projection parameters, contour bands,
colored meshes and the typed geographic features fed to the pipeline.
"""

import numpy as np
from rasterio.transform import Affine
from shapely.geometry import Point, LineString, Polygon
from typing import Dict, List, Tuple, Optional, Union, Any

from ..pipeline_config import ProjectionError


def _readonly(values, dtype=np.float64, width=None):
    array = np.array(values, dtype=dtype, copy=True)
    if width is not None:
        array = array.reshape(-1, width)
    array.flags.writeable = False
    return array


class HeightField:
    """
    A 2D grid of elevation samples indexed by (row, col).

    The samples are copied on construction and stored read-only, so a
    HeightField never changes once created.
    """

    def __init__(self, values, transform=None, name=None):
        """
        Initialize a HeightField.

        Parameters
        ----------
        values : array_like
            2D array of elevation samples, shape (rows, cols)
        transform : affine.Affine, optional
            Affine transform mapping (col, row) to planar (x, y).
            Defaults to the identity.
        name : str, optional
            Name of the height field
        """
        data = np.array(values, dtype=np.float64, copy=True)
        if data.ndim != 2:
            raise ValueError(f"HeightField expects a 2D array, got {data.ndim}D")
        data.flags.writeable = False
        self.values = data
        self.transform = transform if transform is not None else Affine.identity()
        self.name = name

    def __repr__(self):
        rows, cols = self.shape
        return f"HeightField(name={self.name}, shape=({rows}, {cols}))"

    @property
    def shape(self) -> Tuple[int, int]:
        return self.values.shape

    @property
    def min(self) -> float:
        if self.values.size == 0:
            return float('nan')
        return float(np.nanmin(self.values))

    @property
    def max(self) -> float:
        if self.values.size == 0:
            return float('nan')
        return float(np.nanmax(self.values))

    def is_flat(self) -> bool:
        """Return True if the field is empty or every sample is equal."""
        if self.values.size == 0:
            return True
        return self.min == self.max

    def coordinates(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Planar coordinates of every sample.

        Returns
        -------
        tuple
            (xs, ys) arrays of shape (rows, cols), obtained by applying
            the transform to each (col, row) index
        """
        rows, cols = self.shape
        col_idx, row_idx = np.meshgrid(np.arange(cols), np.arange(rows))
        xs, ys = self.transform @ (col_idx.astype(np.float64), row_idx.astype(np.float64))
        return np.asarray(xs), np.asarray(ys)

    def get_elevation(self, x, y):
        """
        Get the elevation at a planar point.

        Parameters
        ----------
        x : float
            X-coordinate
        y : float
            Y-coordinate

        Returns
        -------
        float or None
            Elevation of the nearest sample, or None if outside the grid
        """
        col, row = ~self.transform @ (x, y)
        col, row = int(round(col)), int(round(row))
        rows, cols = self.shape
        if 0 <= row < rows and 0 <= col < cols:
            return float(self.values[row, col])
        return None


class ProjectionParams:
    """
    Parameters of the affine geographic-to-local projection.

    Instances are immutable: attributes cannot be reassigned once the
    object is built.
    """

    __slots__ = ('offset_x', 'offset_y', 'horizontal_scale', 'vertical_scale',
                 'flip_x', 'flip_z')

    def __init__(self, offset_x, offset_y, horizontal_scale, vertical_scale,
                 flip_x=False, flip_z=False):
        """
        Initialize ProjectionParams.

        Parameters
        ----------
        offset_x : float
            Source x (longitude) mapped to local x = 0
        offset_y : float
            Source y (latitude) mapped to local z = 0
        horizontal_scale : float
            Scene units per source unit on both horizontal axes
        vertical_scale : float
            Scene units per elevation unit. Required; elevation units vary
            between data sources, so there is no default.
        flip_x, flip_z : bool, optional
            Negate the corresponding local axis
        """
        if horizontal_scale == 0:
            raise ProjectionError("horizontal_scale must be non-zero")
        if vertical_scale == 0:
            raise ProjectionError("vertical_scale must be non-zero")
        object.__setattr__(self, 'offset_x', float(offset_x))
        object.__setattr__(self, 'offset_y', float(offset_y))
        object.__setattr__(self, 'horizontal_scale', float(horizontal_scale))
        object.__setattr__(self, 'vertical_scale', float(vertical_scale))
        object.__setattr__(self, 'flip_x', bool(flip_x))
        object.__setattr__(self, 'flip_z', bool(flip_z))

    def __setattr__(self, name, value):
        raise AttributeError(f"ProjectionParams is immutable (cannot set '{name}')")

    def __eq__(self, other):
        if not isinstance(other, ProjectionParams):
            return NotImplemented
        return self.as_tuple() == other.as_tuple()

    def __hash__(self):
        return hash(self.as_tuple())

    def __repr__(self):
        return (f"ProjectionParams(offset=({self.offset_x}, {self.offset_y}), "
                f"horizontal_scale={self.horizontal_scale}, "
                f"vertical_scale={self.vertical_scale})")

    def as_tuple(self):
        return (self.offset_x, self.offset_y, self.horizontal_scale,
                self.vertical_scale, self.flip_x, self.flip_z)

    @classmethod
    def fit(cls, bounds, target_size, vertical_scale, flip_z=False):
        """
        Build parameters that center a bounding box and scale its larger
        side to ``target_size`` scene units.

        Parameters
        ----------
        bounds : tuple
            (xmin, ymin, xmax, ymax) in source units
        target_size : float
            Extent of the larger side after projection
        vertical_scale : float
            Scene units per elevation unit
        flip_z : bool, optional
            Negate the local z axis (north towards -z)

        Returns
        -------
        ProjectionParams
        """
        xmin, ymin, xmax, ymax = bounds
        span = max(xmax - xmin, ymax - ymin)
        scale = target_size / span if span > 0 else 1.0
        return cls((xmin + xmax) / 2.0, (ymin + ymax) / 2.0, scale,
                   vertical_scale, flip_z=flip_z)


class ContourBand:
    """
    An isoline: all points at (or interpolated to) one elevation level.
    """

    def __init__(self, level, points, offsets=None):
        """
        Initialize a ContourBand.

        Parameters
        ----------
        level : float
            Elevation shared by every point of the band
        points : array_like
            Ordered (x, y, z) points, shape (N, 3)
        offsets : array_like, optional
            Start index of each polyline concatenated into ``points``.
            Defaults to a single polyline starting at 0.
        """
        self.level = float(level)
        self.points = _readonly(points, width=3)
        if offsets is None:
            offsets = [0] if len(self.points) else []
        self.offsets = _readonly(offsets, dtype=np.int64)

    def __repr__(self):
        return (f"ContourBand(level={self.level}, points={len(self.points)}, "
                f"polylines={len(self.offsets)})")

    def __len__(self):
        return len(self.points)

    def polylines(self) -> List[np.ndarray]:
        """Split the band back into its individual polylines."""
        bounds = list(self.offsets) + [len(self.points)]
        return [self.points[start:end] for start, end in zip(bounds[:-1], bounds[1:])
                if end > start]


class ColoredVertex:
    """A vertex position with its RGB color."""

    __slots__ = ('position', 'color')

    def __init__(self, position, color):
        self.position = tuple(float(v) for v in position)
        self.color = tuple(float(c) for c in color)

    def __repr__(self):
        return f"ColoredVertex(position={self.position}, color={self.color})"

    def __eq__(self, other):
        if not isinstance(other, ColoredVertex):
            return NotImplemented
        return self.position == other.position and self.color == other.color


class Mesh:
    """
    Renderable triangle mesh: positions, colors, triangle indices and
    per-vertex normals, stored as read-only numpy buffers.
    """

    def __init__(self, positions, colors, indices, normals):
        """
        Initialize a Mesh.

        Parameters
        ----------
        positions : array_like
            Vertex positions, shape (N, 3)
        colors : array_like
            Vertex colors in [0, 1], shape (N, 3)
        indices : array_like
            Triangle vertex indices, shape (M, 3)
        normals : array_like
            Unit vertex normals, shape (N, 3)
        """
        self.positions = _readonly(positions, width=3)
        self.colors = _readonly(colors, width=3)
        self.indices = _readonly(indices, dtype=np.int64, width=3)
        self.normals = _readonly(normals, width=3)

    def __repr__(self):
        return f"Mesh(vertices={len(self.positions)}, triangles={len(self.indices)})"

    @classmethod
    def empty(cls):
        """Return a mesh with no vertices and no triangles."""
        return cls(np.empty((0, 3)), np.empty((0, 3)),
                   np.empty((0, 3), dtype=np.int64), np.empty((0, 3)))

    @property
    def vertices(self) -> List[ColoredVertex]:
        return [ColoredVertex(p, c) for p, c in zip(self.positions, self.colors)]

    def flat_indices(self) -> np.ndarray:
        """Triangle indices as a flat array, three entries per triangle."""
        return self.indices.reshape(-1)

    def is_point_cloud(self) -> bool:
        """True when the mesh has vertices but no triangles."""
        return len(self.positions) > 0 and len(self.indices) == 0

    def bounds(self):
        """Axis-aligned bounds as (min_xyz, max_xyz), or None if empty."""
        if len(self.positions) == 0:
            return None
        return self.positions.min(axis=0), self.positions.max(axis=0)


class GeoFeature:
    """
    Base class for typed geographic features.

    A feature carries its geometry and a single resolved elevation
    value; arbitrary attribute lookups stay in the loaders.
    """

    geometry_type = None

    def __init__(self, geometry, elevation=0.0, feature_id=None, name=None):
        """
        Initialize a GeoFeature.

        Parameters
        ----------
        geometry : shapely.geometry
            Geometry of the feature
        elevation : float, optional
            Elevation (already multiplied by the source scale factor)
        feature_id : str or int, optional
            Identifier of the feature
        name : str, optional
            Display name
        """
        self.geometry = geometry
        self.elevation = float(elevation)
        self.id = feature_id
        self.name = name

    def __repr__(self):
        return (f"{type(self).__name__}(id={self.id}, "
                f"elevation={self.elevation})")

    def coordinates(self) -> np.ndarray:
        """Planar coordinates of the feature as an (N, 2) array."""
        raise NotImplementedError


class PointFeature(GeoFeature):
    """A single located point, e.g. a city."""

    geometry_type = 'Point'

    def __init__(self, geometry, elevation=0.0, feature_id=None, name=None):
        if not isinstance(geometry, Point):
            geometry = Point(geometry)
        super().__init__(geometry, elevation, feature_id, name)

    def coordinates(self):
        return np.array(self.geometry.coords, dtype=np.float64)[:, :2]


class LineStringFeature(GeoFeature):
    """A polyline, e.g. a route or a contour line."""

    geometry_type = 'LineString'

    def __init__(self, geometry, elevation=0.0, feature_id=None, name=None):
        if not isinstance(geometry, LineString):
            geometry = LineString(geometry)
        super().__init__(geometry, elevation, feature_id, name)

    def coordinates(self):
        return np.array(self.geometry.coords, dtype=np.float64)[:, :2]


class PolygonFeature(GeoFeature):
    """A polygon with optional holes, e.g. an administrative area."""

    geometry_type = 'Polygon'

    def __init__(self, geometry, elevation=0.0, feature_id=None, name=None):
        if not isinstance(geometry, Polygon):
            shell, *holes = geometry
            geometry = Polygon(shell, holes)
        super().__init__(geometry, elevation, feature_id, name)

    def coordinates(self):
        """Exterior ring coordinates, without the closing point."""
        coords = np.array(self.geometry.exterior.coords, dtype=np.float64)[:, :2]
        return coords[:-1] if len(coords) > 1 else coords


FEATURE_TYPES = {
    'Point': PointFeature,
    'LineString': LineStringFeature,
    'Polygon': PolygonFeature,
}


class DataSource:
    """
    A named source of features and the rule used to resolve their
    elevation (property name and scale factor).
    """

    def __init__(self, source_id, name, height_field, height_scale, loader=None):
        """
        Initialize a DataSource.

        Parameters
        ----------
        source_id : str
            Unique identifier of the source
        name : str
            Display name
        height_field : str
            Feature property holding the elevation or weight
        height_scale : float
            Factor applied to the property value
        loader : callable, optional
            Zero-argument callable returning a GeoJSON-like mapping
        """
        self.id = source_id
        self.name = name
        self.height_field = height_field
        self.height_scale = float(height_scale)
        self.loader = loader

    def __repr__(self):
        return f"DataSource(id={self.id}, height_field={self.height_field})"

    def load(self) -> Dict[str, Any]:
        if self.loader is None:
            return {'type': 'FeatureCollection', 'features': []}
        return self.loader()
