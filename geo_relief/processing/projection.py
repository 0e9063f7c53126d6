"""
Affine projection between source coordinates and local scene coordinates.

Source coordinates are (x, y) pairs, typically longitude/latitude, plus an
elevation. Local coordinates are Y-up: the horizontal plane is (x, z) and
elevation goes to y. The horizontal part is held as an ``affine.Affine``
so the inverse is exact up to floating point.
"""

import numpy as np
from rasterio.transform import Affine

from ..core.data_model import ProjectionParams


class ProjectionTransform:
    """
    Forward and inverse mapping for one set of ProjectionParams.
    """

    def __init__(self, params):
        """
        Initialize the transform.

        Parameters
        ----------
        params : ProjectionParams
            Offsets and scales of the projection
        """
        if not isinstance(params, ProjectionParams):
            raise TypeError("params must be a ProjectionParams instance")
        self.params = params
        sx = -params.horizontal_scale if params.flip_x else params.horizontal_scale
        sz = -params.horizontal_scale if params.flip_z else params.horizontal_scale
        self.horizontal = Affine.scale(sx, sz) @ Affine.translation(-params.offset_x,
                                                                    -params.offset_y)
        self.horizontal_inverse = ~self.horizontal

    def __repr__(self):
        return f"ProjectionTransform({self.params!r})"

    def geo_to_local(self, x, y, elevation=0.0):
        """
        Project source coordinates to the local scene.

        Parameters
        ----------
        x : float or numpy.ndarray
            Source x (longitude)
        y : float or numpy.ndarray
            Source y (latitude)
        elevation : float or numpy.ndarray, optional
            Elevation in source units

        Returns
        -------
        tuple
            (x_local, y_local, z_local), y_local being the scaled elevation
        """
        x_local, z_local = self.horizontal @ (x, y)
        y_local = elevation * self.params.vertical_scale
        return x_local, y_local, z_local

    def local_to_geo(self, x_local, y_local, z_local):
        """
        Map a local scene point back to source coordinates.

        Parameters
        ----------
        x_local, y_local, z_local : float or numpy.ndarray
            Local coordinates, y being the vertical axis

        Returns
        -------
        tuple
            (x, y, elevation) in source units
        """
        x, y = self.horizontal_inverse @ (x_local, z_local)
        elevation = y_local / self.params.vertical_scale
        return x, y, elevation

    def project_points(self, coords, elevation=None):
        """
        Project an array of source points.

        Parameters
        ----------
        coords : array_like
            (N, 2) planar points or (N, 3) points whose third column is
            the elevation
        elevation : float or array_like, optional
            Elevation for every point; overrides a third column

        Returns
        -------
        numpy.ndarray
            (N, 3) local positions
        """
        coords = np.asarray(coords, dtype=np.float64)
        if coords.size == 0:
            return np.empty((0, 3), dtype=np.float64)
        coords = coords.reshape(len(coords), -1)
        if elevation is None:
            elevation = coords[:, 2] if coords.shape[1] > 2 else 0.0
        x_local, y_local, z_local = self.geo_to_local(coords[:, 0], coords[:, 1],
                                                      np.asarray(elevation, dtype=np.float64))
        return np.column_stack(np.broadcast_arrays(x_local, y_local, z_local))

    def unproject_points(self, positions):
        """
        Inverse of :meth:`project_points`.

        Parameters
        ----------
        positions : array_like
            (N, 3) local positions

        Returns
        -------
        numpy.ndarray
            (N, 3) array of (x, y, elevation)
        """
        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        x, y, elevation = self.local_to_geo(positions[:, 0], positions[:, 1],
                                            positions[:, 2])
        return np.column_stack([x, y, elevation])


def geo_to_local(params, x, y, elevation=0.0):
    """Shortcut for ``ProjectionTransform(params).geo_to_local``."""
    return ProjectionTransform(params).geo_to_local(x, y, elevation)


def local_to_geo(params, x_local, y_local, z_local):
    """Shortcut for ``ProjectionTransform(params).local_to_geo``."""
    return ProjectionTransform(params).local_to_geo(x_local, y_local, z_local)
