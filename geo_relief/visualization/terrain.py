"""
Functions for previewing terrain buffers.

These plots are a static reference consumer of the pipeline output:
a vertex-colored mesh in 3D and contour bands in plan view.
"""

import matplotlib.pyplot as plt
import numpy as np
from mpl_toolkits.mplot3d.art3d import Poly3DCollection

from ..core.data_model import ContourBand
from ..processing.contours import band_colors
from ..processing.mesh import face_normals


def _shade(colors, normals, light_dir, ambient):
    light = np.asarray(light_dir, dtype=np.float64)
    light = light / np.linalg.norm(light)
    diffuse = np.clip(normals @ light, 0.0, 1.0)
    return np.clip(colors * (ambient + (1.0 - ambient) * diffuse)[:, None], 0.0, 1.0)


def plot_mesh(mesh, ax=None, figsize=(10, 8), elev=35, azim=-60,
              light_dir=(1.0, 1.5, 1.0), ambient=0.45, title='Terrain Mesh'):
    """
    Plot a Mesh as a lit, vertex-colored 3D surface.

    Face colors are the mean of their vertex colors, shaded with a
    directional light. Meshes without triangles are drawn as points.

    Parameters
    ----------
    mesh : Mesh
        Mesh to plot (Y-up positions)
    ax : mpl_toolkits.mplot3d.axes3d.Axes3D, optional
        3D axes to plot on
    figsize : tuple, optional
        Figure size (width, height) in inches
    elev, azim : float, optional
        View angles
    light_dir : tuple, optional
        Direction towards the light, in mesh coordinates
    ambient : float, optional
        Ambient light fraction
    title : str, optional
        Plot title

    Returns
    -------
    mpl_toolkits.mplot3d.axes3d.Axes3D
        The axes containing the plot
    """
    if ax is None:
        fig = plt.figure(figsize=figsize)
        ax = fig.add_subplot(111, projection='3d')

    # matplotlib is Z-up: plot (x, z, y)
    xyz = mesh.positions[:, [0, 2, 1]]

    if len(mesh.indices):
        triangles = xyz[mesh.indices]
        colors = mesh.colors[mesh.indices].mean(axis=1)
        normals = face_normals(mesh.positions, mesh.indices)
        collection = Poly3DCollection(triangles, facecolors=_shade(colors, normals,
                                                                  light_dir, ambient),
                                      linewidths=0)
        ax.add_collection3d(collection)
    elif len(xyz):
        ax.scatter(xyz[:, 0], xyz[:, 1], xyz[:, 2], c=mesh.colors, s=4)

    if len(xyz):
        lo, hi = xyz.min(axis=0), xyz.max(axis=0)
        pad = np.where(hi > lo, 0.0, 0.5)
        ax.set_xlim(lo[0] - pad[0], hi[0] + pad[0])
        ax.set_ylim(lo[1] - pad[1], hi[1] + pad[1])
        ax.set_zlim(lo[2] - pad[2], hi[2] + pad[2])

    ax.view_init(elev=elev, azim=azim)
    ax.set_xlabel('X')
    ax.set_ylabel('Z')
    ax.set_zlabel('Elevation')
    ax.set_title(title)
    return ax


def plot_contour_bands(bands, ax=None, figsize=(10, 8), colors=None,
                       linewidth=0.8, title='Contour Bands', legend=False):
    """
    Plot contour bands in plan view.

    Parameters
    ----------
    bands : list of ContourBand
        Bands in ascending level order
    ax : matplotlib.axes.Axes, optional
        Axes to plot on
    figsize : tuple, optional
        Figure size (width, height) in inches
    colors : list of tuple, optional
        One RGB color per band; defaults to the elevation ramp
    linewidth : float, optional
        Line width
    title : str, optional
        Plot title
    legend : bool, optional
        Label each band with its level

    Returns
    -------
    matplotlib.axes.Axes
        The axes containing the plot
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)

    if colors is None:
        colors = band_colors(bands)

    for band, color in zip(bands, colors):
        label = f'{band.level:.2f}'
        for line in band.polylines():
            ax.plot(line[:, 0], line[:, 1], color=color, linewidth=linewidth, label=label)
            label = None

    if legend and bands:
        ax.legend(title='Level', fontsize='small')

    ax.set_title(title)
    ax.set_xlabel('X Coordinate')
    ax.set_ylabel('Y Coordinate')
    ax.set_aspect('equal')
    ax.grid(linestyle='--', alpha=0.3)
    return ax


def plot_terrain(result, figsize=(16, 7), title=None):
    """
    Plot a pipeline result: mesh and contour bands side by side.

    Parameters
    ----------
    result : TerrainResult
        Output of ``TerrainPipeline.run``
    figsize : tuple, optional
        Figure size (width, height) in inches
    title : str, optional
        Figure title

    Returns
    -------
    matplotlib.figure.Figure
        The figure containing the plots
    """
    fig = plt.figure(figsize=figsize)
    ax3d = fig.add_subplot(1, 2, 1, projection='3d')
    ax2d = fig.add_subplot(1, 2, 2)

    plot_mesh(result.mesh, ax=ax3d)

    if result.contours:
        # band points are Y-up scene coordinates: plan view is (x, z)
        plan = [_plan_view(band) for band in result.contours]
        plot_contour_bands(plan, ax=ax2d, colors=list(result.contour_colors) or None)
    else:
        ax2d.text(0.5, 0.5, 'No contour data available', ha='center', va='center')
        ax2d.set_title('Contour Bands (No Data)')

    fig.suptitle(title or 'Terrain', fontsize=16)
    fig.tight_layout()
    return fig


def _plan_view(band):
    points = band.points[:, [0, 2, 1]]
    return ContourBand(band.level, points, band.offsets)
