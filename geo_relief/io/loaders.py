"""
Functions for loading features and elevation grids.

Loaders resolve each feature's elevation from a named property and a
scale factor, so the rest of the package only sees typed features with
a single numeric elevation.
"""

import logging
import os
import warnings

import numpy as np
import pandas as pd
import geopandas as gpd
import rasterio
from shapely.errors import ShapelyError
from shapely.geometry import shape

from ..core.data_model import FEATURE_TYPES, DataSource, HeightField
from ..pipeline_config import DATA_SOURCES

logger = logging.getLogger(__name__)

# Value used when a feature lacks the elevation property
DEFAULT_ELEVATION_VALUE = 1.0


def resolve_elevation(properties, height_field, height_scale,
                      default=DEFAULT_ELEVATION_VALUE):
    """
    Read the elevation of a feature from its properties.

    Parameters
    ----------
    properties : dict or pandas.Series
        Feature attributes
    height_field : str or None
        Name of the property holding the elevation or weight
    height_scale : float
        Factor applied to the property value
    default : float, optional
        Value used when the property is missing, null or non-numeric

    Returns
    -------
    float
        Scaled elevation
    """
    value = None
    if height_field is not None and properties is not None:
        value = properties.get(height_field)
    if value is None or pd.isna(value):
        value = default
    try:
        value = float(value)
    except (ValueError, TypeError):
        value = default
    return value * height_scale


def _make_feature(geometry, elevation, feature_id, name):
    feature_class = FEATURE_TYPES.get(geometry.geom_type)
    if feature_class is None:
        warnings.warn(f"Unsupported geometry type '{geometry.geom_type}' "
                      f"for feature {feature_id}; skipping")
        logger.warning(f"Skipped feature {feature_id} with geometry {geometry.geom_type}")
        return None
    return feature_class(geometry, elevation, feature_id=feature_id, name=name)


def _vertex_elevation(geometry):
    # 3D line coordinates carry their contour level in z
    if geometry.has_z and geometry.geom_type == 'LineString':
        return float(geometry.coords[0][2])
    return None


def features_from_geojson(data, height_field=None, height_scale=1.0,
                          use_z=False):
    """
    Build typed features from a GeoJSON-like mapping.

    Parameters
    ----------
    data : dict
        FeatureCollection mapping
    height_field : str, optional
        Property holding the elevation
    height_scale : float, optional
        Factor applied to the property value
    use_z : bool, optional
        Take the elevation of 3D LineStrings from their first vertex
        instead of the properties

    Returns
    -------
    list of GeoFeature
        One feature per supported geometry; unsupported and malformed
        features are skipped with a warning
    """
    if not isinstance(data, dict):
        warnings.warn("Feature collection must be a mapping; got "
                      f"{type(data).__name__}")
        return []

    features = []
    for index, item in enumerate(data.get('features') or []):
        geometry_data = (item or {}).get('geometry')
        if not geometry_data:
            warnings.warn(f"Feature {index} has no geometry; skipping")
            continue
        try:
            geometry = shape(geometry_data)
        except (ShapelyError, ValueError, TypeError, AttributeError, KeyError) as e:
            warnings.warn(f"Feature {index} has malformed geometry: {e}")
            continue
        if geometry.is_empty:
            warnings.warn(f"Feature {index} has an empty geometry; skipping")
            continue

        properties = item.get('properties') or {}
        elevation = _vertex_elevation(geometry) if use_z else None
        if elevation is None:
            elevation = resolve_elevation(properties, height_field, height_scale)
        feature = _make_feature(geometry, elevation,
                                item.get('id', index), properties.get('name'))
        if feature is not None:
            features.append(feature)

    logger.info(f"Loaded {len(features)} features")
    return features


def features_from_geodataframe(gdf, height_field=None, height_scale=1.0,
                               use_z=False):
    """
    Build typed features from a GeoDataFrame.

    Parameters
    ----------
    gdf : GeoDataFrame
        Source features
    height_field : str, optional
        Column holding the elevation
    height_scale : float, optional
        Factor applied to the column value
    use_z : bool, optional
        Take the elevation of 3D LineStrings from their first vertex

    Returns
    -------
    list of GeoFeature
    """
    if not isinstance(gdf, gpd.GeoDataFrame):
        raise ValueError("gdf must be a GeoDataFrame")

    if height_field is not None and height_field not in gdf.columns:
        warnings.warn(f"Elevation column '{height_field}' not found; "
                      f"using {DEFAULT_ELEVATION_VALUE}")

    features = []
    for index, row in gdf.iterrows():
        geom = row.geometry
        if geom is None or geom.is_empty:
            continue
        elevation = _vertex_elevation(geom) if use_z else None
        if elevation is None:
            elevation = resolve_elevation(row, height_field, height_scale)
        name = row.get('name') if 'name' in gdf.columns else None
        feature = _make_feature(geom, elevation, index, name)
        if feature is not None:
            features.append(feature)

    return features


def load_features(filepath, height_field=None, height_scale=1.0, layer=None,
                  use_z=False):
    """
    Load typed features from a vector file (GeoJSON, GeoPackage, Shapefile).

    Parameters
    ----------
    filepath : str
        Path to the file
    height_field : str, optional
        Column holding the elevation
    height_scale : float, optional
        Factor applied to the column value
    layer : str, optional
        Layer name for multi-layer files
    use_z : bool, optional
        Take the elevation of 3D LineStrings from their first vertex

    Returns
    -------
    list of GeoFeature
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"File not found: {filepath}")
    gdf = gpd.read_file(filepath, layer=layer) if layer else gpd.read_file(filepath)
    return features_from_geodataframe(gdf, height_field, height_scale, use_z)


def features_from_source(source, height_field=None, height_scale=None):
    """
    Load the features of a registered DataSource.

    Parameters
    ----------
    source : DataSource
        Source to load
    height_field : str, optional
        Overrides the source's elevation property
    height_scale : float, optional
        Overrides the source's scale factor

    Returns
    -------
    list of GeoFeature
    """
    if not isinstance(source, DataSource):
        raise ValueError("source must be a DataSource")
    field = height_field or source.height_field
    scale = source.height_scale if height_scale is None else height_scale
    logger.info(f"Loading source {source.id}: field={field}, scale={scale}")
    return features_from_geojson(source.load(), field, scale)


def load_data_sources(config=None, loaders=None):
    """
    Build the registry of feature sources.

    Parameters
    ----------
    config : dict, optional
        Mapping of source id to ``name``, ``height_field`` and
        ``height_scale``. Defaults to ``DATA_SOURCES``.
    loaders : dict, optional
        Mapping of source id to a zero-argument callable returning the
        GeoJSON-like collection of that source

    Returns
    -------
    dict
        DataSource objects keyed by id, in configuration order
    """
    config = DATA_SOURCES if config is None else config
    loaders = loaders or {}
    sources = {}
    for source_id, settings in config.items():
        sources[source_id] = DataSource(source_id, settings.get('name', source_id),
                                        settings.get('height_field'),
                                        settings.get('height_scale', 1.0),
                                        loader=loaders.get(source_id))
    unknown = set(loaders) - set(sources)
    if unknown:
        warnings.warn(f"Loaders given for unknown sources: {sorted(unknown)}")
    return sources


def height_field_from_grid(grid, name=None):
    """
    Build a HeightField from a raw row-major grid.

    Parameters
    ----------
    grid : dict
        Mapping with ``width``, ``height`` and ``values`` (row-major,
        ``width * height`` numbers)
    name : str, optional
        Name of the height field

    Returns
    -------
    HeightField
        The grid, or an empty (0, 0) field if the input is malformed
    """
    try:
        width = int(grid['width'])
        height = int(grid['height'])
        values = np.asarray(grid['values'], dtype=np.float64).ravel()
    except (KeyError, TypeError, ValueError) as e:
        warnings.warn(f"Malformed grid: {e}")
        return HeightField(np.empty((0, 0)), name=name)

    if width < 0 or height < 0 or values.size != width * height:
        warnings.warn(f"Grid of {values.size} values does not match "
                      f"{width}x{height}")
        return HeightField(np.empty((0, 0)), name=name)

    return HeightField(values.reshape(height, width), name=name)


def load_height_field(filepath, band=1, name=None):
    """
    Load a raster band as a HeightField.

    Parameters
    ----------
    filepath : str
        Path to the raster file
    band : int, optional
        Band index to read
    name : str, optional
        Name of the height field; defaults to the file name

    Returns
    -------
    HeightField
        Elevation samples with the raster's affine transform; nodata
        cells become NaN
    """
    with rasterio.open(filepath) as src:
        data = src.read(band).astype(np.float64)
        transform = src.transform
        nodata = src.nodata

    if nodata is not None:
        data[data == nodata] = np.nan
    if name is None:
        name, _ = os.path.splitext(os.path.basename(filepath))
    return HeightField(data, transform=transform, name=name)
