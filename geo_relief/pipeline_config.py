"""
Configuration for the geo_relief terrain pipeline.

This module defines the default settings for a pipeline that integrates:
1. Procedural or loaded elevation data (height fields and features)
2. Contour band extraction
3. Triangulated, colored and lit mesh assembly
"""

# Procedural terrain settings
TERRAIN_CONFIG = {
    'grid_rows': 201,
    'grid_cols': 201,
    'scene_size': 200.0,   # scene units covered by the grid
    'frequency': 8.0,      # fbm input scale over the unit square
    'amplitude': 28.0,     # fbm output multiplier (scene units)
    'marker_count': 300,
    'marker_jitter': 1.5,  # random vertical offset added to markers
    'marker_lift': 1.2,    # markers float above the surface
    'seed': None
}

# Contour extraction settings
CONTOUR_CONFIG = {
    'n_bands': 10,
    'color_bands': True
}

# Projection settings for geographic sources
PROJECTION_CONFIG = {
    'offset_x': 116.0,
    'offset_y': 35.0,
    'horizontal_scale': 2.0,
    'vertical_scale': 1.0,
    'flip_x': False,
    'flip_z': True  # latitude grows towards -z
}

# Registered feature sources: property holding the elevation and its factor
DATA_SOURCES = {
    'points': {
        'name': 'City points',
        'height_field': 'population',
        'height_scale': 0.000001
    },
    'lines': {
        'name': 'Routes',
        'height_field': 'length_km',
        'height_scale': 0.001
    },
    'polygons': {
        'name': 'Regions',
        'height_field': 'area_km2',
        'height_scale': 0.00001
    },
    'mixed': {
        'name': 'Mixed features',
        'height_field': 'passengers_per_year',
        'height_scale': 0.00000001
    }
}

# Integrated pipeline settings
PIPELINE_CONFIG = {
    'steps': [
        {'name': 'build_height_field', 'enabled': True, 'params': {}},
        {'name': 'extract_contours', 'enabled': True, 'params': {
            'n_bands': CONTOUR_CONFIG['n_bands'],
            'color_bands': CONTOUR_CONFIG['color_bands']
        }},
        {'name': 'assemble_mesh', 'enabled': True, 'params': {}},
        {'name': 'place_markers', 'enabled': False, 'params': {
            'count': TERRAIN_CONFIG['marker_count']
        }}
    ],

    # General settings
    'stop_on_error': True,
    'num_workers': 1,
    'logger': {
        'level': 'INFO',
        'console': True
    },
    'cache': {
        'enabled': True,
        'max_entries': 16
    }
}


# Custom error classes
class GeoReliefError(Exception):
    """Base error for the geo_relief package."""
    pass

class PipelineConfigError(GeoReliefError):
    """Invalid pipeline configuration."""
    pass

class ProjectionError(GeoReliefError):
    """Non-invertible or otherwise invalid projection parameters."""
    pass

class ContourError(GeoReliefError):
    """Invalid contour extraction request."""
    pass

class MeshError(GeoReliefError):
    """Inconsistent mesh buffers."""
    pass
