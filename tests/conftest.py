"""Shared fixtures for the geo_relief tests."""

import numpy as np
import pytest

from geo_relief.core.data_model import HeightField, ProjectionParams
from geo_relief.processing.projection import ProjectionTransform


@pytest.fixture
def peak_field():
    """4x4 grid with a plateau in the middle."""
    values = np.array([
        [0.0, 0.0, 0.0, 0.0],
        [0.0, 1.0, 1.0, 0.0],
        [0.0, 1.0, 1.0, 0.0],
        [0.0, 0.0, 0.0, 0.0],
    ])
    return HeightField(values, name='peak')


@pytest.fixture
def summit_field():
    """4x4 grid with one raised interior cell as its only maximum."""
    values = np.zeros((4, 4))
    values[1, 2] = 3.0
    return HeightField(values, name='summit')


@pytest.fixture
def pyramid_field():
    """5x5 grid rising linearly to a single summit."""
    idx = np.arange(5)
    rows, cols = np.meshgrid(idx, idx, indexing='ij')
    values = 4.0 - np.abs(rows - 2) - np.abs(cols - 2)
    return HeightField(np.clip(values, 0.0, None), name='pyramid')


@pytest.fixture
def identity_params():
    return ProjectionParams(0.0, 0.0, 1.0, 1.0)


@pytest.fixture
def identity_projection(identity_params):
    return ProjectionTransform(identity_params)


@pytest.fixture
def cities_collection():
    """Small GeoJSON collection mixing every supported geometry."""
    return {
        'type': 'FeatureCollection',
        'features': [
            {'type': 'Feature', 'id': 'bj',
             'properties': {'name': 'Beijing', 'population': 21540000},
             'geometry': {'type': 'Point', 'coordinates': [116.40, 39.90]}},
            {'type': 'Feature', 'id': 'tj',
             'properties': {'name': 'Tianjin', 'population': 13870000},
             'geometry': {'type': 'Point', 'coordinates': [117.20, 39.13]}},
            {'type': 'Feature', 'id': 'route',
             'properties': {'name': 'Route', 'population': 3000000},
             'geometry': {'type': 'LineString',
                          'coordinates': [[116.40, 39.90], [117.20, 39.13]]}},
            {'type': 'Feature', 'id': 'region',
             'properties': {'name': 'Region'},
             'geometry': {'type': 'Polygon',
                          'coordinates': [[[115.0, 38.0], [118.0, 38.0],
                                           [118.0, 41.0], [115.0, 38.0]]]}},
        ]
    }
