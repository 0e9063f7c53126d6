"""Tests for feature and grid loaders."""

import json

import numpy as np
import pytest
import geopandas as gpd
import rasterio
from rasterio.transform import from_origin
from shapely.geometry import Point, LineString

from geo_relief.core.data_model import (
    DataSource, LineStringFeature, PointFeature, PolygonFeature
)
from geo_relief.io.loaders import (
    resolve_elevation, features_from_geojson, features_from_geodataframe,
    load_features, features_from_source, height_field_from_grid, load_height_field,
    load_data_sources
)
from geo_relief.pipeline_config import DATA_SOURCES


class TestResolveElevation:
    """Test elevation lookup in feature properties."""

    def test_scaled_value(self):
        assert resolve_elevation({'population': 2000000}, 'population', 1e-6) == pytest.approx(2.0)

    def test_missing_uses_default(self):
        assert resolve_elevation({}, 'population', 0.5) == 0.5
        assert resolve_elevation({'population': None}, 'population', 2.0) == 2.0

    def test_non_numeric_uses_default(self):
        assert resolve_elevation({'population': 'many'}, 'population', 3.0) == 3.0

    def test_no_field(self):
        assert resolve_elevation({'population': 10}, None, 1.0) == 1.0


class TestGeoJSON:
    """Test loading GeoJSON-like mappings."""

    def test_typed_features(self, cities_collection):
        """Test that each geometry becomes the matching feature type."""
        features = features_from_geojson(cities_collection, 'population', 1e-6)

        assert [type(f) for f in features] == [PointFeature, PointFeature,
                                               LineStringFeature, PolygonFeature]
        assert features[0].elevation == pytest.approx(21.54)
        assert features[0].id == 'bj'
        assert features[0].name == 'Beijing'
        # region has no population
        assert features[3].elevation == pytest.approx(1e-6)

    def test_unsupported_geometry(self):
        data = {'features': [
            {'properties': {}, 'geometry': {'type': 'MultiPoint',
                                            'coordinates': [[0, 0], [1, 1]]}},
            {'properties': {}, 'geometry': {'type': 'Point', 'coordinates': [0, 0]}},
        ]}
        with pytest.warns(UserWarning):
            features = features_from_geojson(data)
        assert len(features) == 1

    def test_missing_and_malformed_geometry(self):
        data = {'features': [
            {'properties': {}},
            {'properties': {}, 'geometry': {'type': 'LineString', 'coordinates': [[0, 0]]}},
        ]}
        with pytest.warns(UserWarning):
            features = features_from_geojson(data)
        assert features == []

    def test_not_a_mapping(self):
        with pytest.warns(UserWarning):
            assert features_from_geojson(['not', 'geojson']) == []

    def test_elevation_from_z(self):
        """Test that 3D contour lines carry their own level."""
        data = {'features': [
            {'properties': {'level': 3},
             'geometry': {'type': 'LineString', 'coordinates': [[0, 0, 50], [1, 1, 50]]}},
        ]}
        assert features_from_geojson(data, 'level', use_z=True)[0].elevation == 50.0
        assert features_from_geojson(data, 'level')[0].elevation == 3.0


class TestGeoDataFrame:
    """Test loading from GeoDataFrames and files."""

    def test_geodataframe(self):
        gdf = gpd.GeoDataFrame({'population': [1000000.0, None], 'name': ['a', 'b']},
                               geometry=[Point(0, 0), LineString([(0, 0), (1, 1)])])
        features = features_from_geodataframe(gdf, 'population', 1e-6)

        assert len(features) == 2
        assert features[0].elevation == pytest.approx(1.0)
        assert features[1].elevation == pytest.approx(1e-6)
        assert features[0].name == 'a'

    def test_missing_column(self):
        gdf = gpd.GeoDataFrame(geometry=[Point(0, 0)])
        with pytest.warns(UserWarning):
            features = features_from_geodataframe(gdf, 'population', 2.0)
        assert features[0].elevation == 2.0

    def test_rejects_plain_dataframe(self):
        with pytest.raises(ValueError):
            features_from_geodataframe({'geometry': []})

    def test_load_features_file(self, tmp_path, cities_collection):
        path = tmp_path / 'cities.geojson'
        path.write_text(json.dumps(cities_collection))
        features = load_features(str(path), 'population', 1e-6)

        assert len(features) == 4
        assert features[1].elevation == pytest.approx(13.87)

    def test_load_features_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_features(str(tmp_path / 'missing.geojson'))

    def test_data_source(self, cities_collection):
        source = DataSource('points', 'City points', 'population', 1e-6,
                            loader=lambda: cities_collection)
        assert features_from_source(source)[1].elevation == pytest.approx(13.87)
        assert features_from_source(source, height_scale=1e-7)[1].elevation == pytest.approx(1.387)

    def test_registry_from_config(self, cities_collection):
        """Test that every configured source becomes a DataSource."""
        sources = load_data_sources(loaders={'points': lambda: cities_collection})

        assert list(sources) == list(DATA_SOURCES)
        points = sources['points']
        assert points.height_field == 'population'
        assert points.height_scale == DATA_SOURCES['points']['height_scale']
        assert features_from_source(points)[0].elevation == pytest.approx(21.54)
        assert sources['lines'].load()['features'] == []

    def test_registry_unknown_loader(self):
        with pytest.warns(UserWarning):
            sources = load_data_sources({'a': {'height_field': 'h'}}, loaders={'b': dict})
        assert sources['a'].height_scale == 1.0
        assert sources['a'].name == 'a'


class TestGrids:
    """Test elevation grid loading."""

    def test_row_major_grid(self):
        field = height_field_from_grid({'width': 3, 'height': 2,
                                        'values': [0, 1, 2, 3, 4, 5]}, name='g')
        assert field.shape == (2, 3)
        assert field.values[1, 0] == 3.0
        assert field.name == 'g'

    def test_size_mismatch(self):
        with pytest.warns(UserWarning):
            field = height_field_from_grid({'width': 3, 'height': 3, 'values': [1, 2]})
        assert field.shape == (0, 0)

    def test_missing_keys(self):
        with pytest.warns(UserWarning):
            field = height_field_from_grid({'values': [1, 2]})
        assert field.shape == (0, 0)

    def test_raster(self, tmp_path):
        """Test that nodata cells are loaded as NaN."""
        path = tmp_path / 'dem.tif'
        data = np.array([[1.0, 2.0], [3.0, -9999.0]], dtype='float32')
        with rasterio.open(path, 'w', driver='GTiff', height=2, width=2, count=1,
                           dtype='float32', nodata=-9999.0,
                           transform=from_origin(100.0, 50.0, 10.0, 10.0)) as dst:
            dst.write(data, 1)

        field = load_height_field(str(path))
        assert field.name == 'dem'
        assert field.values[1, 0] == 3.0
        assert np.isnan(field.values[1, 1])
        assert field.transform.c == 100.0
        assert field.max == 3.0
