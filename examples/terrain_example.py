"""
Example script for building and previewing terrain.

This script demonstrates how to:
1. Generate procedural terrain with the pipeline
2. Build a surface and contour bands from point features
3. Visualize both in 3D and in plan view
"""

import os
import sys
import matplotlib.pyplot as plt

# Add the parent directory to sys.path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from geo_relief.core.data_model import ProjectionParams
from geo_relief.io.loaders import features_from_geojson
from geo_relief.pipeline import TerrainPipeline, procedural_projection
from geo_relief.visualization import plot_terrain


CITIES = {
    'type': 'FeatureCollection',
    'features': [
        {'type': 'Feature', 'properties': {'name': 'Beijing', 'population': 21540000},
         'geometry': {'type': 'Point', 'coordinates': [116.40, 39.90]}},
        {'type': 'Feature', 'properties': {'name': 'Tianjin', 'population': 13870000},
         'geometry': {'type': 'Point', 'coordinates': [117.20, 39.13]}},
        {'type': 'Feature', 'properties': {'name': 'Jinan', 'population': 9200000},
         'geometry': {'type': 'Point', 'coordinates': [117.00, 36.65]}},
        {'type': 'Feature', 'properties': {'name': 'Zhengzhou', 'population': 12600000},
         'geometry': {'type': 'Point', 'coordinates': [113.62, 34.75]}},
        {'type': 'Feature', 'properties': {'name': 'Shijiazhuang', 'population': 11000000},
         'geometry': {'type': 'Point', 'coordinates': [114.51, 38.04]}},
    ]
}


def main():
    """Run the terrain example."""
    print("Geo Relief - Example Script for Terrain Visualization")
    print("-----------------------------------------------------")

    print("\n1. Generating procedural terrain...")
    config = {
        'steps': [
            {'name': 'build_height_field', 'params': {'rows': 101, 'cols': 101}},
            {'name': 'extract_contours', 'params': {'n_bands': 10}},
            {'name': 'assemble_mesh'},
            {'name': 'place_markers', 'params': {'count': 50, 'seed': 7}},
        ]
    }
    procedural = TerrainPipeline(procedural_projection(), config).run()
    print(procedural)

    print("\n2. Building a surface from city points...")
    features = features_from_geojson(CITIES, height_field='population',
                                     height_scale=0.000001)
    params = ProjectionParams(116.0, 37.0, 20.0, vertical_scale=1.0, flip_z=True)
    cities = TerrainPipeline(params).run(features=features)
    print(cities)

    print("\n3. Visualizing...")
    plot_terrain(procedural, title='Procedural Terrain')
    plot_terrain(cities, title='City Population Surface')
    plt.show()

    print("\nExample completed successfully!")
    return procedural, cities


if __name__ == "__main__":
    results = main()
