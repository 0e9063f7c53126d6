"""
Geo Relief - Terrain surfaces and elevation bands from geospatial data.
"""

__version__ = '0.1.0'

# Import main submodules for easy access
from . import core
from . import io
from . import processing
from . import pipeline
