"""
Input functions for features and elevation grids.
"""

from .loaders import *
