"""
Processing functions for elevation data.

This module provides procedural height fields, coordinate projection,
contour extraction, triangulation, color mapping and mesh assembly.
"""

from .noise import *
from .projection import *
from .color import *
from .contours import *
from .triangulation import *
from .mesh import *
from .terrain import *
