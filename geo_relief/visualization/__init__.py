"""
Visualization functions for terrain meshes and contour bands.

This module is not imported by the package root so that matplotlib is
only loaded when previews are needed.
"""

from .terrain import *
