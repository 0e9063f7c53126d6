"""
Core functionality for Geo Relief.

This module contains the data structures shared by every stage
of the terrain pipeline.
"""

from .data_model import *
