"""
Integrated terrain pipeline.

Steps, configuration, and the memoizing background runner.
"""

from .pipeline import PipelineStep, PipelineConfig, TerrainPipeline, TerrainResult, PipelineRunner, procedural_projection, geographic_projection

__all__ = ['PipelineStep', 'PipelineConfig', 'TerrainPipeline', 'TerrainResult', 'PipelineRunner', 'procedural_projection', 'geographic_projection']
