"""
Terrain pipeline: from elevation input to mesh and contour buffers.

This module implements a step-based pipeline that integrates the package:
1. Elevation input (procedural fbm, raw grid or feature collection)
2. Contour band extraction
3. Mesh assembly (triangulation, colors, normals)
4. Optional marker placement on procedural terrain

Each run recomputes everything from its inputs. ``PipelineRunner`` adds
memoization and runs pipelines off the caller's thread, discarding
results that were superseded while in flight.
"""

import os
import time
import json
import logging
import threading
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple, Union

import numpy as np

from ..core.data_model import HeightField, Mesh, ProjectionParams
from ..pipeline_config import (CONTOUR_CONFIG, PIPELINE_CONFIG, PROJECTION_CONFIG, TERRAIN_CONFIG,
                               PipelineConfigError)
from ..processing.contours import band_colors, trace_contours
from ..processing.mesh import mesh_from_height_field
from ..processing.noise import sample_height_field, scatter_markers
from ..processing.projection import ProjectionTransform
from ..processing.terrain import contours_from_features, mesh_from_features


class PipelineStep:
    """A single step of the pipeline."""

    def __init__(self, name: str, function: Callable, enabled: bool = True, params: Dict = None):
        """
        Initialize a pipeline step.

        Args:
            name: Step name
            function: Callable receiving the pipeline context and the params
            enabled: Whether the step runs
            params: Keyword arguments for the function
        """
        self.name = name
        self.function = function
        self.enabled = enabled
        self.params = params or {}
        self.result = None
        self.execution_time = 0
        self.status = "pending"
        self.error = None

    def execute(self, pipeline_context: Dict) -> Any:
        """
        Run the step.

        Args:
            pipeline_context: Shared pipeline context

        Returns:
            The step result, or None if the step is disabled
        """
        if not self.enabled:
            self.status = "skipped"
            return None

        try:
            self.status = "running"
            start_time = time.time()
            self.result = self.function(pipeline_context, **self.params)
            self.execution_time = time.time() - start_time
            self.status = "completed"
            return self.result

        except Exception as e:
            self.status = "failed"
            self.error = str(e)
            logging.getLogger('geo_relief.pipeline').error(f"Error in step '{self.name}': {e}")
            raise


class PipelineConfig:
    """Pipeline configuration."""

    def __init__(self, config_dict: Dict = None, config_file: str = None):
        """
        Initialize a pipeline configuration.

        Args:
            config_dict: Configuration mapping
            config_file: Path to a JSON configuration file
        """
        self.config = {}

        if config_file:
            if not os.path.exists(config_file):
                raise PipelineConfigError(f"Configuration file not found: {config_file}")
            with open(config_file, 'r') as f:
                try:
                    self.config = json.load(f)
                except json.JSONDecodeError as e:
                    raise PipelineConfigError(f"Invalid configuration file {config_file}: {e}") from e

        if config_dict:
            self.config.update(config_dict)

        steps = self.config.get('steps', [])
        if not isinstance(steps, list) or any('name' not in step for step in steps):
            raise PipelineConfigError("'steps' must be a list of mappings with a 'name'")

    def get_step_config(self, step_name: str) -> Dict:
        """
        Get the parameters of a step.

        Args:
            step_name: Step name

        Returns:
            Step parameters (empty if not configured)
        """
        for step in self.config.get('steps', []):
            if step['name'] == step_name:
                return dict(step.get('params') or {})
        return {}

    def is_step_enabled(self, step_name: str) -> bool:
        """
        Check whether a step is enabled.

        Args:
            step_name: Step name

        Returns:
            True unless the step is configured with ``enabled: False``
        """
        for step in self.config.get('steps', []):
            if step['name'] == step_name:
                return step.get('enabled', True)
        return True

    def get_global_config(self) -> Dict:
        """
        Get the configuration without the step list.

        Returns:
            Global settings
        """
        config = self.config.copy()
        config.pop('steps', None)
        return config


class TerrainResult:
    """Immutable buffers produced by one pipeline run."""

    def __init__(self, mesh, contours, contour_colors, markers=None, height_field=None,
                 steps=()):
        self.mesh = mesh
        self.contours = tuple(contours)
        self.contour_colors = tuple(contour_colors)
        self.markers = markers
        self.height_field = height_field
        # (name, status, execution_time) of every step of the run
        self.steps = tuple(steps)

    def __repr__(self):
        return f"TerrainResult(mesh={self.mesh!r}, contours={len(self.contours)})"


def procedural_projection(scene_size: float = TERRAIN_CONFIG['scene_size']) -> ProjectionParams:
    """
    Projection for fbm terrain: the unit square is centered on the origin
    and scaled to ``scene_size``; heights are already in scene units.
    """
    return ProjectionParams(0.5, 0.5, scene_size, 1.0)


def geographic_projection(config: Optional[Dict] = None) -> ProjectionParams:
    """
    Projection for longitude/latitude sources.

    Args:
        config: Keyword arguments of ``ProjectionParams``. Defaults to
            ``PROJECTION_CONFIG``.

    Returns:
        Projection parameters
    """
    settings = dict(PROJECTION_CONFIG)
    settings.update(config or {})
    try:
        return ProjectionParams(**settings)
    except TypeError as e:
        raise PipelineConfigError(f"Invalid projection configuration: {e}") from e


class TerrainPipeline:
    """Pipeline turning elevation input into a Mesh and ContourBands."""

    STEP_NAMES = ('build_height_field', 'extract_contours', 'assemble_mesh', 'place_markers')

    def __init__(self, projection: ProjectionParams, config: Union[Dict, PipelineConfig, str] = None):
        """
        Initialize a pipeline.

        Args:
            projection: Projection parameters; ``vertical_scale`` must be
                chosen by the caller for the data's elevation units
            config: Pipeline configuration (mapping, PipelineConfig or path
                to a JSON file). Defaults to ``PIPELINE_CONFIG``.
        """
        if not isinstance(projection, ProjectionParams):
            raise PipelineConfigError("projection must be a ProjectionParams instance")
        self.projection = ProjectionTransform(projection)

        if isinstance(config, dict):
            self.config = PipelineConfig(config_dict=config)
        elif isinstance(config, PipelineConfig):
            self.config = config
        elif isinstance(config, str):
            self.config = PipelineConfig(config_file=config)
        else:
            self.config = PipelineConfig(config_dict=PIPELINE_CONFIG)

        self.logger = self._setup_logger()
        self.steps = self._setup_steps()

    def _setup_logger(self) -> logging.Logger:
        """
        Configure the pipeline logger.

        Returns:
            Configured logger
        """
        settings = self.config.get_global_config().get('logger', {})
        level = getattr(logging, str(settings.get('level', 'INFO')).upper(), logging.INFO)

        logger = logging.getLogger('geo_relief.pipeline')
        logger.setLevel(level)

        if settings.get('console', True) and not logger.handlers:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(level)
            formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        return logger

    def _setup_steps(self) -> List[PipelineStep]:
        """Create a fresh set of pipeline steps."""
        functions = {
            'build_height_field': self._build_height_field,
            'extract_contours': self._extract_contours,
            'assemble_mesh': self._assemble_mesh,
            'place_markers': self._place_markers,
        }
        return [
            PipelineStep(name, functions[name],
                         enabled=self.config.is_step_enabled(name),
                         params=self.config.get_step_config(name))
            for name in self.STEP_NAMES
        ]

    def _new_context(self, height_field=None, features=None) -> Dict:
        return {
            'height_field': height_field,  # HeightField input or fbm samples
            'features': features,          # typed features input
            'procedural': False,
            'contours': [],
            'contour_colors': [],
            'mesh': None,
            'markers': None,
        }

    def run(self, height_field: Optional[HeightField] = None,
            features: Optional[List] = None) -> TerrainResult:
        """
        Run all enabled steps on fresh state.

        Args:
            height_field: Grid input
            features: Feature collection input. When neither input is
                given, procedural fbm terrain is generated.

        Returns:
            The buffers of this run
        """
        if height_field is not None and features is not None:
            raise PipelineConfigError("Pass either a height field or features, not both")

        context = self._new_context(height_field, features)
        steps = self._setup_steps()
        stop_on_error = self.config.get_global_config().get('stop_on_error', True)

        self.logger.info("Starting terrain pipeline")
        start_time = time.time()

        for step in steps:
            if not step.enabled:
                step.status = "skipped"
                self.logger.info(f"Step {step.name} disabled")
                continue
            self.logger.info(f"Running step: {step.name}")
            try:
                step.execute(context)
                self.logger.info(f"Step {step.name} finished in {step.execution_time:.2f}s")
            except Exception as e:
                self.logger.error(f"Error in step {step.name}: {e}")
                if stop_on_error:
                    raise

        total_time = time.time() - start_time
        self.logger.info(f"Pipeline finished in {total_time:.2f}s")
        return self._result(context, steps)

    def _result(self, context: Dict, steps: List[PipelineStep]) -> TerrainResult:
        mesh = context['mesh'] if context['mesh'] is not None else Mesh.empty()
        return TerrainResult(mesh, context['contours'], context['contour_colors'],
                             context['markers'], context['height_field'],
                             [(step.name, step.status, step.execution_time) for step in steps])

    def _build_height_field(self, context: Dict, rows: int = TERRAIN_CONFIG['grid_rows'],
                            cols: int = TERRAIN_CONFIG['grid_cols'],
                            frequency: float = TERRAIN_CONFIG['frequency'],
                            amplitude: float = TERRAIN_CONFIG['amplitude']) -> Optional[HeightField]:
        """Generate fbm terrain when no input was given."""
        if context['features'] is not None or context['height_field'] is not None:
            return context['height_field']
        context['height_field'] = sample_height_field(rows, cols, frequency, amplitude)
        context['procedural'] = True
        context['fbm'] = {'frequency': frequency, 'amplitude': amplitude}
        return context['height_field']

    def _extract_contours(self, context: Dict, n_bands: int = CONTOUR_CONFIG['n_bands'],
                          color_bands: bool = CONTOUR_CONFIG['color_bands']) -> List:
        """Contour bands from the grid, or from the LineString features."""
        if context['height_field'] is not None:
            bands = trace_contours(context['height_field'], n_bands, self.projection)
        elif context['features'] is not None:
            bands = contours_from_features(context['features'], self.projection)
        else:
            bands = []
        context['contours'] = bands
        context['contour_colors'] = band_colors(bands) if color_bands else []
        self.logger.info(f"Extracted {len(bands)} contour bands")
        return bands

    def _assemble_mesh(self, context: Dict):
        """Grid mesh for a height field, Delaunay surface for features."""
        if context['height_field'] is not None:
            mesh = mesh_from_height_field(context['height_field'], self.projection)
        elif context['features'] is not None:
            mesh = mesh_from_features(context['features'], self.projection)
        else:
            mesh = None
        context['mesh'] = mesh
        if mesh is not None and mesh.is_point_cloud():
            self.logger.warning("Surface could not be triangulated; rendering points only")
        return mesh

    def _place_markers(self, context: Dict, count: int = TERRAIN_CONFIG['marker_count'],
                       jitter: float = TERRAIN_CONFIG['marker_jitter'],
                       lift: float = TERRAIN_CONFIG['marker_lift'],
                       seed: Optional[int] = TERRAIN_CONFIG['seed']) -> Optional[np.ndarray]:
        """Scatter markers on procedural terrain, in scene coordinates."""
        if not context['procedural']:
            self.logger.info("Markers are only placed on procedural terrain")
            return None
        fbm_params = context['fbm']
        samples = scatter_markers(count, fbm_params['frequency'], fbm_params['amplitude'],
                                  jitter=jitter, lift=lift, seed=seed)
        context['markers'] = self.projection.project_points(samples)
        return context['markers']


class PipelineRunner:
    """
    Runs pipelines off the caller's thread with memoization.

    Every submission gets a generation number. A result is only delivered
    if no newer submission was made meanwhile; superseded results resolve
    to None so stale geometry is never applied.
    """

    def __init__(self, max_workers: int = PIPELINE_CONFIG['num_workers'],
                 cache_size: int = PIPELINE_CONFIG['cache']['max_entries']):
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        self._cache = OrderedDict()
        self._cache_size = cache_size
        self._lock = threading.Lock()
        self._generation = 0
        self._latest = None
        # generation of the last invalidate(); older runs may not touch the cache
        self._invalidated_at = 0
        self.logger = logging.getLogger('geo_relief.pipeline')

    @staticmethod
    def cache_key(source_id: Hashable, height_field: Optional[str], vertical_scale: float,
                  grid_shape: Optional[Tuple[int, int]] = None) -> Tuple:
        """Key identifying a pipeline output."""
        return (source_id, height_field, float(vertical_scale),
                tuple(grid_shape) if grid_shape is not None else None)

    def submit(self, key: Hashable, compute: Callable[[], TerrainResult]) -> Future:
        """
        Schedule a computation, or reuse the cached result for ``key``.

        Args:
            key: Cache key, see :meth:`cache_key`
            compute: Zero-argument callable running the pipeline

        Returns:
            Future resolving to the result, or to None if superseded
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            cached = self._cache.get(key)
            if cached is not None:
                self._cache.move_to_end(key)
            self._latest = cached

        if cached is not None:
            self.logger.info(f"Cache hit for {key}")
            future = Future()
            future.set_result(cached)
            return future

        return self._executor.submit(self._run, generation, key, compute)

    def _run(self, generation: int, key: Hashable, compute: Callable[[], TerrainResult]):
        result = compute()
        with self._lock:
            if generation > self._invalidated_at:
                self._cache[key] = result
                self._cache.move_to_end(key)
                while len(self._cache) > self._cache_size:
                    self._cache.popitem(last=False)
            current = generation == self._generation
            if current:
                self._latest = result
        if not current:
            self.logger.info(f"Discarding stale result for {key}")
            return None
        return result

    def latest(self) -> Optional[TerrainResult]:
        """Result of the newest submission, or None while it is running."""
        with self._lock:
            return self._latest

    def invalidate(self):
        """Discard in-flight results and clear the cache."""
        with self._lock:
            self._generation += 1
            self._invalidated_at = self._generation
            self._cache.clear()
            self._latest = None

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
