"""
Main API classes for deep-zoom rendering.

This module provides the high-level interface: a viewer that owns the view
and reference state and reacts to gestures, and a CPU renderer that
evaluates frame snapshots with the best available backend.
"""

import numpy as np
from typing import Optional, Dict, Any, Tuple, Callable, List
from dataclasses import dataclass
from pathlib import Path
import logging
import time

from .core.orbit import (DETAIL, PERTURBATION_ESCAPE_RADIUS, VALIDATION_ESCAPE_RADIUS,
                         WorldPoint)
from .core.transforms import (CanvasSize, ViewState, canvas_to_world, world_to_canvas,
                              zoom_around_point)
from .core.reference import ReferenceOrbitManager
from .core.perturbation import DwellField, perturbation_iteration
from .interaction.controller import InteractionController
from .rendering.coloring import ColoringEngine, ColorRGB
from .rendering.frame import RenderFrame
from .rendering.image_output import ImageExporter, RenderMetadata
from .acceleration.numba_backend import get_numba_accelerator
from .acceleration.multiprocessing import get_multiprocessing_accelerator, get_optimal_process_count
from .io.config import ConfigManager

logger = logging.getLogger(__name__)

BACKENDS = ('auto', 'numpy', 'numba', 'multiprocessing')


@dataclass
class RenderConfig:
    """Configuration for viewing and rendering."""

    # Canvas
    width: int = 800
    height: int = 600

    # Initial view
    center_x: float = -0.75
    center_y: float = 0.0
    zoom: float = 1.5

    # Performance
    backend: str = 'auto'
    num_processes: Optional[int] = None
    tile_size: int = 256

    # Coloring
    palette: str = 'classic'
    inside_color: Optional[Tuple[float, float, float]] = None

    # Reference search sampling
    seed: Optional[int] = None

    # Output
    save_metadata: bool = True
    save_raw_data: bool = False
    jpeg_quality: int = 95

    def validate(self):
        """Validate configuration parameters."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Width and height must be positive")

        if not self.zoom > 0:
            raise ValueError("zoom must be positive")

        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown backend '{self.backend}'. Available: {', '.join(BACKENDS)}")

        if self.num_processes is not None and self.num_processes < 1:
            raise ValueError("num_processes must be >= 1")

        if self.tile_size < 16:
            raise ValueError("tile_size must be >= 16")

        if self.inside_color is not None and len(self.inside_color) != 3:
            raise ValueError("inside_color must be (r, g, b)")

        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError("jpeg_quality must be between 1 and 100")


class DeepZoomRenderer:
    """CPU renderer evaluating frame snapshots with perturbation."""

    def __init__(self, config: Optional[RenderConfig] = None):
        """
        Initialize renderer.

        Args:
            config: Rendering configuration (uses defaults if None)
        """
        self.config = config or RenderConfig()
        self.config.validate()

        inside_color = ColorRGB(*self.config.inside_color) if self.config.inside_color else None
        self.coloring_engine = ColoringEngine(inside_color)
        self.coloring_engine.get_palette(self.config.palette)
        self.image_exporter = ImageExporter()

        self._setup_accelerators()
        logger.info(f"DeepZoomRenderer initialized: backend={self.config.backend}")

    def _setup_accelerators(self):
        """Setup the acceleration backends the configured mode may use."""
        self.accelerators = {'numba': None, 'multiprocessing': None}

        if self.config.backend in ('auto', 'numba'):
            self.accelerators['numba'] = get_numba_accelerator()

        if self.config.backend in ('auto', 'multiprocessing'):
            num_proc = self.config.num_processes or get_optimal_process_count()
            self.accelerators['multiprocessing'] = get_multiprocessing_accelerator(
                num_proc, self.config.tile_size
            )

    def select_backend(self, total_pixels: int) -> str:
        """Choose the backend for a pass of the given size."""
        if self.config.backend != 'auto':
            return self.config.backend

        # Worker processes only for large frames
        if total_pixels >= 1_000_000 and self.accelerators['multiprocessing']:
            return 'multiprocessing'
        if total_pixels >= 4096 and self.accelerators['numba']:
            return 'numba'
        return 'numpy'

    def evaluate(self, frame: RenderFrame) -> Tuple[DwellField, str]:
        """
        Run the perturbation evaluator for every pixel of a frame.

        Args:
            frame: Snapshot of view and reference state

        Returns:
            Tuple of (dwell field, backend used)
        """
        delta = frame.delta_grid()
        orbit = frame.orbit()
        backend = self.select_backend(delta.size)

        if backend == 'numpy':
            field = perturbation_iteration(delta, orbit, PERTURBATION_ESCAPE_RADIUS)
        else:
            field = self.accelerators[backend].perturbation_iteration(
                delta, orbit, PERTURBATION_ESCAPE_RADIUS
            )
        return field, backend

    def draw(self, frame: RenderFrame) -> np.ndarray:
        """Render a frame to an RGB array with values 0-1."""
        field, _ = self.evaluate(frame)
        return self.coloring_engine.render_color_image(field, self.config.palette)

    def render_frame(self, frame: RenderFrame, output_path: Optional[Path] = None) -> np.ndarray:
        """
        Render a frame and optionally save it.

        Args:
            frame: Snapshot of view and reference state
            output_path: Optional output image path

        Returns:
            RGB image array (0-1 range)
        """
        start_time = time.time()
        field, backend = self.evaluate(frame)
        rgb_image = self.coloring_engine.render_color_image(field, self.config.palette)
        render_time = time.time() - start_time

        logger.info(f"Render complete: {frame.canvas_size.width}x{frame.canvas_size.height} "
                    f"via {backend} in {render_time:.2f}s, "
                    f"{field.in_set_fraction * 100:.1f}% in set")

        if output_path:
            self._save_image(rgb_image, field, frame, Path(output_path), backend, render_time)

        return rgb_image

    def _save_image(self, rgb_image: np.ndarray, field: DwellField, frame: RenderFrame,
                    output_path: Path, backend: str, render_time: float):
        """Save rendered image with metadata."""
        metadata = RenderMetadata(
            center=(frame.center.x, frame.center.y),
            zoom=frame.zoom,
            resolution=(frame.canvas_size.width, frame.canvas_size.height),
            reference_point=(frame.reference_point.x, frame.reference_point.y),
            reference_generation=frame.generation,
            detail=frame.detail,
            validation_escape_radius=VALIDATION_ESCAPE_RADIUS,
            perturbation_escape_radius=PERTURBATION_ESCAPE_RADIUS,
            palette=self.config.palette,
            backend=backend,
            render_time_seconds=render_time,
        )

        self.image_exporter.save_image(
            rgb_image, output_path,
            metadata if self.config.save_metadata else None,
            self.config.jpeg_quality,
        )

        if self.config.save_raw_data:
            self.image_exporter.save_raw_data(field, output_path.with_suffix('.npz'), metadata)


class DeepZoomViewer:
    """Interactive view state, reference orbit and gesture handling."""

    def __init__(self, config: Optional[RenderConfig] = None,
                 renderer: Optional[DeepZoomRenderer] = None,
                 config_manager: Optional[ConfigManager] = None):
        """
        Initialize viewer.

        Args:
            config: Initial view and rendering configuration
            renderer: Renderer used by render(); created on first use if None
            config_manager: Source of bookmarks
        """
        self.config = config or RenderConfig()
        self.config.validate()

        self.view = ViewState(self.config.center_x, self.config.center_y, self.config.zoom)
        self.canvas_size = CanvasSize(self.config.width, self.config.height)
        self.references = ReferenceOrbitManager(
            initial=self.view.center,
            initial_zoom=self.view.zoom,
            rng=np.random.default_rng(self.config.seed),
        )
        self.controller = InteractionController(self)
        self.config_manager = config_manager or ConfigManager()

        self._renderer = renderer
        self._render_callbacks: List[Callable[[RenderFrame], None]] = []
        self.render_requests = 0

    @property
    def renderer(self) -> DeepZoomRenderer:
        if self._renderer is None:
            self._renderer = DeepZoomRenderer(self.config)
        return self._renderer

    @property
    def reference_point(self) -> WorldPoint:
        return self.references.point

    def add_render_callback(self, callback: Callable[[RenderFrame], None]) -> None:
        """Register a callback receiving a fresh frame on every render request."""
        self._render_callbacks.append(callback)

    def remove_render_callback(self, callback: Callable[[RenderFrame], None]) -> None:
        self._render_callbacks.remove(callback)

    def canvas_to_world(self, x: float, y: float) -> WorldPoint:
        """World point under a canvas position."""
        return canvas_to_world((x, y), self.canvas_size, self.view)

    def world_to_canvas(self, p: WorldPoint) -> Tuple[float, float]:
        """Canvas position of a world point."""
        return world_to_canvas(p, self.canvas_size, self.view)

    def frame(self) -> RenderFrame:
        """Snapshot of the current view and reference orbit."""
        return RenderFrame.capture(
            self.view, self.canvas_size, self.references.point,
            self.references.flat_orbit(), self.references.generation,
        )

    def request_render(self) -> None:
        """Hand a fresh frame to every registered callback."""
        self.render_requests += 1
        if not self._render_callbacks:
            return
        frame = self.frame()
        for callback in self._render_callbacks:
            callback(frame)

    def refresh(self, anchor: WorldPoint) -> bool:
        """
        Refresh the reference near anchor, then request a render.

        Returns:
            True if a new reference point was adopted
        """
        adopted = self.references.update_reference(anchor, self.view.zoom)
        self.request_render()
        return adopted

    def translate(self, dx: float, dy: float, refresh: bool = True) -> None:
        """Move the view center by (dx, dy) in world units."""
        self.view.center_x += dx
        self.view.center_y += dy
        if refresh:
            self.refresh(self.view.center)

    def zoom_around_point(self, p: WorldPoint, zoom_ratio: float, refresh: bool = True) -> None:
        """Zoom keeping world point p fixed on screen."""
        zoom_around_point(self.view, p, zoom_ratio)
        if refresh:
            self.refresh(p)

    def set(self, world_x: float, world_y: float, zoom: float) -> None:
        """Jump directly to a location and zoom."""
        if not zoom > 0:
            raise ValueError(f"zoom must be positive, got {zoom}")

        self.view.center_x = float(world_x)
        self.view.center_y = float(world_y)
        self.view.zoom = float(zoom)
        logger.info(f"View set to ({world_x}, {world_y}) zoom={zoom:g}")
        self.refresh(self.view.center)

    def go_to_bookmark(self, name: str) -> None:
        """Jump to a named bookmark."""
        bookmark = self.config_manager.get_bookmark(name)
        self.set(bookmark.x, bookmark.y, bookmark.zoom)

    def resize(self, width: int, height: int) -> None:
        """Change the canvas extent."""
        self.canvas_size = CanvasSize(width, height)
        self.request_render()

    def render(self, output_path: Optional[Path] = None) -> np.ndarray:
        """Render the current view, optionally saving it."""
        return self.renderer.render_frame(self.frame(), output_path)

    def get_exploration_info(self) -> Dict[str, Any]:
        """Get current exploration state information."""
        reference = self.references.point
        return {
            'center': (self.view.center_x, self.view.center_y),
            'zoom': self.view.zoom,
            'canvas': (self.canvas_size.width, self.canvas_size.height),
            'reference_point': (reference.x, reference.y),
            'reference_distance': reference.distance_to(self.view.center),
            'reference_canvas': self.world_to_canvas(reference),
            'reference_generation': self.references.generation,
            'gesture': self.controller.phase.value,
            'detail': DETAIL,
        }
