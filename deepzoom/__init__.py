"""
Interactive deep-zoom Mandelbrot rendering.

This library renders the Mandelbrot set at extreme magnification by
evaluating every point as a small perturbation of a single reference orbit,
so only ordinary floating point is needed per point.

Key Features:
- Reference orbit selection that stays valid as the view moves
- Perturbation evaluation with continuous dwell, in NumPy, Numba or
  multiprocessing backends
- Canvas/view/world coordinate pipeline with fixed-point zoom
- Pointer and wheel gesture handling (drag, pinch, wheel zoom)

Example usage:
    >>> from deepzoom import DeepZoomViewer, RenderConfig
    >>> viewer = DeepZoomViewer(RenderConfig(width=640, height=480))
    >>> viewer.set(-0.7436, 0.1318, 1e-3)
    >>> image = viewer.render("seahorse.png")
"""

__version__ = "1.0.0"
__author__ = "deepzoom developers"

from deepzoom.core.orbit import DETAIL, WorldPoint, evaluate_orbit
from deepzoom.core.transforms import ViewState, CanvasSize
from deepzoom.core.reference import ReferenceOrbitManager
from deepzoom.core.perturbation import perturbation_dwell, DwellResult, IN_SET
from deepzoom.interaction.controller import InteractionController, GesturePhase
from deepzoom.rendering.coloring import ColoringEngine, PeriodicPalette
from deepzoom.rendering.frame import RenderFrame
from deepzoom.io.config import ConfigManager

# Main API classes
from deepzoom.api import DeepZoomViewer, DeepZoomRenderer, RenderConfig

__all__ = [
    "DeepZoomViewer",
    "DeepZoomRenderer",
    "RenderConfig",
    "DETAIL",
    "WorldPoint",
    "evaluate_orbit",
    "ViewState",
    "CanvasSize",
    "ReferenceOrbitManager",
    "perturbation_dwell",
    "DwellResult",
    "IN_SET",
    "InteractionController",
    "GesturePhase",
    "ColoringEngine",
    "PeriodicPalette",
    "RenderFrame",
    "ConfigManager",
]
