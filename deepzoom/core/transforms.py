"""
Coordinate mappings between canvas, view, and world space.

Canvas space is measured in pixels with Y growing downward. View space is
centered on the canvas midpoint, normalized by the shorter canvas dimension
and scaled by 2*zoom, with Y growing upward. World space is view space
translated by the view center.
"""

import numpy as np
from typing import Tuple
from dataclasses import dataclass
import logging

from .orbit import WorldPoint

logger = logging.getLogger(__name__)


@dataclass
class ViewState:
    """Center and zoom of the current view."""
    center_x: float = -0.75
    center_y: float = 0.0
    zoom: float = 1.5

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate view parameters."""
        if not self.zoom > 0:
            raise ValueError(f"zoom must be positive, got {self.zoom}")

    @property
    def center(self) -> WorldPoint:
        return WorldPoint(self.center_x, self.center_y)


@dataclass(frozen=True)
class CanvasSize:
    """Canvas extent in pixels."""
    width: int
    height: int

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Width and height must be positive")

    @property
    def shorter(self) -> int:
        return min(self.width, self.height)

    @property
    def midpoint(self) -> Tuple[float, float]:
        return self.width / 2, self.height / 2


def canvas_to_view(canvas_pos: Tuple[float, float], canvas_size: CanvasSize,
                   view: ViewState) -> Tuple[float, float]:
    """Map a canvas pixel position to view coordinates."""
    x, y = canvas_pos
    mid_x, mid_y = canvas_size.midpoint
    scale = 2 * view.zoom / canvas_size.shorter
    return (x - mid_x) * scale, (mid_y - y) * scale


def view_to_world(view_pos: Tuple[float, float], view: ViewState) -> WorldPoint:
    """Translate view coordinates by the view center."""
    vx, vy = view_pos
    return WorldPoint(vx + view.center_x, vy + view.center_y)


def canvas_to_world(canvas_pos: Tuple[float, float], canvas_size: CanvasSize,
                    view: ViewState) -> WorldPoint:
    """Map a canvas pixel position straight to the complex plane."""
    return view_to_world(canvas_to_view(canvas_pos, canvas_size, view), view)


def world_to_canvas(p: WorldPoint, canvas_size: CanvasSize,
                    view: ViewState) -> Tuple[float, float]:
    """Inverse of canvas_to_world."""
    mid_x, mid_y = canvas_size.midpoint
    scale = canvas_size.shorter / (2 * view.zoom)
    return (mid_x + (p.x - view.center_x) * scale,
            mid_y - (p.y - view.center_y) * scale)


def canvas_to_clip(canvas_pos: Tuple[float, float],
                   canvas_size: CanvasSize) -> Tuple[float, float]:
    """Map a canvas pixel position to clip coordinates in [-1, 1], Y up."""
    x, y = canvas_pos
    return 2 * x / canvas_size.width - 1, 1 - 2 * y / canvas_size.height


def zoom_around_point(view: ViewState, p: WorldPoint, zoom_ratio: float) -> None:
    """
    Zoom the view so that world point p keeps its screen position.

    Args:
        view: View state to update in place
        p: World point that stays fixed on screen
        zoom_ratio: Multiplier applied to zoom (< 1 zooms in)
    """
    if not zoom_ratio > 0:
        raise ValueError(f"zoom_ratio must be positive, got {zoom_ratio}")

    vx = p.x - view.center_x
    vy = p.y - view.center_y
    view.center_x += (1 - zoom_ratio) * vx
    view.center_y += (1 - zoom_ratio) * vy
    view.zoom *= zoom_ratio


def _clip_scale(view: ViewState, canvas_size: CanvasSize) -> Tuple[float, float]:
    # Half-extent of the view along each axis in world units
    return (view.zoom * canvas_size.width / canvas_size.shorter,
            view.zoom * canvas_size.height / canvas_size.shorter)


def view_transform(view: ViewState, canvas_size: CanvasSize) -> np.ndarray:
    """
    Affine matrix mapping clip coordinates (u, v, 1) to world coordinates.

    Args:
        view: Current view state
        canvas_size: Canvas extent, used for the aspect ratio

    Returns:
        3x3 float64 matrix
    """
    sx, sy = _clip_scale(view, canvas_size)
    return np.array([
        [sx, 0.0, view.center_x],
        [0.0, sy, view.center_y],
        [0.0, 0.0, 1.0],
    ], dtype=np.float64)


def reference_offset_transform(view: ViewState, canvas_size: CanvasSize,
                               reference: WorldPoint) -> np.ndarray:
    """
    Affine matrix mapping clip coordinates to the offset from the reference point.

    Same scale as view_transform but translated by (center - reference), so
    the perturbation delta is produced directly.
    """
    sx, sy = _clip_scale(view, canvas_size)
    return np.array([
        [sx, 0.0, view.center_x - reference.x],
        [0.0, sy, view.center_y - reference.y],
        [0.0, 0.0, 1.0],
    ], dtype=np.float64)


def apply_transform(matrix: np.ndarray, u, v):
    """Apply a 3x3 affine matrix to clip coordinates (scalars or arrays)."""
    x = matrix[0, 0] * u + matrix[0, 1] * v + matrix[0, 2]
    y = matrix[1, 0] * u + matrix[1, 1] * v + matrix[1, 2]
    return x, y
