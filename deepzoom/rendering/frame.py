"""
Read-only frame snapshots handed to renderers.

A RenderFrame carries everything a renderer needs for one evaluation pass:
the view and reference-offset matrices and the flattened reference orbit.
Arrays are private read-only copies, so later reference updates never leak
into a pass already in flight.
"""

import numpy as np
from dataclasses import dataclass

from ..core.orbit import WorldPoint
from ..core.transforms import (CanvasSize, ViewState, apply_transform, canvas_to_clip,
                               reference_offset_transform, view_transform)


def _frozen(array: np.ndarray) -> np.ndarray:
    array = np.array(array, dtype=np.float64, copy=True)
    array.flags.writeable = False
    return array


@dataclass(frozen=True)
class RenderFrame:
    """Snapshot of view and reference state for one render pass."""
    transform: np.ndarray
    reference_offset_transform: np.ndarray
    reference_orbit: np.ndarray  # 2*DETAIL interleaved real/imag values
    canvas_size: CanvasSize
    center: WorldPoint
    zoom: float
    reference_point: WorldPoint
    generation: int

    @classmethod
    def capture(cls, view: ViewState, canvas_size: CanvasSize, reference_point: WorldPoint,
                flat_orbit: np.ndarray, generation: int) -> 'RenderFrame':
        """Build a frame from the current view and reference state."""
        return cls(
            transform=_frozen(view_transform(view, canvas_size)),
            reference_offset_transform=_frozen(
                reference_offset_transform(view, canvas_size, reference_point)),
            reference_orbit=_frozen(flat_orbit),
            canvas_size=canvas_size,
            center=view.center,
            zoom=view.zoom,
            reference_point=reference_point,
            generation=generation,
        )

    @property
    def detail(self) -> int:
        return self.reference_orbit.shape[0] // 2

    def orbit(self) -> np.ndarray:
        """Reference orbit as complex samples."""
        return self.reference_orbit[0::2] + 1j * self.reference_orbit[1::2]

    def clip_grid(self):
        """Clip coordinates (u, v) of every pixel center, v pointing up."""
        x = np.arange(self.canvas_size.width) + 0.5
        y = np.arange(self.canvas_size.height) + 0.5
        return canvas_to_clip(np.meshgrid(x, y), self.canvas_size)

    def delta_grid(self) -> np.ndarray:
        """Per-pixel offsets from the reference point, via the offset transform."""
        u, v = self.clip_grid()
        dx, dy = apply_transform(self.reference_offset_transform, u, v)
        return dx + 1j * dy
