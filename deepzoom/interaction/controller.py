"""
Gesture handling for pan and zoom.

The controller turns raw pointer and wheel samples from a gesture source
into view updates. It is a state machine over the number of tracked
pointers: IDLE (none), DRAGGING (one) and PINCHING (two). Pointers beyond
the second are not tracked.
"""

from enum import Enum
from typing import Dict, Optional, Tuple
from dataclasses import dataclass, field
import logging

from ..core.orbit import WorldPoint

logger = logging.getLogger(__name__)

# Wheel zoom ratio is WHEEL_ZOOM_BASE ** (delta_y / WHEEL_DELTA_UNIT)
WHEEL_ZOOM_BASE = 4.0 / 3.0
WHEEL_DELTA_UNIT = 100.0

MAX_TRACKED_POINTERS = 2


class GesturePhase(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    PINCHING = "pinching"


@dataclass
class GestureState:
    """Tracked pointers and the world-space anchor of the current gesture."""
    pointers: Dict[int, Tuple[float, float]] = field(default_factory=dict)
    drag_start_location: Optional[WorldPoint] = None
    pinch_start_diameter: Optional[float] = None

    @property
    def phase(self) -> GesturePhase:
        count = len(self.pointers)
        if count == 0:
            return GesturePhase.IDLE
        if count == 1:
            return GesturePhase.DRAGGING
        return GesturePhase.PINCHING

    def clear(self) -> None:
        self.pointers.clear()
        self.drag_start_location = None
        self.pinch_start_diameter = None


def wheel_zoom_ratio(delta_y: float) -> float:
    """Zoom ratio for a wheel delta; positive deltas zoom out."""
    return WHEEL_ZOOM_BASE ** (delta_y / WHEEL_DELTA_UNIT)


class InteractionController:
    """Drives a viewer from pointer and wheel events."""

    def __init__(self, viewer):
        """
        Initialize interaction controller.

        Args:
            viewer: Object providing canvas_to_world, translate,
                zoom_around_point and refresh (see DeepZoomViewer)
        """
        self.viewer = viewer
        self.gesture = GestureState()

    @property
    def phase(self) -> GesturePhase:
        return self.gesture.phase

    def _world(self, pointer_id: int) -> WorldPoint:
        x, y = self.gesture.pointers[pointer_id]
        return self.viewer.canvas_to_world(x, y)

    def _pair(self) -> Tuple[WorldPoint, WorldPoint]:
        first, second = list(self.gesture.pointers)[:2]
        return self._world(first), self._world(second)

    def _start_drag(self) -> None:
        (pointer_id,) = self.gesture.pointers
        self.gesture.drag_start_location = self._world(pointer_id)
        self.gesture.pinch_start_diameter = None

    def _start_pinch(self) -> None:
        a, b = self._pair()
        self.gesture.drag_start_location = a.midpoint(b)
        self.gesture.pinch_start_diameter = a.distance_to(b)

    def pointer_down(self, pointer_id: int, x: float, y: float) -> None:
        """Handle a new pointer touching the canvas."""
        pointers = self.gesture.pointers
        if pointer_id in pointers:
            pointers[pointer_id] = (x, y)
            return
        if len(pointers) >= MAX_TRACKED_POINTERS:
            logger.debug(f"Ignoring pointer {pointer_id}: already tracking {len(pointers)}")
            return

        pointers[pointer_id] = (x, y)
        if self.phase is GesturePhase.DRAGGING:
            self._start_drag()
        else:
            self._start_pinch()
        logger.debug(f"Pointer {pointer_id} down -> {self.phase.value}")

    def pointer_move(self, pointer_id: int, x: float, y: float) -> None:
        """Handle movement of a tracked pointer."""
        if pointer_id not in self.gesture.pointers:
            return
        self.gesture.pointers[pointer_id] = (x, y)
        anchor = self.gesture.drag_start_location

        if self.phase is GesturePhase.DRAGGING:
            current = self._world(pointer_id)
            self.viewer.translate(anchor.x - current.x, anchor.y - current.y, refresh=False)

        elif self.phase is GesturePhase.PINCHING:
            a, b = self._pair()
            mid = a.midpoint(b)
            self.viewer.translate(anchor.x - mid.x, anchor.y - mid.y, refresh=False)

            current_diameter = a.distance_to(b)
            if current_diameter > 0:
                if not self.gesture.pinch_start_diameter:
                    # Pinch began with coincident pointers; measure from here
                    self.gesture.pinch_start_diameter = current_diameter
                else:
                    ratio = self.gesture.pinch_start_diameter / current_diameter
                    self.viewer.zoom_around_point(anchor, ratio, refresh=False)

        self.viewer.refresh(anchor)

    def pointer_up(self, pointer_id: int) -> None:
        """Handle a pointer lifting off the canvas."""
        if self.gesture.pointers.pop(pointer_id, None) is None:
            return

        if self.phase is GesturePhase.DRAGGING:
            self._start_drag()
        elif self.phase is GesturePhase.IDLE:
            self.gesture.clear()
        logger.debug(f"Pointer {pointer_id} up -> {self.phase.value}")

    def pointer_cancel(self, pointer_id: int) -> None:
        """Handle a cancelled pointer; treated as lifted."""
        self.pointer_up(pointer_id)

    def wheel(self, x: float, y: float, delta_y: float) -> None:
        """Zoom around the world point under the cursor."""
        anchor = self.viewer.canvas_to_world(x, y)
        self.viewer.zoom_around_point(anchor, wheel_zoom_ratio(delta_y), refresh=False)
        self.viewer.refresh(anchor)
