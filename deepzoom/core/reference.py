"""
Reference point selection and maintenance for perturbation rendering.

A single reference orbit is shared by every rendered point. This module keeps
that orbit valid (its point never escapes within DETAIL iterations) and
re-centers it near the region of interest so per-point deltas stay small.
"""

import math
import numpy as np
from typing import Optional
import logging

from .orbit import DETAIL, WorldPoint, evaluate_orbit

logger = logging.getLogger(__name__)

# Maximum number of candidate points tried per reference search
REFERENCE_SEARCH_SAMPLES = 100

# Search radius never exceeds this fraction of the current zoom
REFERENCE_SEARCH_ZOOM_FRACTION = 1.0 / 20.0


class OrbitBuffers:
    """
    Two named orbit buffers with explicit ownership transfer.

    The live buffer is what renderers read. Candidate orbits are written to
    the scratch buffer and only become live through promote(), which swaps
    ownership and bumps the generation counter.
    """

    def __init__(self, detail: int = DETAIL):
        """
        Initialize orbit buffers.

        Args:
            detail: Number of complex samples per orbit
        """
        self.detail = detail
        self._live = np.zeros(detail, dtype=np.complex128)
        self._scratch = np.zeros(detail, dtype=np.complex128)
        self.generation = 0

    @property
    def live(self) -> np.ndarray:
        """Read-only view of the live orbit."""
        view = self._live.view()
        view.flags.writeable = False
        return view

    @property
    def scratch(self) -> np.ndarray:
        """Writable scratch buffer for candidate orbits."""
        return self._scratch

    def promote(self) -> int:
        """Make the scratch buffer live; the old live buffer becomes scratch."""
        self._live, self._scratch = self._scratch, self._live
        self.generation += 1
        return self.generation


class ReferenceState:
    """Current reference point together with its orbit buffers."""

    def __init__(self, point: WorldPoint, buffers: OrbitBuffers):
        self.point = point
        self.buffers = buffers

    @property
    def orbit(self) -> np.ndarray:
        return self.buffers.live

    @property
    def generation(self) -> int:
        return self.buffers.generation


class ReferenceOrbitManager:
    """Owns the reference point and decides when to replace it."""

    def __init__(self, initial: Optional[WorldPoint] = None, detail: int = DETAIL,
                 samples: int = REFERENCE_SEARCH_SAMPLES,
                 rng: Optional[np.random.Generator] = None,
                 initial_zoom: float = 1.0):
        """
        Initialize the reference manager.

        The origin is adopted first since it never escapes. When an initial
        point is given, the reference is then refreshed toward it.

        Args:
            initial: Preferred starting reference point
            detail: Iteration budget and orbit length
            samples: Maximum candidates per search
            rng: Random generator used for candidate sampling
            initial_zoom: Zoom bounding the initial search radius
        """
        if detail <= 0:
            raise ValueError("detail must be positive")
        if samples < 0:
            raise ValueError("samples must be non-negative")

        self.detail = detail
        self.samples = samples
        self.rng = rng if rng is not None else np.random.default_rng()

        buffers = OrbitBuffers(detail)
        origin = WorldPoint(0.0, 0.0)
        evaluate_orbit(origin, detail, out=buffers.scratch)
        buffers.promote()
        self.state = ReferenceState(origin, buffers)

        if initial is not None:
            self.update_reference(initial, initial_zoom)

    @property
    def point(self) -> WorldPoint:
        return self.state.point

    @property
    def orbit(self) -> np.ndarray:
        return self.state.orbit

    @property
    def generation(self) -> int:
        return self.state.generation

    def _try_adopt(self, candidate: WorldPoint) -> bool:
        """Evaluate a candidate into scratch and promote it if it stays bounded."""
        buffers = self.state.buffers
        result = evaluate_orbit(candidate, self.detail, out=buffers.scratch)
        if result.escape_iteration is not None:
            return False

        buffers.promote()
        self.state.point = candidate
        return True

    def search_radius(self, target: WorldPoint, zoom: float) -> float:
        """Radius of the disk sampled around target when target itself escapes."""
        return min(self.state.point.distance_to(target),
                   zoom * REFERENCE_SEARCH_ZOOM_FRACTION)

    def _sample_disk(self, target: WorldPoint, radius: float) -> WorldPoint:
        # sqrt keeps samples uniform over the disk area
        r = radius * math.sqrt(self.rng.random())
        theta = 2 * math.pi * self.rng.random()
        return WorldPoint(target.x + r * math.cos(theta),
                          target.y + r * math.sin(theta))

    def update_reference(self, target: WorldPoint, zoom: float) -> bool:
        """
        Move the reference point to target or a valid point near it.

        Args:
            target: World point the view is focused on
            zoom: Current view zoom, bounding the search radius

        Returns:
            True if a new reference was adopted, False if the previous
            reference was retained
        """
        if self._try_adopt(target):
            logger.debug(f"Adopted reference at target ({target.x}, {target.y})")
            return True

        radius = self.search_radius(target, zoom)
        for attempt in range(self.samples):
            candidate = self._sample_disk(target, radius)
            if self._try_adopt(candidate):
                logger.debug(f"Adopted reference ({candidate.x}, {candidate.y}) "
                             f"after {attempt + 1} samples, radius={radius:.3g}")
                return True

        logger.warning(f"No bounded reference found near ({target.x}, {target.y}) "
                       f"within radius {radius:.3g}; keeping "
                       f"({self.state.point.x}, {self.state.point.y})")
        return False

    def flat_orbit(self) -> np.ndarray:
        """Orbit as 2*detail interleaved real/imaginary float64 values."""
        orbit = self.state.orbit
        return np.column_stack((orbit.real, orbit.imag)).ravel()
