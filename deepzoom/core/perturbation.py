"""
Perturbation evaluation of points relative to a reference orbit.

Each point is evaluated through its offset (delta) from the reference point
using the recurrence d_{n+1} = 2*Z_n*d_n + d_n^2 + d_0, so only the small
delta is ever handled in ordinary floating point. Evaluation is a pure
function of (delta, orbit) and can run independently for every point.
"""

import math
import numpy as np
from typing import NamedTuple
import logging

from .orbit import PERTURBATION_ESCAPE_RADIUS

logger = logging.getLogger(__name__)

# Dwell value reported for points that never escape
IN_SET_DWELL = -1.0


class DwellResult(NamedTuple):
    """Outcome of evaluating a single point."""
    escaped: bool
    dwell: float
    iteration: int

    @property
    def in_set(self) -> bool:
        return not self.escaped


IN_SET = DwellResult(False, IN_SET_DWELL, -1)


def continuous_dwell(n, magnitude, escape_radius: float = PERTURBATION_ESCAPE_RADIUS):
    """
    Fractional escape count n - log2(log2(|z|)) + log2(log2(R)).

    Only defined for magnitude > escape_radius > 1. Works on scalars and
    NumPy arrays.
    """
    offset = math.log2(math.log2(escape_radius))
    if isinstance(magnitude, np.ndarray):
        return n - np.log2(np.log2(magnitude)) + offset
    return n - math.log2(math.log2(magnitude)) + offset


def perturbation_dwell(delta: complex, orbit: np.ndarray,
                       escape_radius: float = PERTURBATION_ESCAPE_RADIUS) -> DwellResult:
    """
    Evaluate one point through its delta from the reference point.

    Args:
        delta: Offset of the point from the reference point
        orbit: Reference orbit Z[0..DETAIL), read only
        escape_radius: Escape threshold on |d_n + Z_n|

    Returns:
        DwellResult, or IN_SET if the point does not escape within the orbit
    """
    d0 = complex(delta)
    d = d0
    for n in range(orbit.shape[0]):
        z_ref = complex(orbit[n])
        magnitude = abs(d + z_ref)
        if magnitude > escape_radius:
            return DwellResult(True, continuous_dwell(n, magnitude, escape_radius), n)

        d = 2 * z_ref * d + d * d + d0

    return IN_SET


class DwellField:
    """Container for perturbation results over a grid of points."""

    def __init__(self, dwell: np.ndarray, escaped: np.ndarray, iterations: np.ndarray):
        """
        Initialize dwell field.

        Args:
            dwell: Continuous dwell values (IN_SET_DWELL where not escaped)
            escaped: Boolean array indicating which points escaped
            iterations: Integer escape iteration (-1 where not escaped)
        """
        self.dwell = dwell
        self.escaped = escaped
        self.iterations = iterations
        self.shape = dwell.shape

    def at(self, index) -> DwellResult:
        """Result for a single grid position."""
        if not self.escaped[index]:
            return IN_SET
        return DwellResult(True, float(self.dwell[index]), int(self.iterations[index]))

    @property
    def in_set_fraction(self) -> float:
        return float(np.count_nonzero(~self.escaped)) / max(1, self.escaped.size)


def perturbation_iteration(delta: np.ndarray, orbit: np.ndarray,
                           escape_radius: float = PERTURBATION_ESCAPE_RADIUS) -> DwellField:
    """
    Vectorised perturbation evaluation over an array of deltas.

    Args:
        delta: Complex array of offsets from the reference point
        orbit: Reference orbit, read only
        escape_radius: Escape threshold

    Returns:
        DwellField with the same shape as delta
    """
    d0 = np.asarray(delta, dtype=np.complex128)
    d = d0.copy()

    dwell = np.full(d0.shape, IN_SET_DWELL, dtype=np.float64)
    escaped = np.zeros(d0.shape, dtype=bool)
    iterations = np.full(d0.shape, -1, dtype=np.int32)
    active = np.ones(d0.shape, dtype=bool)

    for n in range(orbit.shape[0]):
        if not np.any(active):
            break

        z_ref = orbit[n]
        magnitude = np.abs(d + z_ref)
        newly = active & (magnitude > escape_radius)

        if np.any(newly):
            dwell[newly] = continuous_dwell(n, magnitude[newly], escape_radius)
            iterations[newly] = n
            escaped |= newly
            active &= ~newly

        da = d[active]
        d[active] = 2 * z_ref * da + da * da + d0[active]

    return DwellField(dwell, escaped, iterations)
