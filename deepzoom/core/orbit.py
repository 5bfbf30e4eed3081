"""
Direct orbit evaluation and complex-plane point types.

This module provides the raw Mandelbrot recurrence used to validate and
discover reference points, together with the constants shared by every
evaluation path.
"""

import math
import numpy as np
from typing import Optional, NamedTuple
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)

# Fixed iteration budget for both direct and perturbation evaluation
DETAIL = 64

# Escape radius used to validate reference points (radius^2 = 4)
VALIDATION_ESCAPE_RADIUS = 2.0

# Escape radius used by the perturbation evaluator, distinct from the
# validation radius
PERTURBATION_ESCAPE_RADIUS = 256.0


@dataclass(frozen=True)
class WorldPoint:
    """A coordinate in the complex plane."""
    x: float
    y: float

    def as_complex(self) -> complex:
        """Convert to a Python complex number."""
        return complex(self.x, self.y)

    def distance_to(self, other: 'WorldPoint') -> float:
        """Euclidean distance to another point."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def midpoint(self, other: 'WorldPoint') -> 'WorldPoint':
        """Point halfway between this point and another."""
        return WorldPoint((self.x + other.x) / 2, (self.y + other.y) / 2)

    def __sub__(self, other: 'WorldPoint') -> complex:
        """Offset from another point, as a complex delta."""
        return complex(self.x - other.x, self.y - other.y)

    def __iter__(self):
        return iter((self.x, self.y))

    @classmethod
    def from_complex(cls, z: complex) -> 'WorldPoint':
        return cls(float(z.real), float(z.imag))


class OrbitResult(NamedTuple):
    """
    Result of a direct orbit evaluation.

    escape_iteration is None when the point did not escape within the
    iteration budget. When it escaped at index n, only orbit[:n] is
    meaningful.
    """
    escape_iteration: Optional[int]
    orbit: np.ndarray

    @property
    def escaped(self) -> bool:
        return self.escape_iteration is not None


def evaluate_orbit(c: WorldPoint, max_iter: int = DETAIL,
                   out: Optional[np.ndarray] = None) -> OrbitResult:
    """
    Iterate z_{n+1} = z_n^2 + c starting from z_0 = c, recording the orbit.

    Each z_n is written to the orbit before the escape test |z_n|^2 > 4.

    Args:
        c: Point to evaluate
        max_iter: Maximum number of iterations
        out: Optional complex128 buffer of at least max_iter entries to
            record the orbit into (avoids allocation)

    Returns:
        OrbitResult with the first escape index (or None) and the orbit
    """
    if max_iter <= 0:
        raise ValueError("max_iter must be positive")

    if out is None:
        orbit = np.empty(max_iter, dtype=np.complex128)
    else:
        if out.shape[0] < max_iter:
            raise ValueError(f"Orbit buffer too small: {out.shape[0]} < {max_iter}")
        orbit = out

    radius_sq = VALIDATION_ESCAPE_RADIUS * VALIDATION_ESCAPE_RADIUS
    zr, zi = float(c.x), float(c.y)
    cr, ci = zr, zi

    for n in range(max_iter):
        orbit[n] = complex(zr, zi)

        if zr * zr + zi * zi > radius_sq:
            return OrbitResult(n, orbit)

        # z = z^2 + c
        zr, zi = zr * zr - zi * zi + cr, 2.0 * zr * zi + ci

    return OrbitResult(None, orbit)


def is_valid_reference(c: WorldPoint, max_iter: int = DETAIL) -> bool:
    """Check whether a point stays bounded for the full iteration budget."""
    return evaluate_orbit(c, max_iter).escape_iteration is None
