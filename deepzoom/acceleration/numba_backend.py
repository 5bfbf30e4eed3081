"""
Numba JIT compilation backend for perturbation evaluation.

This module provides a JIT-compiled, data-parallel version of the
perturbation evaluator. Every grid point is evaluated independently against
the same read-only reference orbit.
"""

import time
import numpy as np
import numba
from numba import jit, prange
import logging

from ..core.orbit import PERTURBATION_ESCAPE_RADIUS
from ..core.perturbation import DwellField, IN_SET_DWELL

logger = logging.getLogger(__name__)


@jit(nopython=True, parallel=True, cache=True)
def perturbation_kernel(delta_real, delta_imag, orbit_real, orbit_imag, escape_radius):
    """
    JIT-compiled perturbation kernel.

    Args:
        delta_real: Real parts of the per-point deltas (2D)
        delta_imag: Imaginary parts of the per-point deltas (2D)
        orbit_real: Real parts of the reference orbit (1D)
        orbit_imag: Imaginary parts of the reference orbit (1D)
        escape_radius: Escape threshold on |d_n + Z_n|

    Returns:
        Tuple of (dwell, escaped, iterations)
    """
    height, width = delta_real.shape
    detail = orbit_real.shape[0]
    dwell = np.full((height, width), IN_SET_DWELL, dtype=np.float64)
    escaped = np.zeros((height, width), dtype=np.bool_)
    iterations = np.full((height, width), -1, dtype=np.int32)
    offset = np.log2(np.log2(escape_radius))

    for i in prange(height):
        for j in range(width):
            d0r = delta_real[i, j]
            d0i = delta_imag[i, j]
            dr = d0r
            di = d0i

            for n in range(detail):
                zr = orbit_real[n]
                zi = orbit_imag[n]

                fr = dr + zr
                fi = di + zi
                magnitude = np.sqrt(fr * fr + fi * fi)
                if magnitude > escape_radius:
                    dwell[i, j] = n - np.log2(np.log2(magnitude)) + offset
                    escaped[i, j] = True
                    iterations[i, j] = n
                    break

                # d = 2*Z*d + d^2 + d0
                new_dr = 2.0 * (zr * dr - zi * di) + dr * dr - di * di + d0r
                new_di = 2.0 * (zr * di + zi * dr) + 2.0 * dr * di + d0i
                dr = new_dr
                di = new_di

    return dwell, escaped, iterations


class NumbaAccelerator:
    """Numba-accelerated perturbation backend."""

    def __init__(self):
        """Initialize Numba accelerator."""
        self.version = numba.__version__
        logger.info(f"Numba accelerator ready: {self.version}")

    def perturbation_iteration(self, delta: np.ndarray, orbit: np.ndarray,
                               escape_radius: float = PERTURBATION_ESCAPE_RADIUS) -> DwellField:
        """
        Accelerated perturbation evaluation.

        Args:
            delta: 2D complex array of offsets from the reference point
            orbit: Reference orbit (complex, read only)
            escape_radius: Escape threshold

        Returns:
            DwellField
        """
        delta = np.asarray(delta)
        if delta.ndim != 2:
            raise ValueError(f"Expected a 2D delta grid, got shape {delta.shape}")

        # Separate real and imaginary parts for Numba
        delta_real = np.ascontiguousarray(delta.real, dtype=np.float64)
        delta_imag = np.ascontiguousarray(delta.imag, dtype=np.float64)
        orbit_real = np.ascontiguousarray(orbit.real, dtype=np.float64)
        orbit_imag = np.ascontiguousarray(orbit.imag, dtype=np.float64)

        dwell, escaped, iterations = perturbation_kernel(
            delta_real, delta_imag, orbit_real, orbit_imag, float(escape_radius)
        )
        return DwellField(dwell, escaped, iterations)

    def benchmark_performance(self, delta: np.ndarray, orbit: np.ndarray):
        """
        Time the JIT kernel on a delta grid.

        Args:
            delta: 2D complex delta grid
            orbit: Reference orbit

        Returns:
            Dictionary with timing results
        """
        # Warm up JIT compiler
        self.perturbation_iteration(delta[:8, :8], orbit)

        start_time = time.time()
        self.perturbation_iteration(delta, orbit)
        numba_time = time.time() - start_time

        height, width = delta.shape
        return {
            "time": numba_time,
            "resolution": f"{width}x{height}",
            "pixels_per_second": (width * height) / max(numba_time, 1e-9),
        }


# Global accelerator instance
_numba_accelerator = None


def get_numba_accelerator():
    """Get the global Numba accelerator instance."""
    global _numba_accelerator
    if _numba_accelerator is None:
        _numba_accelerator = NumbaAccelerator()
    return _numba_accelerator
