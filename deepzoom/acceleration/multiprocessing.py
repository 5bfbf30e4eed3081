"""
Multiprocessing backend for parallel perturbation evaluation.

This module splits the delta grid into tiles and evaluates each tile in a
separate process. Every process receives its own copy of the reference
orbit, so the orbit is never shared mutably across a pass.
"""

import numpy as np
from typing import List, Optional, Tuple
import multiprocessing as mp
import logging
import time
from dataclasses import dataclass
from concurrent.futures import ProcessPoolExecutor, as_completed

from ..core.orbit import PERTURBATION_ESCAPE_RADIUS
from ..core.perturbation import DwellField, perturbation_iteration

logger = logging.getLogger(__name__)


@dataclass
class TileSpec:
    """Specification for a single tile in parallel rendering."""
    tile_id: int
    x_start: int
    x_end: int
    y_start: int
    y_end: int

    @property
    def width(self) -> int:
        return self.x_end - self.x_start

    @property
    def height(self) -> int:
        return self.y_end - self.y_start

    def slice_of(self, grid: np.ndarray) -> np.ndarray:
        """Extract this tile from a full-size grid."""
        return grid[self.y_start:self.y_end, self.x_start:self.x_end]


@dataclass
class TileResult:
    """Result from processing a single tile."""
    tile_id: int
    dwell: np.ndarray
    escaped: np.ndarray
    iterations: np.ndarray
    processing_time: float


def create_tile_grid(width: int, height: int, tile_size: int = 256) -> List[TileSpec]:
    """
    Create a grid of tiles for parallel processing.

    Args:
        width: Total grid width
        height: Total grid height
        tile_size: Target tile size (points per side)

    Returns:
        List of TileSpec objects
    """
    if tile_size <= 0:
        raise ValueError("tile_size must be positive")

    tiles = []
    tile_id = 0

    for y in range(0, height, tile_size):
        for x in range(0, width, tile_size):
            tiles.append(TileSpec(
                tile_id=tile_id,
                x_start=x,
                x_end=min(x + tile_size, width),
                y_start=y,
                y_end=min(y + tile_size, height),
            ))
            tile_id += 1

    logger.debug(f"Created {len(tiles)} tiles of target size {tile_size}x{tile_size}")
    return tiles


def process_perturbation_tile(args: Tuple[int, np.ndarray, np.ndarray, float]) -> TileResult:
    """
    Evaluate a single tile in a worker process.

    Args:
        args: Tuple of (tile_id, delta_tile, orbit, escape_radius)

    Returns:
        TileResult object
    """
    tile_id, delta_tile, orbit, escape_radius = args
    start_time = time.time()
    field = perturbation_iteration(delta_tile, orbit, escape_radius)
    return TileResult(
        tile_id=tile_id,
        dwell=field.dwell,
        escaped=field.escaped,
        iterations=field.iterations,
        processing_time=time.time() - start_time,
    )


def assemble_tiles(tiles: List[TileSpec], tile_results: List[TileResult],
                   total_width: int, total_height: int) -> DwellField:
    """
    Assemble tile results into a complete dwell field.

    Args:
        tiles: Tile specifications, indexed by tile_id
        tile_results: Results for every tile
        total_width: Total grid width
        total_height: Total grid height

    Returns:
        Complete DwellField
    """
    dwell = np.empty((total_height, total_width), dtype=np.float64)
    escaped = np.empty((total_height, total_width), dtype=bool)
    iterations = np.empty((total_height, total_width), dtype=np.int32)

    for result in tile_results:
        spec = tiles[result.tile_id]
        spec.slice_of(dwell)[...] = result.dwell
        spec.slice_of(escaped)[...] = result.escaped
        spec.slice_of(iterations)[...] = result.iterations

    return DwellField(dwell, escaped, iterations)


class MultiprocessingAccelerator:
    """Multiprocessing-based parallel perturbation evaluation."""

    def __init__(self, num_processes: Optional[int] = None, tile_size: int = 256):
        """
        Initialize multiprocessing accelerator.

        Args:
            num_processes: Number of worker processes (None for CPU count)
            tile_size: Size of tiles for parallel processing
        """
        if num_processes is None:
            self.num_processes = mp.cpu_count()
        else:
            self.num_processes = max(1, num_processes)

        self.tile_size = tile_size
        logger.info(f"Multiprocessing accelerator: {self.num_processes} processes, "
                    f"{tile_size}x{tile_size} tiles")

    def perturbation_iteration(self, delta: np.ndarray, orbit: np.ndarray,
                               escape_radius: float = PERTURBATION_ESCAPE_RADIUS) -> DwellField:
        """
        Evaluate a delta grid using parallel tile-based processing.

        Args:
            delta: 2D complex array of offsets from the reference point
            orbit: Reference orbit (read only)
            escape_radius: Escape threshold

        Returns:
            Complete DwellField
        """
        start_time = time.time()
        height, width = delta.shape
        tiles = create_tile_grid(width, height, self.tile_size)
        orbit = np.array(orbit, dtype=np.complex128)

        tile_args = [(tile.tile_id, np.ascontiguousarray(tile.slice_of(delta)), orbit, escape_radius)
                     for tile in tiles]

        tile_results = []
        # Spawned workers; fork is unsafe once numba threads exist
        context = mp.get_context("spawn")
        with ProcessPoolExecutor(max_workers=self.num_processes, mp_context=context) as executor:
            futures = [executor.submit(process_perturbation_tile, args) for args in tile_args]

            for completed, future in enumerate(as_completed(futures), start=1):
                tile_results.append(future.result())

                if completed % max(1, len(tiles) // 10) == 0:
                    progress = (completed / len(tiles)) * 100
                    logger.debug(f"Completed {completed}/{len(tiles)} tiles ({progress:.1f}%)")

        field = assemble_tiles(tiles, tile_results, width, height)

        total_time = time.time() - start_time
        total_processing_time = sum(tr.processing_time for tr in tile_results)
        logger.info(f"Parallel evaluation complete: {total_time:.2f}s total, "
                    f"{total_processing_time:.2f}s processing time")
        return field


# Global multiprocessing accelerator
_mp_accelerator = None


def get_multiprocessing_accelerator(num_processes=None, tile_size=256):
    """Get the global multiprocessing accelerator instance."""
    global _mp_accelerator
    wanted = num_processes or mp.cpu_count()
    if (_mp_accelerator is None or _mp_accelerator.num_processes != wanted
            or _mp_accelerator.tile_size != tile_size):
        _mp_accelerator = MultiprocessingAccelerator(num_processes, tile_size)
    return _mp_accelerator


def get_optimal_process_count():
    """Get optimal number of processes for perturbation evaluation."""
    # Leave one core free
    return max(1, mp.cpu_count() - 1)
