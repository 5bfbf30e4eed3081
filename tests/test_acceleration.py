import subprocess
import sys

import numpy as np
import pytest

from deepzoom.acceleration.multiprocessing import (MultiprocessingAccelerator, TileResult,
                                                   assemble_tiles, create_tile_grid,
                                                   get_optimal_process_count,
                                                   process_perturbation_tile)
from deepzoom.acceleration.numba_backend import get_numba_accelerator
from deepzoom.core.orbit import WorldPoint
from deepzoom.core.perturbation import IN_SET_DWELL, perturbation_iteration

REFERENCE = WorldPoint(-0.75, 0.0)


@pytest.fixture
def delta():
    x = np.linspace(-2.25, 0.75, 48)
    y = np.linspace(1.2, -1.2, 36)
    xx, yy = np.meshgrid(x, y)
    return (xx - REFERENCE.x) + 1j * (yy - REFERENCE.y)


def _assert_fields_agree(field, expected):
    assert field.shape == expected.shape
    np.testing.assert_array_equal(field.iterations, expected.iterations)
    np.testing.assert_array_equal(field.escaped, expected.escaped)
    np.testing.assert_allclose(field.dwell, expected.dwell, rtol=0, atol=1e-8)
    assert np.all(field.dwell[~field.escaped] == IN_SET_DWELL)


class TestNumbaBackend:
    def test_matches_numpy(self, delta, cardioid_orbit):
        field = get_numba_accelerator().perturbation_iteration(delta, cardioid_orbit)
        _assert_fields_agree(field, perturbation_iteration(delta, cardioid_orbit))

    def test_rejects_non_grid_input(self, cardioid_orbit):
        with pytest.raises(ValueError):
            get_numba_accelerator().perturbation_iteration(np.zeros(5, dtype=complex),
                                                           cardioid_orbit)

    def test_accelerator_is_shared(self):
        assert get_numba_accelerator() is get_numba_accelerator()

    def test_benchmark_reports_resolution(self, delta, cardioid_orbit):
        stats = get_numba_accelerator().benchmark_performance(delta, cardioid_orbit)
        assert stats["resolution"] == "48x36"
        assert stats["pixels_per_second"] > 0


class TestTiles:
    def test_grid_covers_image_exactly(self):
        tiles = create_tile_grid(100, 50, 32)
        assert len(tiles) == 8
        coverage = np.zeros((50, 100), dtype=int)
        for tile in tiles:
            tile.slice_of(coverage)[...] += 1
        assert np.all(coverage == 1)
        assert tiles[-1].width == 4 and tiles[-1].height == 18

    def test_invalid_tile_size(self):
        with pytest.raises(ValueError):
            create_tile_grid(10, 10, 0)

    def test_assemble_places_tiles_by_id(self, delta, cardioid_orbit):
        tiles = create_tile_grid(48, 36, 16)
        results = [process_perturbation_tile((t.tile_id, t.slice_of(delta), cardioid_orbit, 256.0))
                   for t in reversed(tiles)]
        assert all(isinstance(r, TileResult) for r in results)

        field = assemble_tiles(tiles, results, 48, 36)
        _assert_fields_agree(field, perturbation_iteration(delta, cardioid_orbit))


def test_multiprocessing_matches_numpy(delta, cardioid_orbit):
    accelerator = MultiprocessingAccelerator(num_processes=2, tile_size=16)
    field = accelerator.perturbation_iteration(delta, cardioid_orbit)
    _assert_fields_agree(field, perturbation_iteration(delta, cardioid_orbit))


def test_optimal_process_count_is_positive():
    assert get_optimal_process_count() >= 1


NUMBA_THEN_POOL = """
import numpy as np
from deepzoom.acceleration.multiprocessing import MultiprocessingAccelerator
from deepzoom.acceleration.numba_backend import get_numba_accelerator
from deepzoom.core.orbit import WorldPoint, evaluate_orbit

orbit = evaluate_orbit(WorldPoint(-0.75, 0.0)).orbit
x, y = np.meshgrid(np.linspace(-1.5, 1.5, 32), np.linspace(1.0, -1.0, 24))
delta = x + 1j * y
get_numba_accelerator().perturbation_iteration(delta, orbit)
MultiprocessingAccelerator(num_processes=2, tile_size=16).perturbation_iteration(delta, orbit)
print("done")
"""


def test_process_exits_after_numba_then_multiprocessing():
    result = subprocess.run([sys.executable, "-c", NUMBA_THEN_POOL],
                            capture_output=True, text=True, timeout=300)
    assert result.returncode == 0, result.stderr
    assert "done" in result.stdout
