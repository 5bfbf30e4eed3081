import numpy as np
import pytest

from deepzoom.core.orbit import DETAIL, WorldPoint, evaluate_orbit, is_valid_reference
from deepzoom.core.reference import OrbitBuffers, ReferenceOrbitManager


class TestOrbitBuffers:
    def test_promote_swaps_and_counts(self):
        buffers = OrbitBuffers(4)
        assert buffers.generation == 0
        buffers.scratch[:] = [1, 2, 3, 4]
        assert buffers.promote() == 1
        np.testing.assert_array_equal(buffers.live, [1, 2, 3, 4])
        assert np.all(buffers.scratch == 0)

    def test_live_is_read_only(self):
        buffers = OrbitBuffers(4)
        with pytest.raises(ValueError):
            buffers.live[0] = 1.0

    def test_scratch_writes_do_not_touch_live(self):
        buffers = OrbitBuffers(4)
        buffers.scratch[:] = 5
        buffers.promote()
        buffers.scratch[:] = 7
        np.testing.assert_array_equal(buffers.live, [5, 5, 5, 5])


def test_starts_at_origin():
    manager = ReferenceOrbitManager()
    assert manager.point == WorldPoint(0.0, 0.0)
    assert manager.generation == 1
    assert manager.orbit.shape == (DETAIL,)
    assert np.all(manager.orbit == 0)


def test_initial_point_is_adopted_when_valid():
    manager = ReferenceOrbitManager(initial=WorldPoint(-0.75, 0.0))
    assert manager.point == WorldPoint(-0.75, 0.0)
    assert manager.generation == 2


def test_valid_target_is_adopted_directly(rng):
    manager = ReferenceOrbitManager(rng=rng)
    target = WorldPoint(-1.0, 0.0)
    assert manager.update_reference(target, 1.0)
    assert manager.point == target
    assert manager.orbit[0] == complex(-1.0, 0.0)
    np.testing.assert_array_equal(manager.orbit, evaluate_orbit(target).orbit)


def test_escaping_target_searches_nearby(rng):
    manager = ReferenceOrbitManager(rng=rng)
    target = WorldPoint(0.3, 0.0)
    radius = manager.search_radius(target, 4.0)
    assert radius == pytest.approx(0.2)

    assert manager.update_reference(target, 4.0)
    assert manager.point != target
    assert manager.point.distance_to(target) <= radius
    assert is_valid_reference(manager.point)


def test_failed_search_keeps_previous_state(rng):
    manager = ReferenceOrbitManager(rng=rng)
    manager.update_reference(WorldPoint(-0.75, 0.0), 1.5)
    point, generation = manager.point, manager.generation
    orbit_bytes = manager.orbit.tobytes()

    assert not manager.update_reference(WorldPoint(10.0, 10.0), 1.5)
    assert manager.point == point
    assert manager.generation == generation
    assert manager.orbit.tobytes() == orbit_bytes


def test_no_samples_means_no_search():
    manager = ReferenceOrbitManager(samples=0)
    assert not manager.update_reference(WorldPoint(0.3, 0.0), 4.0)
    assert manager.point == WorldPoint(0.0, 0.0)


def test_reference_always_valid_after_updates(rng):
    manager = ReferenceOrbitManager(rng=rng)
    for _ in range(50):
        target = WorldPoint(*rng.uniform(-2.0, 1.0, size=2))
        manager.update_reference(target, float(rng.uniform(1e-6, 2.0)))
        assert is_valid_reference(manager.point)
        np.testing.assert_array_equal(manager.orbit, evaluate_orbit(manager.point).orbit)


def test_generation_counts_adoptions(rng):
    manager = ReferenceOrbitManager(rng=rng)
    start = manager.generation
    manager.update_reference(WorldPoint(-1.0, 0.0), 1.0)
    manager.update_reference(WorldPoint(-0.5, 0.0), 1.0)
    assert manager.generation == start + 2


def test_search_radius_bounded_by_distance_and_zoom():
    manager = ReferenceOrbitManager()
    target = WorldPoint(3.0, 4.0)
    assert manager.search_radius(target, 1.0) == pytest.approx(0.05)
    assert manager.search_radius(target, 200.0) == pytest.approx(5.0)


def test_flat_orbit_interleaves_real_and_imaginary():
    manager = ReferenceOrbitManager(initial=WorldPoint(-0.1, 0.2))
    flat = manager.flat_orbit()
    assert flat.shape == (2 * DETAIL,)
    np.testing.assert_array_equal(flat[0::2], manager.orbit.real)
    np.testing.assert_array_equal(flat[1::2], manager.orbit.imag)


def test_rejects_bad_arguments():
    with pytest.raises(ValueError):
        ReferenceOrbitManager(detail=0)
    with pytest.raises(ValueError):
        ReferenceOrbitManager(samples=-1)
