import math

import numpy as np
import pytest

from deepzoom.core.orbit import DETAIL, PERTURBATION_ESCAPE_RADIUS, WorldPoint, evaluate_orbit
from deepzoom.core.perturbation import (IN_SET, IN_SET_DWELL, DwellField, continuous_dwell,
                                        perturbation_dwell, perturbation_iteration)

ORIGIN_ORBIT = np.zeros(DETAIL, dtype=np.complex128)


def _delta_grid(reference, width=40, height=30, half_extent=1.5):
    x = np.linspace(-0.75 - half_extent, -0.75 + half_extent, width)
    y = np.linspace(half_extent, -half_extent, height)
    xx, yy = np.meshgrid(x, y)
    return (xx - reference.x) + 1j * (yy - reference.y)


def test_zero_delta_is_in_set(cardioid_orbit):
    assert perturbation_dwell(0j, cardioid_orbit) == IN_SET
    assert perturbation_dwell(0j, ORIGIN_ORBIT) == IN_SET
    assert IN_SET.dwell == IN_SET_DWELL == -1.0
    assert IN_SET.in_set


def test_escaping_point_reports_continuous_dwell():
    result = perturbation_dwell(0.5 + 0j, ORIGIN_ORBIT)
    assert result.escaped
    # 0.5 -> ... -> 10.44 -> 109.5 -> 11990.x exceeds 256 at n = 7
    assert result.iteration == 7
    assert result.iteration - 1 < result.dwell < result.iteration


def test_direct_and_perturbation_escape_radii_differ():
    # Same point, same recurrence, different radii: direct evaluation
    # (radius 2) escapes earlier than perturbation (radius 256).
    direct = evaluate_orbit(WorldPoint(0.5, 0.0))
    perturbed = perturbation_dwell(0.5 + 0j, ORIGIN_ORBIT)
    assert direct.escape_iteration == 4
    assert perturbed.iteration == 7
    assert direct.escape_iteration < perturbed.iteration


def test_escape_radius_is_configurable():
    result = perturbation_dwell(0.5 + 0j, ORIGIN_ORBIT, escape_radius=2.0)
    assert result.iteration == 4


def test_matches_direct_recurrence_with_nonzero_reference(cardioid_orbit):
    reference = WorldPoint(-0.75, 0.0)
    c = WorldPoint(0.5, 0.5)
    result = perturbation_dwell(c - reference, cardioid_orbit)

    # Plain iteration of z^2 + c with the same escape test
    z = c.as_complex()
    expected = None
    for n in range(DETAIL):
        if abs(z) > PERTURBATION_ESCAPE_RADIUS:
            expected = n
            break
        z = z * z + c.as_complex()

    assert expected == 7
    assert result.iteration == expected
    assert result.dwell == pytest.approx(continuous_dwell(n, abs(z)), rel=1e-9)


def test_continuous_dwell_scalar_and_array_agree():
    magnitudes = np.array([300.0, 1000.0, 65536.0])
    array_values = continuous_dwell(5, magnitudes, 256.0)
    for magnitude, value in zip(magnitudes, array_values):
        assert continuous_dwell(5, float(magnitude), 256.0) == pytest.approx(value)
    # |z| = R^2 sits exactly one iteration below n
    assert continuous_dwell(5, 65536.0, 256.0) == pytest.approx(4.0)
    assert continuous_dwell(5, 256.0, 256.0) == pytest.approx(5.0)


def test_vectorised_matches_scalar(cardioid_orbit):
    reference = WorldPoint(-0.75, 0.0)
    delta = _delta_grid(reference)
    field = perturbation_iteration(delta, cardioid_orbit)

    assert field.shape == delta.shape
    scalar = [perturbation_dwell(d, cardioid_orbit) for d in delta.ravel()]
    scalar_iterations = np.array([r.iteration for r in scalar]).reshape(delta.shape)
    scalar_dwell = np.array([r.dwell for r in scalar]).reshape(delta.shape)

    np.testing.assert_array_equal(field.iterations, scalar_iterations)
    np.testing.assert_allclose(field.dwell, scalar_dwell, rtol=0, atol=1e-8)


def test_in_set_points_use_sentinel(cardioid_orbit):
    field = perturbation_iteration(np.array([[0j, 3 + 3j]]), cardioid_orbit)
    assert field.at((0, 0)) == IN_SET
    assert field.dwell[0, 0] == IN_SET_DWELL
    assert field.iterations[0, 0] == -1
    outside = field.at((0, 1))
    assert outside.escaped
    assert outside.iteration == field.iterations[0, 1]
    assert field.in_set_fraction == 0.5


def test_evaluation_does_not_modify_orbit(cardioid_orbit):
    before = cardioid_orbit.copy()
    perturbation_iteration(_delta_grid(WorldPoint(-0.75, 0.0), 8, 6), cardioid_orbit)
    perturbation_dwell(0.1 + 0.1j, cardioid_orbit)
    np.testing.assert_array_equal(cardioid_orbit, before)


def test_dwell_field_fraction_of_empty_field():
    empty = DwellField(np.empty((0, 0)), np.empty((0, 0), dtype=bool),
                       np.empty((0, 0), dtype=np.int32))
    assert empty.in_set_fraction == 0.0
    assert math.isfinite(empty.in_set_fraction)
