import math

from pygame.math import Vector2
from pytest import approx

from convergent.sim.utils.math2d import _clamp_length_xy_f, _set_magnitude, distance_sq, wrap_coordinate


def test_wrap_coordinate_reenters_from_opposite_edge():
    assert wrap_coordinate(1.05) == approx(-0.95)
    assert wrap_coordinate(-1.2) == approx(0.8)
    assert wrap_coordinate(0.25) == approx(0.25)


def test_wrap_coordinate_upper_edge_maps_to_lower():
    assert wrap_coordinate(1.0) == approx(-1.0)
    assert -1.0 <= wrap_coordinate(-1e-18) < 1.0


def test_wrap_coordinate_non_finite_resets_to_origin():
    assert wrap_coordinate(math.nan) == 0.0
    assert wrap_coordinate(math.inf) == 0.0


def test_clamp_length_and_set_magnitude():
    x, y = _clamp_length_xy_f(3.0, 4.0, 1.0)
    assert math.hypot(x, y) == approx(1.0)
    assert _clamp_length_xy_f(0.1, 0.0, 1.0) == (0.1, 0.0)
    assert _clamp_length_xy_f(0.1, 0.0, 0.0) == (0.0, 0.0)
    assert _set_magnitude(Vector2(0.0, 0.0), 2.0) == Vector2()
    assert _set_magnitude(Vector2(0.0, 5.0), 2.0).y == approx(2.0)


def test_distance_sq_is_plain_euclidean():
    assert distance_sq(Vector2(-0.9, 0.0), Vector2(0.9, 0.0)) == approx(3.24)
