from __future__ import annotations

import math

from pygame.math import Vector2

ZERO = Vector2()
DOMAIN_MIN = -1.0
DOMAIN_MAX = 1.0
_DOMAIN_SPAN = DOMAIN_MAX - DOMAIN_MIN


def _safe_normalize_xy(x: float, y: float) -> Vector2:
    magnitude_sq = x * x + y * y
    if magnitude_sq < 1e-18:
        return Vector2()
    inv = 1.0 / math.sqrt(magnitude_sq)
    return Vector2(x * inv, y * inv)


def _safe_normalize(vector: Vector2) -> Vector2:
    return _safe_normalize_xy(vector.x, vector.y)


def _set_magnitude(vector: Vector2, magnitude: float) -> Vector2:
    if magnitude <= 0.0:
        return Vector2()
    return _safe_normalize(vector) * magnitude


def _clamp_length_xy_f(x: float, y: float, max_length: float) -> tuple[float, float]:
    if max_length <= 0.0:
        return 0.0, 0.0
    magnitude_sq = x * x + y * y
    max_sq = max_length * max_length
    if magnitude_sq <= max_sq:
        return x, y
    if magnitude_sq <= 1e-18:
        return 0.0, 0.0
    inv = max_length / math.sqrt(magnitude_sq)
    return x * inv, y * inv


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))


def wrap_coordinate(value: float) -> float:
    """Map a coordinate onto [-1, 1) so leaving one edge re-enters at the other."""
    if not math.isfinite(value):
        return 0.0
    wrapped = (value - DOMAIN_MIN) % _DOMAIN_SPAN + DOMAIN_MIN
    # float modulo can land exactly on the upper edge for tiny negatives
    if wrapped >= DOMAIN_MAX:
        wrapped = DOMAIN_MIN
    return wrapped


def distance_sq(a: Vector2, b: Vector2) -> float:
    dx = a.x - b.x
    dy = a.y - b.y
    return dx * dx + dy * dy
