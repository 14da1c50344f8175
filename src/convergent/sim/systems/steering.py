from __future__ import annotations

from dataclasses import dataclass
from typing import List, TYPE_CHECKING

from pygame.math import Vector2

from ..core.agent import AgentState
from ..utils.math2d import ZERO, _safe_normalize_xy, _set_magnitude

if TYPE_CHECKING:
    from ..core.field import FlockField

HEAT_THRESHOLD = 0.02
INTEREST_CAP = 0.02
WANDER_CAP = 0.03


@dataclass(slots=True)
class NeighborSample:
    """Pre-tick view of one neighbor, relative to the agent being steered."""

    id: str
    offset: Vector2
    velocity: Vector2
    heat: float
    dist_sq: float


@dataclass(slots=True)
class BodySnapshot:
    id: str
    position: Vector2
    velocity: Vector2
    heat: float


def collect_neighbors(
    state: AgentState, snapshot: List[BodySnapshot], perception: float
) -> List[NeighborSample]:
    radius_sq = perception * perception
    origin = state.position
    neighbors: List[NeighborSample] = []
    for body in snapshot:
        if body.id == state.id:
            continue
        offset_x = body.position.x - origin.x
        offset_y = body.position.y - origin.y
        dist_sq = offset_x * offset_x + offset_y * offset_y
        if dist_sq >= radius_sq:
            continue
        neighbors.append(NeighborSample(body.id, Vector2(offset_x, offset_y), body.velocity, body.heat, dist_sq))
    return neighbors


def compute_acceleration(field: FlockField, state: AgentState, neighbors: List[NeighborSample]) -> Vector2:
    max_speed = field._config.max_speed
    weights = state.weights
    accel = Vector2()
    if neighbors:
        accel += alignment(state, neighbors, max_speed) * weights.alignment
        accel += cohesion(state, neighbors, max_speed) * weights.cohesion
        accel += separation(neighbors, max_speed) * weights.separation
        accel += interest_pull(neighbors, max_speed)
    accel += wander(field, max_speed) * weights.wander
    return accel


def alignment(state: AgentState, neighbors: List[NeighborSample], max_speed: float) -> Vector2:
    sum_x = 0.0
    sum_y = 0.0
    for other in neighbors:
        sum_x += other.velocity.x
        sum_y += other.velocity.y
    inv = 1.0 / len(neighbors)
    mean = Vector2(sum_x * inv, sum_y * inv)
    if mean.length_squared() < 1e-18:
        return ZERO
    return _set_magnitude(mean, max_speed) - state.velocity


def cohesion(state: AgentState, neighbors: List[NeighborSample], max_speed: float) -> Vector2:
    sum_x = 0.0
    sum_y = 0.0
    for other in neighbors:
        sum_x += other.offset.x
        sum_y += other.offset.y
    inv = 1.0 / len(neighbors)
    toward_centroid = _safe_normalize_xy(sum_x * inv, sum_y * inv)
    if toward_centroid.length_squared() == 0.0:
        return ZERO
    return toward_centroid * max_speed - state.velocity


def separation(neighbors: List[NeighborSample], max_speed: float) -> Vector2:
    accum_x = 0.0
    accum_y = 0.0
    for other in neighbors:
        if other.dist_sq < 1e-12:
            continue
        away = _safe_normalize_xy(-other.offset.x, -other.offset.y)
        inv_dist_sq = 1.0 / other.dist_sq
        accum_x += away.x * inv_dist_sq
        accum_y += away.y * inv_dist_sq
    if accum_x * accum_x + accum_y * accum_y < 1e-18:
        return ZERO
    return _set_magnitude(Vector2(accum_x, accum_y), max_speed)


def interest_pull(neighbors: List[NeighborSample], max_speed: float) -> Vector2:
    accum_x = 0.0
    accum_y = 0.0
    for other in neighbors:
        if other.heat <= HEAT_THRESHOLD:
            continue
        toward = _safe_normalize_xy(other.offset.x, other.offset.y)
        accum_x += toward.x * other.heat
        accum_y += toward.y * other.heat
    if accum_x * accum_x + accum_y * accum_y < 1e-18:
        return ZERO
    return _set_magnitude(Vector2(accum_x, accum_y), min(0.6 * max_speed, INTEREST_CAP))


def wander(field: FlockField, max_speed: float) -> Vector2:
    return field._rng.next_unit_circle() * min(max_speed, WANDER_CAP)
