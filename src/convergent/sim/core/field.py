from __future__ import annotations

import math
from typing import Dict, List, Optional

from pygame.math import Vector2

from .agent import AgentState, WeightProfile
from .config import FlockConfig
from .rng import DeterministicRng
from ..systems import steering
from ..utils.math2d import _clamp_length_xy_f, wrap_coordinate

HEAT_DECAY = 0.92


class FlockField:
    """Kinematic state table for the active agents.

    Owns one :class:`AgentState` per active agent and advances all of them
    together; every acceleration in a tick is computed from the same pre-tick
    snapshot.
    """

    def __init__(self, config: FlockConfig, rng: DeterministicRng):
        self._config = config
        self._rng = rng
        self._states: Dict[str, AgentState] = {}
        self._tick = 0

    @property
    def states(self) -> Dict[str, AgentState]:
        return self._states

    @property
    def tick(self) -> int:
        return self._tick

    def active_ids(self) -> List[str]:
        return list(self._states.keys())

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._states

    def __len__(self) -> int:
        return len(self._states)

    def add(
        self,
        agent_id: str,
        weights: WeightProfile,
        speak_bias: float = 0.0,
        position: Optional[Vector2] = None,
    ) -> AgentState:
        jitter = self._config.speed_jitter
        multiplier = 1.0 + self._rng.next_range(-jitter, jitter) if jitter > 0.0 else 1.0
        state = AgentState(
            id=agent_id,
            position=Vector2(position) if position is not None else self._rng.next_position(),
            velocity=self._rng.next_unit_circle() * (self._config.max_speed * 0.5),
            weights=weights,
            speed_multiplier=multiplier,
            speak_bias=speak_bias,
        )
        self._states[agent_id] = state
        return state

    def remove(self, agent_id: str) -> AgentState:
        return self._states.pop(agent_id)

    def ignite(self, agent_id: str) -> None:
        state = self._states.get(agent_id)
        if state is not None:
            state.heat = 1.0

    def positions(self) -> Dict[str, Vector2]:
        return {agent_id: Vector2(state.position) for agent_id, state in self._states.items()}

    def speed_limit(self, state: AgentState) -> float:
        return self._config.max_speed * state.speed_multiplier

    def step(self) -> None:
        states = list(self._states.values())
        for state in states:
            state.heat *= HEAT_DECAY

        snapshot = [
            steering.BodySnapshot(state.id, Vector2(state.position), Vector2(state.velocity), state.heat)
            for state in states
        ]
        perception = self._config.perception
        accelerations = [
            steering.compute_acceleration(self, state, steering.collect_neighbors(state, snapshot, perception))
            for state in states
        ]

        for state, accel in zip(states, accelerations):
            vel_x = state.velocity.x + accel.x
            vel_y = state.velocity.y + accel.y
            if not (math.isfinite(vel_x) and math.isfinite(vel_y)):
                vel_x, vel_y = 0.0, 0.0
            vel_x, vel_y = _clamp_length_xy_f(vel_x, vel_y, self.speed_limit(state))
            state.velocity.update(vel_x, vel_y)
            state.position.update(
                wrap_coordinate(state.position.x + vel_x),
                wrap_coordinate(state.position.y + vel_y),
            )
        self._tick += 1
