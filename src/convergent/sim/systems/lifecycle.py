from __future__ import annotations

import string
from typing import Dict, List, Optional, TYPE_CHECKING

from pygame.math import Vector2

from ..core.agent import Agent, AgentState, Persona, WeightProfile
from ..utils.math2d import _clamp_value
from .traits import assign_viewpoints, default_weight_profile, derive_weight_profile, parse_viewpoints, speak_bias

if TYPE_CHECKING:
    from ..core.config import SimulationConfig
    from ..core.field import FlockField
    from ..core.rng import DeterministicRng

PALETTE = [
    "#3b82f6",
    "#8b5cf6",
    "#10b981",
    "#f59e0b",
    "#ef4444",
    "#06b6d4",
    "#ec4899",
    "#84cc16",
    "#f97316",
    "#6366f1",
    "#14b8a6",
    "#eab308",
]

# stance, temperature offset, style
PERSONA_TEMPLATES = [
    ("skeptic", -0.10, "terse and probing, asks for evidence"),
    ("optimist", 0.10, "warm and forward-looking"),
    ("pragmatist", -0.05, "plain-spoken, focused on what works"),
    ("contrarian", 0.15, "provocative, argues the other side"),
    ("synthesizer", 0.0, "measured, looks for common ground"),
    ("storyteller", 0.20, "vivid and concrete, reasons through examples"),
]

MIN_TEMPERATURE = 0.05
MAX_TEMPERATURE = 1.5


def build_agent_pool(config: SimulationConfig, rng: DeterministicRng) -> List[Agent]:
    conversation = config.conversation
    pool_size = conversation.pool_size
    viewpoints = assign_viewpoints(parse_viewpoints(conversation.viewpoints), pool_size, rng)
    order = list(range(len(PERSONA_TEMPLATES)))
    rng.shuffle(order)
    jitter = conversation.temp_jitter
    pool: List[Agent] = []
    for index in range(pool_size):
        letter = string.ascii_uppercase[index]
        stance, offset, style = PERSONA_TEMPLATES[order[index % len(order)]]
        drift = rng.next_range(-jitter, jitter) if jitter > 0.0 else 0.0
        temperature = _clamp_value(conversation.temperature + offset + drift, MIN_TEMPERATURE, MAX_TEMPERATURE)
        pool.append(
            Agent(
                id=letter,
                name=f"Agent {letter}",
                color=PALETTE[index % len(PALETTE)],
                persona=Persona(stance=stance, temperature=temperature, style=style),
                viewpoint=viewpoints[index],
            )
        )
    return pool


def initial_weights(agent: Agent, config: SimulationConfig) -> WeightProfile:
    if config.adaptation.per_agent_weights and agent.viewpoint is not None:
        return derive_weight_profile(agent.traits, config.flock)
    return default_weight_profile(config.flock)


def activate(
    field: FlockField,
    agent: Agent,
    config: SimulationConfig,
    profiles: Dict[str, WeightProfile],
    position: Optional[Vector2] = None,
) -> AgentState:
    """Put a pool member into the field; its weight profile survives earlier departures."""
    weights = profiles.get(agent.id)
    if weights is None:
        weights = initial_weights(agent, config)
        profiles[agent.id] = weights
    return field.add(agent.id, weights, speak_bias=speak_bias(agent.traits), position=position)


def speaking_temperature(agent: Agent, weights: WeightProfile) -> float:
    return _clamp_value(agent.persona.temperature + weights.temp_bias, MIN_TEMPERATURE, MAX_TEMPERATURE)
