from __future__ import annotations

from enum import Enum
from typing import Mapping, Optional, Sequence, Tuple

from ..core.agent import Vote, WeightProfile
from .consensus import normalize_proposal
from .traits import clamp_weight_profile

NEUTRAL_DECAY = 0.05
_WANDER_SHARE = 0.5
_TEMP_SHARE = 0.2


class Alignment(str, Enum):
    AGREE = "agree"
    DISAGREE = "disagree"
    NEUTRAL = "neutral"


def classify(vote: Vote, winner_key: Optional[str]) -> Alignment:
    if not winner_key or vote.stance == 0:
        return Alignment.NEUTRAL
    if normalize_proposal(vote.proposal) != winner_key:
        return Alignment.NEUTRAL
    return Alignment.AGREE if vote.stance > 0 else Alignment.DISAGREE


def step_size(weights: WeightProfile, adapt_rate: float, relation: Alignment) -> float:
    engagement = 0.5 if relation is Alignment.NEUTRAL else 1.0
    swing = 0.4 + 0.6 * weights.volatility
    resist = 1.0 - weights.stubbornness
    return adapt_rate * engagement * swing * resist


def adapt_weights(weights: WeightProfile, relation: Alignment, adapt_rate: float, defaults: WeightProfile) -> float:
    """Nudge one speaker's profile after a tally; returns the step applied."""
    step = step_size(weights, adapt_rate, relation)
    if relation is Alignment.NEUTRAL:
        weights.alignment += (defaults.alignment - weights.alignment) * NEUTRAL_DECAY
        weights.cohesion += (defaults.cohesion - weights.cohesion) * NEUTRAL_DECAY
        weights.separation += (defaults.separation - weights.separation) * NEUTRAL_DECAY
    else:
        sign = 1.0 if relation is Alignment.AGREE else -1.0
        weights.alignment += sign * step
        weights.cohesion += sign * step
        weights.separation -= sign * step
        weights.wander -= sign * step * _WANDER_SHARE
        weights.temp_bias -= sign * step * _TEMP_SHARE
    clamp_weight_profile(weights)
    return step


def adapt_cluster(
    spoken: Sequence[Tuple[str, Vote]],
    profiles: Mapping[str, WeightProfile],
    winner_key: Optional[str],
    adapt_rate: float,
    defaults: WeightProfile,
) -> None:
    for agent_id, vote in spoken:
        weights = profiles.get(agent_id)
        if weights is None:
            continue
        adapt_weights(weights, classify(vote, winner_key), adapt_rate, defaults)
