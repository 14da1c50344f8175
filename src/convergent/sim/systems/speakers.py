from __future__ import annotations

from typing import List, Mapping, Sequence, TYPE_CHECKING

from ..utils.math2d import _clamp_value

if TYPE_CHECKING:
    from ..core.rng import DeterministicRng

MAX_SPEAKERS = 3
MIN_SPEAK_PROBABILITY = 0.05
MAX_SPEAK_PROBABILITY = 0.95


def speak_probability(speak_rate: float, bias: float) -> float:
    return _clamp_value(speak_rate + bias, MIN_SPEAK_PROBABILITY, MAX_SPEAK_PROBABILITY)


def select_speakers(
    cluster: Sequence[str],
    speak_bias: Mapping[str, float],
    speak_rate: float,
    rng: DeterministicRng,
    max_speakers: int = MAX_SPEAKERS,
) -> List[str]:
    if not cluster:
        return []
    speakers = [
        agent_id
        for agent_id in cluster
        if rng.chance(speak_probability(speak_rate, speak_bias.get(agent_id, 0.0)))
    ]
    if not speakers:
        speakers = [rng.choice(list(cluster))]
    rng.shuffle(speakers)
    return speakers[: max(1, max_speakers)]
