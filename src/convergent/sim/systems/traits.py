from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, TYPE_CHECKING

from ..core.agent import TRAIT_LEVELS, TraitSet, Viewpoint, WeightProfile
from ..utils.math2d import _clamp_value

if TYPE_CHECKING:
    from ..core.config import FlockConfig
    from ..core.rng import DeterministicRng

logger = logging.getLogger(__name__)

WEIGHT_BOUNDS: Dict[str, Tuple[float, float]] = {
    "alignment": (0.0, 3.0),
    "cohesion": (0.0, 3.0),
    "separation": (0.0, 3.0),
    "wander": (0.0, 1.5),
    "temp_bias": (-0.5, 0.5),
    "stubbornness": (0.0, 1.0),
    "volatility": (0.0, 1.0),
}

BASE_STUBBORNNESS = 0.4
BASE_VOLATILITY = 0.5

_LEVEL_ALIASES = {"medium": "med", "mid": "med", "hi": "high", "lo": "low"}

# (trait, level) -> additive nudges on the global weight profile
_TRAIT_WEIGHT_DELTAS: Dict[Tuple[str, str], Dict[str, float]] = {
    ("direction", "decider"): {"cohesion": 0.15, "alignment": 0.10, "wander": -0.10},
    ("direction", "wanderer"): {"wander": 0.25, "cohesion": -0.10},
    ("direction", "explorer"): {"wander": 0.10, "separation": 0.05},
    ("snark", "high"): {"separation": 0.25, "temp_bias": 0.10},
    ("snark", "med"): {"separation": 0.10},
    ("optimism", "high"): {"cohesion": 0.10},
    ("optimism", "low"): {"separation": 0.10, "cohesion": -0.05},
    ("naivety", "high"): {"alignment": 0.15, "stubbornness": -0.15},
    ("naivety", "low"): {"stubbornness": 0.10},
    ("rigor", "data"): {"stubbornness": 0.15, "temp_bias": -0.10},
    ("rigor", "anecdotal"): {"temp_bias": 0.05, "volatility": 0.10},
    ("humor", "playful"): {"temp_bias": 0.15, "volatility": 0.10},
    ("humor", "dry"): {"temp_bias": 0.05},
    ("humor", "light"): {"cohesion": 0.05},
}

_DIRECTION_SPEAK_BIAS = {"decider": 0.10, "explorer": 0.05, "wanderer": -0.05}


def parse_traits(text: str) -> TraitSet:
    values: Dict[str, str] = {}
    for chunk in text.split(","):
        if not chunk.strip():
            continue
        key, sep, raw_value = chunk.partition("=")
        key = key.strip().lower()
        value = raw_value.strip().lower()
        value = _LEVEL_ALIASES.get(value, value)
        if not sep or key not in TRAIT_LEVELS:
            logger.warning("ignoring unknown viewpoint trait %r", chunk.strip())
            continue
        if value not in TRAIT_LEVELS[key]:
            logger.warning("ignoring %s=%r; expected one of %s", key, value, "|".join(TRAIT_LEVELS[key]))
            continue
        values[key] = value
    return TraitSet(**values)


def parse_viewpoint(line: str) -> Optional[Viewpoint]:
    """Parse ``Label[ - description] [| trait=value, ...]``; blank lines give None."""
    head, _, trait_text = line.partition("|")
    head = head.strip()
    if not head:
        return None
    label, _, description = head.partition(" - ")
    label = label.strip()
    if not label:
        return None
    return Viewpoint(label=label, description=description.strip(), traits=parse_traits(trait_text))


def parse_viewpoints(source: str | Iterable[str]) -> List[Viewpoint]:
    lines = source.splitlines() if isinstance(source, str) else list(source)
    viewpoints: List[Viewpoint] = []
    for line in lines:
        viewpoint = parse_viewpoint(line)
        if viewpoint is not None:
            viewpoints.append(viewpoint)
    return viewpoints


def default_weight_profile(flock: FlockConfig) -> WeightProfile:
    return WeightProfile(
        alignment=flock.align_w,
        cohesion=flock.cohere_w,
        separation=flock.separate_w,
        wander=flock.wander_w,
        temp_bias=0.0,
        stubbornness=BASE_STUBBORNNESS,
        volatility=BASE_VOLATILITY,
    )


def derive_weight_profile(traits: TraitSet, flock: FlockConfig) -> WeightProfile:
    profile = default_weight_profile(flock)
    for trait in TRAIT_LEVELS:
        deltas = _TRAIT_WEIGHT_DELTAS.get((trait, traits.level(trait)))
        if not deltas:
            continue
        for name, delta in deltas.items():
            setattr(profile, name, getattr(profile, name) + delta)
    return clamp_weight_profile(profile)


def clamp_weight_profile(profile: WeightProfile) -> WeightProfile:
    for name, (low, high) in WEIGHT_BOUNDS.items():
        setattr(profile, name, _clamp_value(getattr(profile, name), low, high))
    return profile


def speak_bias(traits: TraitSet) -> float:
    return _DIRECTION_SPEAK_BIAS.get(traits.level("direction"), 0.0)


def assign_viewpoints(
    viewpoints: Sequence[Viewpoint], count: int, rng: DeterministicRng
) -> List[Optional[Viewpoint]]:
    """Sample one viewpoint per pool slot, favouring the least-used ones."""
    if not viewpoints:
        return [None] * count
    usage = [0] * len(viewpoints)
    assigned: List[Optional[Viewpoint]] = []
    for _ in range(count):
        index = rng.weighted_index([1.0 / (1 + used) ** 2 for used in usage])
        usage[index] += 1
        assigned.append(viewpoints[index])
    return assigned
