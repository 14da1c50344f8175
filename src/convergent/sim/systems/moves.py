from __future__ import annotations

from enum import Enum
from typing import Dict, List, Tuple, TYPE_CHECKING

from ..core.agent import TRAIT_LEVELS, TraitSet

if TYPE_CHECKING:
    from ..core.rng import DeterministicRng


class Move(str, Enum):
    ASK = "ask"
    CHALLENGE = "challenge"
    BUILD = "build"
    STORY = "story"
    ANALOGY = "analogy"
    DATUM = "datum"
    SYNTHESIZE = "synthesize"
    DECIDE = "decide"


BASE_WEIGHTS: Dict[Move, float] = {
    Move.ASK: 1.0,
    Move.CHALLENGE: 1.0,
    Move.BUILD: 1.0,
    Move.STORY: 0.6,
    Move.ANALOGY: 0.6,
    Move.DATUM: 0.6,
    Move.SYNTHESIZE: 0.8,
    Move.DECIDE: 0.6,
}

_TRAIT_BOOSTS: Dict[Tuple[str, str], Dict[Move, float]] = {
    ("naivety", "high"): {Move.ASK: 0.8, Move.ANALOGY: 0.4},
    ("naivety", "med"): {Move.ASK: 0.3},
    ("direction", "decider"): {Move.DECIDE: 0.8, Move.SYNTHESIZE: 0.5},
    ("direction", "explorer"): {Move.ASK: 0.3, Move.ANALOGY: 0.3},
    ("direction", "wanderer"): {Move.STORY: 0.3, Move.BUILD: 0.2},
    ("rigor", "data"): {Move.DATUM: 0.9},
    ("rigor", "anecdotal"): {Move.STORY: 0.9},
    ("rigor", "balanced"): {Move.BUILD: 0.2},
    ("snark", "high"): {Move.CHALLENGE: 0.8},
    ("snark", "med"): {Move.CHALLENGE: 0.3},
    ("humor", "playful"): {Move.ANALOGY: 0.4, Move.STORY: 0.2},
    ("humor", "dry"): {Move.CHALLENGE: 0.2},
    ("optimism", "high"): {Move.BUILD: 0.4, Move.SYNTHESIZE: 0.2},
    ("optimism", "low"): {Move.CHALLENGE: 0.3},
}

INSTRUCTIONS: Dict[Move, str] = {
    Move.ASK: "Ask one pointed question that would resolve the biggest open uncertainty.",
    Move.CHALLENGE: "Challenge one specific claim a peer made and say what would change your mind.",
    Move.BUILD: "Build on a peer's point: extend it with one concrete step or consequence.",
    Move.STORY: "Share a brief anecdote or example that illustrates your position.",
    Move.ANALOGY: "Offer a short analogy that reframes the disagreement.",
    Move.DATUM: "Cite one plausible figure, study or datum and explain why it matters here.",
    Move.SYNTHESIZE: "Synthesize the positions so far into a single middle-ground statement.",
    Move.DECIDE: "Propose a concrete decision the group could adopt now.",
}


def move_weights(traits: TraitSet) -> List[float]:
    weights = dict(BASE_WEIGHTS)
    for trait in TRAIT_LEVELS:
        for move, boost in _TRAIT_BOOSTS.get((trait, traits.level(trait)), {}).items():
            weights[move] += boost
    return [weights[move] for move in Move]


def choose_move(traits: TraitSet, rng: DeterministicRng) -> Move:
    return rng.weighted_choice(list(Move), move_weights(traits))
