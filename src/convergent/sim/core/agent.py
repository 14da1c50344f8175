from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from pygame.math import Vector2

TRAIT_LEVELS: Dict[str, Tuple[str, ...]] = {
    "humor": ("none", "light", "dry", "playful"),
    "naivety": ("low", "med", "high"),
    "direction": ("wanderer", "explorer", "decider"),
    "rigor": ("anecdotal", "balanced", "data"),
    "optimism": ("low", "med", "high"),
    "snark": ("low", "med", "high"),
}

TRAIT_DEFAULTS: Dict[str, str] = {
    "humor": "none",
    "naivety": "low",
    "direction": "explorer",
    "rigor": "balanced",
    "optimism": "med",
    "snark": "low",
}


@dataclass(frozen=True)
class TraitSet:
    humor: Optional[str] = None
    naivety: Optional[str] = None
    direction: Optional[str] = None
    rigor: Optional[str] = None
    optimism: Optional[str] = None
    snark: Optional[str] = None

    def level(self, trait: str) -> str:
        value = getattr(self, trait)
        return TRAIT_DEFAULTS[trait] if value is None else value

    def explicit(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in TRAIT_LEVELS if getattr(self, name) is not None}


@dataclass(frozen=True)
class Viewpoint:
    label: str
    description: str = ""
    traits: TraitSet = field(default_factory=TraitSet)


@dataclass(frozen=True)
class Persona:
    stance: str
    temperature: float
    style: str


@dataclass(slots=True)
class WeightProfile:
    alignment: float
    cohesion: float
    separation: float
    wander: float
    temp_bias: float = 0.0
    stubbornness: float = 0.4
    volatility: float = 0.5

    def copy(self) -> "WeightProfile":
        return WeightProfile(
            alignment=self.alignment,
            cohesion=self.cohesion,
            separation=self.separation,
            wander=self.wander,
            temp_bias=self.temp_bias,
            stubbornness=self.stubbornness,
            volatility=self.volatility,
        )


@dataclass(frozen=True)
class Agent:
    """Pool member; identity and persona never change during a run."""

    id: str
    name: str
    color: str
    persona: Persona
    viewpoint: Optional[Viewpoint] = None

    @property
    def traits(self) -> TraitSet:
        return self.viewpoint.traits if self.viewpoint is not None else TraitSet()


@dataclass(slots=True)
class AgentState:
    """Per-active-agent record in the field's state table."""

    id: str
    position: Vector2
    velocity: Vector2
    weights: WeightProfile
    speed_multiplier: float = 1.0
    speak_bias: float = 0.0
    heat: float = 0.0


@dataclass(frozen=True)
class TranscriptEntry:
    speaker_id: str
    text: str
    turn: int


@dataclass(frozen=True)
class Vote:
    stance: int = 0
    proposal: str = ""
