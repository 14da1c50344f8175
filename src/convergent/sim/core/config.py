from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from .presets import DEFAULT_GOAL, DEFAULT_VIEWPOINTS, PRESETS

logger = logging.getLogger(__name__)

MAX_POOL_SIZE = 12


@dataclass
class FlockConfig:
    talk_radius: float = 0.30
    perception: float = 0.45
    max_speed: float = 0.035
    align_w: float = 0.8
    cohere_w: float = 0.6
    separate_w: float = 1.2
    wander_w: float = 0.5
    speed_jitter: float = 0.25
    activity_rate: float = 1.4


@dataclass
class ConversationConfig:
    goal: str = DEFAULT_GOAL
    agent_count: int = 4
    pool_size: int = MAX_POOL_SIZE
    max_turns: int = 10
    max_context_messages: int = 10
    max_tokens: int = 200
    temperature: float = 0.7
    temp_jitter: float = 0.25
    speak_rate: float = 0.6
    join_prob: float = 0.20
    leave_prob: float = 0.10
    turn_delay_ms: int = 200
    model: str = "gpt-4o-mini"
    viewpoints: List[str] = field(default_factory=lambda: list(DEFAULT_VIEWPOINTS))
    voting: bool = True
    consensus_threshold: float = 0.6
    generation_timeout_seconds: float = 60.0
    embedding_similarity: bool = False
    stop_on_similarity: bool = False
    similarity_threshold: float = 0.9


@dataclass
class AdaptationConfig:
    adapt_weights: bool = True
    per_agent_weights: bool = True
    adapt_rate: float = 0.15


@dataclass
class SimulationConfig:
    seed: Optional[int] = None
    config_version: str = "v1"
    flock: FlockConfig = field(default_factory=FlockConfig)
    conversation: ConversationConfig = field(default_factory=ConversationConfig)
    adaptation: AdaptationConfig = field(default_factory=AdaptationConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        return load_config(read_config_file(path))

    def clamped(self) -> "SimulationConfig":
        flock = _clamp_section("flock", self.flock)
        conversation = _clamp_section("conversation", self.conversation)
        adaptation = _clamp_section("adaptation", self.adaptation)
        pool_size = int(_clamp_reported("conversation.pool_size", conversation.pool_size, conversation.agent_count, MAX_POOL_SIZE))
        viewpoints = [line.strip() for line in conversation.viewpoints if line and line.strip()]
        conversation = dataclasses.replace(conversation, pool_size=pool_size, viewpoints=viewpoints)
        return SimulationConfig(
            seed=self.seed,
            config_version=self.config_version,
            flock=flock,
            conversation=conversation,
            adaptation=adaptation,
        )

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


_RANGES: Dict[str, Dict[str, Tuple[float, float]]] = {
    "flock": {
        "talk_radius": (0.05, 2.0),
        "perception": (0.05, 2.0),
        "max_speed": (0.001, 0.2),
        "align_w": (0.0, 3.0),
        "cohere_w": (0.0, 3.0),
        "separate_w": (0.0, 3.0),
        "wander_w": (0.0, 1.5),
        "speed_jitter": (0.0, 0.6),
        "activity_rate": (0.3, 4.0),
    },
    "conversation": {
        "agent_count": (2, MAX_POOL_SIZE),
        "max_turns": (1, 50),
        "max_context_messages": (2, 50),
        "max_tokens": (48, 400),
        "temperature": (0.0, 1.5),
        "temp_jitter": (0.0, 0.8),
        "speak_rate": (0.1, 1.0),
        "join_prob": (0.0, 1.0),
        "leave_prob": (0.0, 1.0),
        "turn_delay_ms": (0, 5000),
        "consensus_threshold": (0.5, 1.0),
        "generation_timeout_seconds": (1.0, 600.0),
        "similarity_threshold": (0.0, 1.0),
    },
    "adaptation": {
        "adapt_rate": (0.0, 1.0),
    },
}

# Form-style names accepted at the top level of a raw config mapping.
_FLAT_KEYS: Dict[str, Tuple[str, str]] = {
    "agentCount": ("conversation", "agent_count"),
    "poolSize": ("conversation", "pool_size"),
    "maxTurns": ("conversation", "max_turns"),
    "maxContextMessages": ("conversation", "max_context_messages"),
    "maxTokens": ("conversation", "max_tokens"),
    "temperature": ("conversation", "temperature"),
    "tempJitter": ("conversation", "temp_jitter"),
    "speakRate": ("conversation", "speak_rate"),
    "joinProb": ("conversation", "join_prob"),
    "leaveProb": ("conversation", "leave_prob"),
    "turnDelayMs": ("conversation", "turn_delay_ms"),
    "model": ("conversation", "model"),
    "goal": ("conversation", "goal"),
    "viewpoints": ("conversation", "viewpoints"),
    "voting": ("conversation", "voting"),
    "consensusThreshold": ("conversation", "consensus_threshold"),
    "generationTimeoutSeconds": ("conversation", "generation_timeout_seconds"),
    "embeddingSimilarity": ("conversation", "embedding_similarity"),
    "stopOnSimilarity": ("conversation", "stop_on_similarity"),
    "similarityThreshold": ("conversation", "similarity_threshold"),
    "talkRadius": ("flock", "talk_radius"),
    "perception": ("flock", "perception"),
    "maxSpeed": ("flock", "max_speed"),
    "alignW": ("flock", "align_w"),
    "cohereW": ("flock", "cohere_w"),
    "separateW": ("flock", "separate_w"),
    "wanderW": ("flock", "wander_w"),
    "speedJitter": ("flock", "speed_jitter"),
    "activityRate": ("flock", "activity_rate"),
    "adaptWeights": ("adaptation", "adapt_weights"),
    "perAgentWeights": ("adaptation", "per_agent_weights"),
    "adaptRate": ("adaptation", "adapt_rate"),
}

_SECTION_TYPES = {
    "flock": FlockConfig,
    "conversation": ConversationConfig,
    "adaptation": AdaptationConfig,
}


def _section_fields(section: str) -> Dict[str, Any]:
    return {f.name: f for f in dataclasses.fields(_SECTION_TYPES[section])}


def _default_of(section: str, name: str) -> Any:
    return getattr(_SECTION_TYPES[section](), name)


def _clamp_reported(label: str, value: float, low: float, high: float) -> float:
    clamped = max(low, min(high, value))
    if clamped != value:
        logger.warning("config %s=%r out of range [%s, %s]; using %r", label, value, low, high, clamped)
    return clamped


def _clamp_section(section: str, values: Any) -> Any:
    changes: Dict[str, Any] = {}
    for name, (low, high) in _RANGES[section].items():
        current = getattr(values, name)
        clamped = _clamp_reported(f"{section}.{name}", current, low, high)
        if isinstance(current, int) and not isinstance(current, bool):
            clamped = int(round(clamped))
        if clamped != current:
            changes[name] = clamped
    return dataclasses.replace(values, **changes) if changes else dataclasses.replace(values)


def _coerce(label: str, value: Any, default: Any) -> Any:
    try:
        if isinstance(default, bool):
            if isinstance(value, str):
                lowered = value.strip().lower()
                if lowered in {"1", "true", "yes", "on"}:
                    return True
                if lowered in {"0", "false", "no", "off"}:
                    return False
                raise ValueError(value)
            return bool(value)
        if isinstance(default, int):
            return int(round(float(value)))
        if isinstance(default, float):
            number = float(value)
            if number != number:
                raise ValueError(value)
            return number
        if isinstance(default, list):
            if isinstance(value, str):
                return [line for line in value.splitlines() if line.strip()]
            return [str(item) for item in value]
        if isinstance(default, str):
            return str(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning("config %s=%r is malformed; using default %r", label, value, default)
        return default
    return value


def _assign(sections: Dict[str, Dict[str, Any]], key: str, value: Any, section: str | None = None) -> None:
    if section is None:
        if key in _FLAT_KEYS:
            section, key = _FLAT_KEYS[key]
        else:
            owners = [name for name in _SECTION_TYPES if key in _section_fields(name)]
            if not owners:
                logger.warning("ignoring unknown config key %r", key)
                return
            section = owners[0]
    elif key in _FLAT_KEYS and _FLAT_KEYS[key][0] == section:
        key = _FLAT_KEYS[key][1]
    if key not in _section_fields(section):
        logger.warning("ignoring unknown config key %s.%s", section, key)
        return
    sections[section][key] = _coerce(f"{section}.{key}", value, _default_of(section, key))


def load_config(raw: Mapping[str, Any] | None) -> SimulationConfig:
    data = dict(raw or {})
    sections: Dict[str, Dict[str, Any]] = {name: {} for name in _SECTION_TYPES}

    preset_name = data.pop("preset", None)
    if preset_name:
        preset = PRESETS.get(str(preset_name))
        if preset is None:
            logger.warning("unknown preset %r; using defaults", preset_name)
        else:
            for key, value in preset.items():
                _assign(sections, key, value)

    seed_raw = data.pop("seed", None)
    seed: Optional[int] = None
    if seed_raw is not None:
        try:
            seed = int(seed_raw)
        except (TypeError, ValueError, OverflowError):
            logger.warning("config seed=%r is malformed; running unseeded", seed_raw)
    config_version = str(data.pop("config_version", "v1"))

    for key, value in data.items():
        if key in _SECTION_TYPES and isinstance(value, Mapping):
            for sub_key, sub_value in value.items():
                _assign(sections, sub_key, sub_value, section=key)
        else:
            _assign(sections, key, value)

    return SimulationConfig(
        seed=seed,
        config_version=config_version,
        flock=FlockConfig(**sections["flock"]),
        conversation=ConversationConfig(**sections["conversation"]),
        adaptation=AdaptationConfig(**sections["adaptation"]),
    ).clamped()


def read_config_file(path: Path) -> Dict[str, Any]:
    data = yaml.safe_load(Path(path).read_text())
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        logger.warning("config file %s does not hold a mapping; using defaults", path)
        return {}
    return dict(data)
