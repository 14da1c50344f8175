from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..core.agent import TRAIT_LEVELS, Agent, TranscriptEntry
from .consensus import VOTE_TAG_INSTRUCTION
from .moves import INSTRUCTIONS, Move

_TONE: Dict[Tuple[str, str], str] = {
    ("humor", "light"): "Allow a light touch of humor when it helps.",
    ("humor", "dry"): "Use dry, understated wit sparingly.",
    ("humor", "playful"): "Be playful and a little irreverent.",
    ("naivety", "med"): "You are open to being surprised and say so.",
    ("naivety", "high"): "You are earnest and take claims at face value; ask for basics without embarrassment.",
    ("direction", "wanderer"): "Follow interesting tangents, then tie them back.",
    ("direction", "explorer"): "Probe alternatives before settling.",
    ("direction", "decider"): "Push the group toward a concrete decision.",
    ("rigor", "anecdotal"): "Ground points in lived examples and stories.",
    ("rigor", "balanced"): "Mix evidence with practical judgement.",
    ("rigor", "data"): "Lean on numbers, studies and explicit reasoning.",
    ("optimism", "low"): "You expect things to go wrong and name the risks.",
    ("optimism", "high"): "You look for what could go right.",
    ("snark", "med"): "A little edge is fine.",
    ("snark", "high"): "You are openly snarky toward weak arguments, never toward people.",
}


def tone_guidance(agent: Agent) -> List[str]:
    traits = agent.traits
    lines = []
    for trait in TRAIT_LEVELS:
        line = _TONE.get((trait, traits.level(trait)))
        if line:
            lines.append(line)
    return lines


def build_system_prompt(agent: Agent, goal: str, max_tokens: int) -> str:
    persona = agent.persona
    lines = [
        f"You are {agent.name}, a {persona.stance} voice in a small group discussion.",
        f"Style: {persona.style}.",
    ]
    viewpoint = agent.viewpoint
    if viewpoint is not None:
        described = f"{viewpoint.label}: {viewpoint.description}" if viewpoint.description else viewpoint.label
        lines.append(f"You argue from this viewpoint: {described}.")
    lines.extend(tone_guidance(agent))
    lines.append(f"Shared goal: {goal}")
    lines.append(f"Keep replies short (well under {max_tokens} tokens) and speak in the first person.")
    return "\n".join(lines)


def format_context(entries: Sequence[TranscriptEntry], names: Mapping[str, str]) -> str:
    if not entries:
        return "(nobody nearby has spoken yet)"
    return "\n".join(
        f"[turn {entry.turn}] {names.get(entry.speaker_id, entry.speaker_id)}: {entry.text}" for entry in entries
    )


def build_user_prompt(
    context: Sequence[TranscriptEntry],
    names: Mapping[str, str],
    move: Move,
    peer_name: Optional[str],
    voting: bool,
) -> str:
    parts = [
        "Recent messages from the people near you:",
        format_context(context, names),
        "",
        INSTRUCTIONS[move],
    ]
    if peer_name:
        parts.append(f"Address {peer_name} directly.")
    if voting:
        parts.append(VOTE_TAG_INSTRUCTION)
    return "\n".join(parts)
