from convergent.sim.core.agent import Agent, Persona, TranscriptEntry
from convergent.sim.systems.moves import INSTRUCTIONS, Move
from convergent.sim.systems.prompts import build_system_prompt, build_user_prompt, format_context, tone_guidance
from convergent.sim.systems.traits import parse_viewpoint


def _agent(line="Libertarian Right - markets first | humor=dry, snark=high"):
    return Agent(
        id="C",
        name="Agent C",
        color="#10b981",
        persona=Persona(stance="contrarian", temperature=0.85, style="provocative, argues the other side"),
        viewpoint=parse_viewpoint(line),
    )


def test_system_prompt_mentions_persona_viewpoint_and_goal():
    prompt = build_system_prompt(_agent(), "Fund the library?", 200)
    assert "Agent C" in prompt
    assert "contrarian" in prompt
    assert "Libertarian Right: markets first" in prompt
    assert "Fund the library?" in prompt
    assert "200 tokens" in prompt


def test_tone_guidance_follows_traits():
    lines = tone_guidance(_agent())
    assert any("dry" in line for line in lines)
    assert any("snarky" in line for line in lines)


def test_context_formatting():
    names = {"A": "Agent A"}
    entries = [TranscriptEntry(speaker_id="A", text="Hello.", turn=2)]
    assert format_context(entries, names) == "[turn 2] Agent A: Hello."
    assert "nobody" in format_context([], names)


def test_user_prompt_includes_move_and_peer():
    prompt = build_user_prompt([], {}, Move.CHALLENGE, "Agent B", voting=False)
    assert INSTRUCTIONS[Move.CHALLENGE] in prompt
    assert "Agent B" in prompt
    assert "<META" not in prompt
