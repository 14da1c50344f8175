from __future__ import annotations

from typing import Any, Dict

DEFAULT_GOAL = (
    "Should governments implement universal basic income funded through AI taxation, "
    "or would that erode human ambition and innovation?"
)

DEFAULT_VIEWPOINTS = [
    "Authoritarian Left | humor=light, direction=decider, rigor=data, optimism=high",
    "Libertarian Left | humor=playful, direction=explorer, rigor=anecdotal, naivety=high, optimism=med",
    "Authoritarian Right | humor=dry, direction=decider, rigor=balanced, snark=high",
    "Libertarian Right | humor=light, direction=wanderer, rigor=balanced, optimism=high",
]

# Flat form-style parameter sets; any key accepted by load_config works here.
PRESETS: Dict[str, Dict[str, Any]] = {
    "political_compass": {
        "goal": (
            "Should governments adopt UBI funded by AI taxation, "
            "or would that erode human ambition and innovation?"
        ),
        "viewpoints": [
            "Authoritarian Left | humor=light, direction=decider, rigor=data",
            "Libertarian Left | humor=playful, direction=explorer, rigor=anecdotal, naivety=high",
            "Authoritarian Right | humor=dry, direction=decider, rigor=balanced, snark=high",
            "Libertarian Right | humor=light, direction=wanderer, rigor=balanced, optimism=high",
        ],
        "agentCount": 4,
        "maxTurns": 10,
        "talkRadius": 0.30,
        "perception": 0.45,
        "maxSpeed": 0.035,
        "alignW": 0.6,
        "cohereW": 0.7,
        "separateW": 1.3,
        "activityRate": 1.4,
        "speakRate": 0.7,
        "wanderW": 0.5,
        "speedJitter": 0.25,
        "tempJitter": 0.25,
        "adaptWeights": True,
        "perAgentWeights": True,
        "adaptRate": 0.18,
    },
    "polarized_debate": {
        "agentCount": 6,
        "maxTurns": 12,
        "talkRadius": 0.24,
        "perception": 0.42,
        "alignW": 0.55,
        "cohereW": 0.55,
        "separateW": 1.6,
        "wanderW": 0.55,
        "activityRate": 1.6,
        "speakRate": 0.65,
        "tempJitter": 0.30,
        "adaptWeights": True,
        "perAgentWeights": True,
        "adaptRate": 0.12,
    },
    "consensus_workshop": {
        "agentCount": 5,
        "maxTurns": 8,
        "talkRadius": 0.36,
        "perception": 0.5,
        "alignW": 1.0,
        "cohereW": 0.85,
        "separateW": 0.9,
        "wanderW": 0.3,
        "activityRate": 1.2,
        "speakRate": 0.55,
        "tempJitter": 0.18,
        "adaptWeights": True,
        "perAgentWeights": True,
        "adaptRate": 0.2,
    },
    "chaotic_agora": {
        "agentCount": 8,
        "maxTurns": 10,
        "talkRadius": 0.26,
        "perception": 0.48,
        "alignW": 0.5,
        "cohereW": 0.55,
        "separateW": 1.45,
        "wanderW": 0.9,
        "speedJitter": 0.35,
        "activityRate": 1.8,
        "speakRate": 0.8,
        "tempJitter": 0.35,
        "adaptWeights": True,
        "perAgentWeights": True,
        "adaptRate": 0.22,
    },
    "calm_seminar": {
        "agentCount": 4,
        "maxTurns": 8,
        "talkRadius": 0.34,
        "perception": 0.46,
        "alignW": 0.8,
        "cohereW": 0.7,
        "separateW": 1.0,
        "wanderW": 0.25,
        "activityRate": 1.0,
        "speakRate": 0.45,
        "tempJitter": 0.15,
        "adaptWeights": True,
        "perAgentWeights": True,
        "adaptRate": 0.10,
        "turnDelayMs": 260,
    },
}
