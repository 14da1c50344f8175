import logging

from pytest import approx

from convergent.sim.core.config import MAX_POOL_SIZE, SimulationConfig, load_config
from convergent.sim.core.presets import DEFAULT_VIEWPOINTS, PRESETS


def test_empty_mapping_gives_defaults():
    config = load_config({})
    assert config.seed is None
    assert config.conversation.agent_count == 4
    assert config.conversation.max_turns == 10
    assert config.conversation.viewpoints == DEFAULT_VIEWPOINTS
    assert config.flock.talk_radius == approx(0.30)
    assert config.adaptation.adapt_rate == approx(0.15)


def test_flat_and_nested_keys():
    config = load_config(
        {
            "seed": "17",
            "agentCount": 6,
            "talkRadius": 0.4,
            "adaptation": {"adapt_rate": 0.3},
            "conversation": {"maxTurns": 3},
        }
    )
    assert config.seed == 17
    assert config.conversation.agent_count == 6
    assert config.conversation.max_turns == 3
    assert config.flock.talk_radius == approx(0.4)
    assert config.adaptation.adapt_rate == approx(0.3)


def test_out_of_range_values_are_clamped(caplog):
    with caplog.at_level(logging.WARNING):
        config = load_config({"agentCount": 50, "maxTurns": 0, "talkRadius": -1.0})
    assert config.conversation.agent_count == MAX_POOL_SIZE
    assert config.conversation.max_turns == 1
    assert config.flock.talk_radius == approx(0.05)
    assert "out of range" in caplog.text


def test_pool_size_never_below_agent_count():
    config = load_config({"agentCount": 6, "poolSize": 3})
    assert config.conversation.pool_size == 6


def test_malformed_values_fall_back_to_defaults(caplog):
    with caplog.at_level(logging.WARNING):
        config = load_config({"maxTurns": "lots", "voting": "maybe", "seed": "abc"})
    assert config.conversation.max_turns == 10
    assert config.conversation.voting is True
    assert config.seed is None
    assert "malformed" in caplog.text


def test_infinite_numbers_fall_back_to_defaults(caplog):
    with caplog.at_level(logging.WARNING):
        config = load_config({"maxTurns": float("inf"), "agentCount": "1e999", "seed": float("inf")})
    assert config.conversation.max_turns == 10
    assert config.conversation.agent_count == 4
    assert config.seed is None
    assert "malformed" in caplog.text


def test_boolean_strings_and_viewpoint_text():
    config = load_config({"voting": "false", "viewpoints": "Left | humor=dry\n\n  Right  \n"})
    assert config.conversation.voting is False
    assert config.conversation.viewpoints == ["Left | humor=dry", "Right"]


def test_unknown_keys_are_reported(caplog):
    with caplog.at_level(logging.WARNING):
        config = load_config({"flapRate": 3, "flock": {"wingspan": 2}})
    assert config == load_config({})
    assert "flapRate" in caplog.text
    assert "wingspan" in caplog.text


def test_preset_applies_and_explicit_keys_win():
    config = load_config({"preset": "polarized_debate", "agentCount": 3})
    preset = PRESETS["polarized_debate"]
    assert config.flock.talk_radius == approx(preset["talkRadius"])
    assert config.flock.separate_w == approx(preset["separateW"])
    assert config.conversation.max_turns == preset["maxTurns"]
    assert config.conversation.agent_count == 3


def test_every_preset_loads_cleanly(caplog):
    with caplog.at_level(logging.WARNING):
        for name in PRESETS:
            load_config({"preset": name})
    assert caplog.text == ""


def test_from_yaml(tmp_path):
    path = tmp_path / "run.yaml"
    path.write_text("seed: 3\nflock:\n  max_speed: 0.05\nmaxTurns: 4\n")
    config = SimulationConfig.from_yaml(path)
    assert config.seed == 3
    assert config.flock.max_speed == approx(0.05)
    assert config.conversation.max_turns == 4


def test_to_dict_round_trips_through_loader():
    config = load_config({"seed": 8, "agentCount": 5, "wanderW": 0.9})
    assert load_config(config.to_dict()) == config
