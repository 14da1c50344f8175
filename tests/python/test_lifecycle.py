from pytest import approx

from convergent.sim.core.agent import WeightProfile
from convergent.sim.core.config import load_config
from convergent.sim.core.field import FlockField
from convergent.sim.core.rng import DeterministicRng
from convergent.sim.systems import lifecycle
from convergent.sim.systems.traits import default_weight_profile


def test_pool_identities_are_stable():
    config = load_config({"seed": 1, "poolSize": 5, "agentCount": 3})
    pool = lifecycle.build_agent_pool(config, DeterministicRng(1))
    assert [agent.id for agent in pool] == ["A", "B", "C", "D", "E"]
    assert [agent.name for agent in pool] == ["Agent A", "Agent B", "Agent C", "Agent D", "Agent E"]
    assert [agent.color for agent in pool] == lifecycle.PALETTE[:5]
    assert len({agent.persona.stance for agent in pool}) == 5


def test_persona_temperature_is_bounded():
    config = load_config({"temperature": 1.5, "tempJitter": 0.8, "poolSize": 12})
    for agent in lifecycle.build_agent_pool(config, DeterministicRng(3)):
        assert lifecycle.MIN_TEMPERATURE <= agent.persona.temperature <= lifecycle.MAX_TEMPERATURE


def test_without_viewpoints_agents_use_global_weights():
    config = load_config({"viewpoints": []})
    pool = lifecycle.build_agent_pool(config, DeterministicRng(2))
    assert all(agent.viewpoint is None for agent in pool)
    assert lifecycle.initial_weights(pool[0], config) == default_weight_profile(config.flock)


def test_per_agent_weights_can_be_disabled():
    config = load_config({"perAgentWeights": False})
    pool = lifecycle.build_agent_pool(config, DeterministicRng(2))
    assert pool[0].viewpoint is not None
    assert lifecycle.initial_weights(pool[0], config) == default_weight_profile(config.flock)


def test_profile_survives_leaving_and_rejoining():
    config = load_config({"seed": 4})
    rng = DeterministicRng(4)
    field = FlockField(config.flock, rng)
    agent = lifecycle.build_agent_pool(config, rng)[0]
    profiles = {}
    state = lifecycle.activate(field, agent, config, profiles)
    state.weights.cohesion = 2.5
    field.remove(agent.id)
    rejoined = lifecycle.activate(field, agent, config, profiles)
    assert rejoined.weights.cohesion == approx(2.5)
    assert rejoined.weights is profiles[agent.id]


def test_speaking_temperature_adds_bias():
    config = load_config({})
    agent = lifecycle.build_agent_pool(config, DeterministicRng(5))[0]
    weights = WeightProfile(alignment=1.0, cohesion=1.0, separation=1.0, wander=0.5, temp_bias=0.2)
    expected = min(lifecycle.MAX_TEMPERATURE, agent.persona.temperature + 0.2)
    assert lifecycle.speaking_temperature(agent, weights) == approx(expected)
