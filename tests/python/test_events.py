from convergent.sim.core.agent import Vote
from convergent.sim.systems.consensus import tally_consensus
from convergent.sim.systems.metrics import create_metrics
from convergent.sim.types.events import AgentLeft, AgentMessage, Completed, Failed, PositionSnapshot, Telemetry


def test_payloads_are_camel_case_and_typed():
    assert AgentLeft(id="B", turn=3).to_payload() == {"type": "agent_left", "id": "B", "turn": 3}
    snapshot = PositionSnapshot(turn=1, tick=6, positions={"A": (0.1, -0.2)})
    assert snapshot.to_payload() == {"type": "position_snapshot", "turn": 1, "tick": 6, "positions": {"A": (0.1, -0.2)}}
    assert Failed(message="boom").to_payload() == {"type": "failed", "message": "boom"}
    assert Completed(turns=4).to_payload() == {"type": "completed", "turns": 4, "reason": "max_turns"}


def test_optional_message_fields_are_omitted():
    message = AgentMessage(
        turn=1,
        agent_id="A",
        name="Agent A",
        color="#3b82f6",
        text="Hello",
        position=(0.0, 0.0),
        active_ids=["A", "B"],
        move="ask",
    )
    payload = message.to_payload()
    assert payload["agentId"] == "A"
    assert payload["activeIds"] == ["A", "B"]
    assert "viewpointLabel" not in payload
    assert "stance" not in payload


def test_telemetry_payload():
    entry = tally_consensus([Vote(1, "X"), Vote(1, "X")], cluster_size=2, threshold=0.6)
    metrics = create_metrics(2, [["A", "B"], ["C"]], [entry], messages=3)
    payload = Telemetry(metrics=metrics).to_payload()
    assert payload == {
        "type": "telemetry",
        "turn": 2,
        "activeCount": 3,
        "clusterSizes": [2, 1],
        "meanClusterSize": 1.5,
        "consensus": [{"clusterSize": 2, "support": 1.0, "proposal": "X"}],
        "messages": 3,
    }
    metrics.similarity = 0.42
    assert Telemetry(metrics=metrics).to_payload()["similarity"] == 0.42
