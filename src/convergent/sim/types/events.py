from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from .metrics import TurnMetrics


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass(slots=True)
class SimulationEvent:
    """Base record for everything the orchestrator emits.

    ``to_payload`` produces the wire-ready mapping: a ``type`` key plus the
    event fields in camelCase. Optional fields left as ``None`` are omitted.
    """

    type: ClassVar[str] = "event"

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type}
        for item in fields(self):
            value = getattr(self, item.name)
            if value is None:
                continue
            payload[_camel(item.name)] = value
        return payload


@dataclass(slots=True)
class Start(SimulationEvent):
    type: ClassVar[str] = "start"
    goal: str
    config: Dict[str, Any]


@dataclass(slots=True)
class PositionSnapshot(SimulationEvent):
    type: ClassVar[str] = "position_snapshot"
    turn: int
    tick: int
    positions: Dict[str, Tuple[float, float]]


@dataclass(slots=True)
class AgentJoined(SimulationEvent):
    type: ClassVar[str] = "agent_joined"
    id: str
    name: str
    color: str
    turn: int = 0


@dataclass(slots=True)
class AgentLeft(SimulationEvent):
    type: ClassVar[str] = "agent_left"
    id: str
    turn: int = 0


@dataclass(slots=True)
class AgentMessage(SimulationEvent):
    type: ClassVar[str] = "agent_message"
    turn: int
    agent_id: str
    name: str
    color: str
    text: str
    position: Tuple[float, float]
    active_ids: List[str]
    move: str
    viewpoint_label: Optional[str] = None
    stance: Optional[int] = None
    proposal: Optional[str] = None


@dataclass(slots=True)
class Telemetry(SimulationEvent):
    type: ClassVar[str] = "telemetry"
    metrics: TurnMetrics

    def to_payload(self) -> Dict[str, Any]:
        metrics = self.metrics
        payload: Dict[str, Any] = {
            "type": self.type,
            "turn": metrics.turn,
            "activeCount": metrics.active_count,
            "clusterSizes": list(metrics.cluster_sizes),
            "meanClusterSize": metrics.mean_cluster_size,
            "consensus": [
                {"clusterSize": entry.cluster_size, "support": entry.support, "proposal": entry.proposal}
                for entry in metrics.consensus
            ],
            "messages": metrics.messages,
        }
        if metrics.similarity is not None:
            payload["similarity"] = metrics.similarity
        return payload


@dataclass(slots=True)
class Completed(SimulationEvent):
    type: ClassVar[str] = "completed"
    turns: int = 0
    reason: str = "max_turns"


@dataclass(slots=True)
class Failed(SimulationEvent):
    type: ClassVar[str] = "failed"
    message: str = ""
