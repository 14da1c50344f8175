from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ..systems.consensus import ConsensusEntry


@dataclass(slots=True)
class TurnMetrics:
    turn: int
    active_count: int
    cluster_sizes: List[int]
    mean_cluster_size: float
    consensus: List[ConsensusEntry] = field(default_factory=list)
    messages: int = 0
    similarity: Optional[float] = None
