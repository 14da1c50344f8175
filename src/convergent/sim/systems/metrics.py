from __future__ import annotations

from typing import List, Optional, Sequence

from ..types.metrics import TurnMetrics
from .consensus import ConsensusEntry
from .groups import cluster_sizes


def create_metrics(
    turn: int,
    clusters: List[List[str]],
    consensus: Sequence[ConsensusEntry],
    messages: int,
    similarity: Optional[float] = None,
) -> TurnMetrics:
    sizes = cluster_sizes(clusters)
    active_count = sum(sizes)
    mean_size = 0.0 if not sizes else active_count / len(sizes)
    return TurnMetrics(
        turn=turn,
        active_count=active_count,
        cluster_sizes=sizes,
        mean_cluster_size=mean_size,
        consensus=list(consensus),
        messages=messages,
        similarity=similarity,
    )
