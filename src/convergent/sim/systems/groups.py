from __future__ import annotations

from collections import deque
from typing import Dict, List, Mapping

from pygame.math import Vector2

from ..utils.math2d import distance_sq


def find_clusters(positions: Mapping[str, Vector2], talk_radius: float) -> List[List[str]]:
    """Connected components of the proximity graph (edge iff distance <= talk_radius).

    Components are discovered in the mapping's iteration order, so an
    unchanged snapshot always yields the same partition.
    """
    ids = list(positions.keys())
    radius_sq = talk_radius * talk_radius
    adjacency: Dict[str, List[str]] = {agent_id: [] for agent_id in ids}
    for i, a in enumerate(ids):
        pos_a = positions[a]
        for b in ids[i + 1:]:
            if distance_sq(pos_a, positions[b]) <= radius_sq:
                adjacency[a].append(b)
                adjacency[b].append(a)

    seen = set()
    clusters: List[List[str]] = []
    for start in ids:
        if start in seen:
            continue
        seen.add(start)
        component = [start]
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for other in adjacency[current]:
                if other in seen:
                    continue
                seen.add(other)
                component.append(other)
                queue.append(other)
        clusters.append(component)
    return clusters


def cluster_sizes(clusters: List[List[str]]) -> List[int]:
    return sorted((len(cluster) for cluster in clusters), reverse=True)
