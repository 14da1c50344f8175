from __future__ import annotations

import math
from typing import Mapping, Optional, Sequence


def cosine(u: Sequence[float], v: Sequence[float]) -> float:
    if len(u) != len(v):
        raise ValueError(f"vector length mismatch: {len(u)} != {len(v)}")
    dot = math.fsum(a * b for a, b in zip(u, v))
    norm_u = math.sqrt(math.fsum(a * a for a in u))
    norm_v = math.sqrt(math.fsum(b * b for b in v))
    if norm_u == 0.0 or norm_v == 0.0:
        return 0.0
    return dot / (norm_u * norm_v)


def mean_pairwise_similarity(vectors: Mapping[str, Sequence[float]]) -> Optional[float]:
    ids = list(vectors.keys())
    if len(ids) < 2:
        return None
    total = 0.0
    pairs = 0
    for i, a in enumerate(ids):
        for b in ids[i + 1:]:
            total += cosine(vectors[a], vectors[b])
            pairs += 1
    return total / pairs
