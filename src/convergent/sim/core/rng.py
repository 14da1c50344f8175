from __future__ import annotations

import math
import random
from typing import MutableSequence, Optional, Sequence, TypeVar

from pygame.math import Vector2

from ..utils.math2d import DOMAIN_MAX, DOMAIN_MIN

T = TypeVar("T")


class DeterministicRng:
    """Single injectable random source for a simulation run.

    ``seed=None`` draws from system entropy; any integer seed makes the whole
    run reproducible. Every weighted draw in the engine goes through
    :meth:`weighted_index`.
    """

    def __init__(self, seed: Optional[int] = None):
        self._seed = seed
        self._random = random.Random(seed)

    def next_range(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)

    def chance(self, probability: float) -> bool:
        return self._random.random() < probability

    def next_unit_circle(self) -> Vector2:
        angle = self._random.uniform(0, 2 * math.pi)
        vector = Vector2()
        vector.from_polar((1, math.degrees(angle)))
        return vector

    def next_position(self) -> Vector2:
        return Vector2(
            self._random.uniform(DOMAIN_MIN, DOMAIN_MAX),
            self._random.uniform(DOMAIN_MIN, DOMAIN_MAX),
        )

    def weighted_index(self, weights: Sequence[float]) -> int:
        if not weights:
            raise ValueError("weighted_index() needs at least one weight")
        total = 0.0
        for weight in weights:
            if weight > 0.0:
                total += weight
        if total <= 0.0:
            return self._random.randrange(len(weights))
        target = self._random.random() * total
        cumulative = 0.0
        last_positive = 0
        for index, weight in enumerate(weights):
            if weight <= 0.0:
                continue
            cumulative += weight
            last_positive = index
            if target < cumulative:
                return index
        return last_positive

    def weighted_choice(self, items: Sequence[T], weights: Sequence[float]) -> T:
        if len(items) != len(weights):
            raise ValueError("items and weights must have the same length")
        return items[self.weighted_index(weights)]

    def choice(self, items: Sequence[T]) -> T:
        return self.weighted_choice(items, [1.0] * len(items))

    def shuffle(self, items: MutableSequence[T]) -> None:
        self._random.shuffle(items)
