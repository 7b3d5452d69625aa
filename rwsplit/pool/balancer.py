"""Reader ordering strategies.

Every strategy returns a permutation of all readers, so failover can visit
each reader before falling back to the writer. Only round-robin keeps state:
a rotation counter advanced exactly once per call under a lock.
"""

from __future__ import annotations

import random
import threading
from typing import TYPE_CHECKING

from ..core.enums import LoadBalancingStrategy

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .config import TargetSettings


def rotate(targets: Sequence[TargetSettings], start: int) -> list[TargetSettings]:
    start %= len(targets)
    return [*targets[start:], *targets[:start]]


def shuffle(targets: Sequence[TargetSettings], rng: random.Random) -> list[TargetSettings]:
    return rng.sample(list(targets), len(targets))


def weighted_shuffle(targets: Sequence[TargetSettings], rng: random.Random) -> list[TargetSettings]:
    """Weighted sampling without replacement (Efraimidis-Spirakis).

    Each target gets the key ``u ** (1 / weight)`` with ``u`` uniform in
    [0, 1); sorting by key descending puts a target first with probability
    proportional to its weight.
    """
    keyed = [(rng.random() ** (1.0 / target.weight), index) for index, target in enumerate(targets)]
    keyed.sort(reverse=True)
    return [targets[index] for _, index in keyed]


class LoadBalancer:
    __slots__ = ("_lock", "_rng", "_rotation", "_strategy")

    def __init__(self, strategy: LoadBalancingStrategy, rng: random.Random | None = None) -> None:
        self._strategy = strategy
        self._rng = rng or random.Random()
        self._rotation = 0
        self._lock = threading.Lock()

    @property
    def strategy(self) -> LoadBalancingStrategy:
        return self._strategy

    @property
    def rotation(self) -> int:
        """Number of round-robin advances so far."""
        return self._rotation

    def _advance(self) -> int:
        with self._lock:
            start = self._rotation
            self._rotation += 1
        return start

    def order(self, targets: Sequence[TargetSettings]) -> list[TargetSettings]:
        """Return the candidate order for one reader request."""
        if not targets:
            return []

        match self._strategy:
            case LoadBalancingStrategy.ROUND_ROBIN:
                return rotate(targets, self._advance())
            case LoadBalancingStrategy.RANDOM:
                with self._lock:
                    return shuffle(targets, self._rng)
            case LoadBalancingStrategy.WEIGHTED:
                with self._lock:
                    return weighted_shuffle(targets, self._rng)
