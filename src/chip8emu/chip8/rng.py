"""Seeded byte source for the RND instruction."""

from __future__ import annotations

import random

DEFAULT_SEED = 0


class SeededRandom:
    """Deterministic byte generator; the sequence depends only on the seed."""

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        self.seed = seed
        self._random = random.Random(seed)
        self.draws = 0

    def next_byte(self) -> int:
        self.draws += 1
        return self._random.getrandbits(8)
