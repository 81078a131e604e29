"""Random number generation utilities for the escape agent and placers."""

import random
from typing import Optional


class SeededRNG:
    """Seeded random number generator for reproducible results.

    Each instance owns its own generator, so an engine and a placer seeded
    separately never disturb each other's sequences.
    """
    
    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._random = random.Random(seed)
    
    def random(self) -> float:
        """Generate random float in [0, 1)."""
        return self._random.random()
    
    def choice(self, seq):
        """Choose random element from sequence."""
        return self._random.choice(seq)
    
    def sample(self, population, k: int):
        """Sample k elements from population without replacement."""
        return self._random.sample(population, k)
