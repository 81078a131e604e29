"""Move scoring from the change in shortest escape distance."""

from typing import Callable, Optional

from .types import Coord
from .pathfinding import FloodFillPathfinder


class RewardFunction:
    """Scores a hypothetical move against the current position."""

    def __init__(self, pathfinder: FloodFillPathfinder,
                 on_unwinnable: Optional[Callable[[], None]] = None):
        self.pathfinder = pathfinder
        self.on_unwinnable = on_unwinnable

    def score_move(self, current: Coord, hypothetical: Coord) -> float:
        """
        Score moving from current to hypothetical in [-1, 1].

        From the center every direction is treated as neutral. Landing on an
        open border cell is always worth 1. Otherwise the score is the average
        distance gained towards the endpoints that were nearest before the move.
        With no open endpoint, or none reachable from current, the callback
        fires and the move scores 0.
        """
        if current == self.pathfinder.grid.center:
            return 0.0

        endpoints = self.pathfinder.valid_endpoints()
        if hypothetical in endpoints:
            return 1.0

        if not endpoints:
            return self._unwinnable()

        before_lengths = {e: self.pathfinder.path_length(current, e) for e in endpoints}
        before = min(before_lengths.values())
        if before >= self.pathfinder.unreachable:
            return self._unwinnable()
        nearest = [e for e, length in before_lengths.items() if length == before]

        deltas = [before - self.pathfinder.path_length(hypothetical, e) for e in nearest]
        average = sum(deltas) / len(deltas)
        return max(-1.0, min(1.0, float(average)))

    def _unwinnable(self) -> float:
        if self.on_unwinnable:
            self.on_unwinnable()
        return 0.0
