"""Passive twin table and the algorithmic obstacle placer.

The twin keeps its own copy of the board and its own pathfinder so that the
placer's flood fills never disturb the labels the agent is working with.
"""

from typing import List, Optional

from .types import Coord, ExperienceRecord, PassiveRecord, Grid, DIRECTION_DELTAS
from .pathfinding import FloodFillPathfinder


class PassiveLearner:
    """Logs each agent decision from the placer's side and suggests placements."""

    def __init__(self, grid: Grid):
        self.grid = grid
        self.pathfinder = FloodFillPathfinder(grid)
        self.table: List[PassiveRecord] = []
        self.last_obstacle: Optional[Coord] = None

    def add_obstacle(self, x: int, z: int):
        """Mirror a placement and remember where it went."""
        self.grid.add_obstacle(x, z)
        self.last_obstacle = (x, z)

    def reset(self):
        """Forget the board; the table is kept."""
        self.grid.reset()
        self.last_obstacle = None

    def clear(self):
        """Empty the table."""
        self.table.clear()

    def add_record(self, record: ExperienceRecord) -> PassiveRecord:
        """Log an agent record keyed by the latest obstacle with the outcome inverted."""
        passive = PassiveRecord(
            signature=record.signature,
            obstacle_position=self.last_obstacle,
            outcome=-1 * record.outcome,
        )
        self.table.append(passive)
        return passive

    def escape_paths(self, agent: Coord) -> List[List[Coord]]:
        """Reconstructed paths from the agent to every reachable endpoint, each ordered agent first."""
        paths = []
        for endpoint in self.pathfinder.valid_endpoints():
            path = self.pathfinder.reconstruct_path(agent, endpoint)
            if path is not None:
                paths.append(list(reversed(path)))
        return paths

    def suggest_obstacle(self, agent: Coord) -> Optional[Coord]:
        """
        Choose a cell to block.

        Prefers the first step of the agent's shortest escape path. Falls back
        to any open neighbour of the agent, then any open cell.
        """
        paths = [path for path in self.escape_paths(agent) if len(path) > 1]
        if paths:
            shortest = min(paths, key=len)
            return shortest[1]

        ax, az = agent
        for dx, dz in DIRECTION_DELTAS:
            cell = (ax + dx, az + dz)
            if not self.grid.is_blocked(*cell):
                return cell

        for node in self.grid.nodes.values():
            if not node.blocked and node.coord != agent:
                return node.coord
        return None
