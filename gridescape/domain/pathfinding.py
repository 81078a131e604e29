"""Flood-fill distances and escape-path measurement over the 8-connected board."""

import math
from typing import List, Optional
import numpy as np

from .types import Coord, Grid, DIRECTION_DELTAS, UNREACHABLE, UNVISITED


def border_ring(size: int) -> List[Coord]:
    """
    Coordinates on the outer ring of a size x size board, corners once.

    Ordered along the top and bottom rows column by column, then down the
    left and right columns.
    """
    cells = []
    for x in range(size):
        cells.append((x, size - 1))
        cells.append((x, 0))
    for z in range(1, size - 1):
        cells.append((0, z))
        cells.append((size - 1, z))
    return cells


class FloodFillPathfinder:
    """
    Breadth-first label propagation over a Grid.

    Labels are written into the grid's `visited` fields, so they are only
    meaningful until the next call that floods the same grid.
    """

    def __init__(self, grid: Grid, unreachable: int = UNREACHABLE):
        self.grid = grid
        self.unreachable = unreachable

    def compute_distances(self, source: Coord) -> np.ndarray:
        """
        Label every reachable cell with its step distance from source.

        A diagonal step is only taken when both orthogonal cells beside it
        are open, so the flood never squeezes between two blocked corners.

        Returns:
            Array indexed [x, z] of step labels, -1 for unreached cells
        """
        grid = self.grid
        sx, sz = source
        grid.reset_visited()
        grid.node(sx, sz).visited = 0

        frontier = [source]
        for step in range(1, grid.size * grid.size):
            next_frontier = []
            for x, z in frontier:
                if grid.node(x, z).blocked:
                    continue
                for dx, dz in DIRECTION_DELTAS:
                    tx, tz = x + dx, z + dz
                    if self._can_label(x, z, tx, tz):
                        grid.node(tx, tz).visited = step
                        next_frontier.append((tx, tz))
            if not next_frontier:
                break
            frontier = next_frontier

        return self.distance_map()

    def _can_label(self, x: int, z: int, tx: int, tz: int) -> bool:
        grid = self.grid
        if not grid.is_within_bounds(tx, tz):
            return False
        target = grid.node(tx, tz)
        if target.blocked or target.visited != UNVISITED:
            return False
        # For straight moves one of these is the step cell and the other the target
        return not grid.is_blocked(x, tz) and not grid.is_blocked(tx, z)

    def distance_map(self) -> np.ndarray:
        """Current labels as an array indexed [x, z]."""
        labels = np.full((self.grid.size, self.grid.size), UNVISITED, dtype=int)
        for node in self.grid.nodes.values():
            labels[node.coord] = node.visited
        return labels

    def reconstruct_path(self, start: Coord, end: Coord) -> Optional[List[Coord]]:
        """
        Walk back from end towards start along decreasing labels.

        At every step the cursor moves to the neighbour carrying the previous
        label that lies closest to the end cell itself (not to the cursor).
        Ties go to the first neighbour in direction order.

        Returns:
            Cells from end back to start, or None when end is blocked or unreached
        """
        self.compute_distances(start)
        ex, ez = end
        end_node = self.grid.node(ex, ez)
        if end_node.blocked or end_node.visited == UNVISITED:
            return None

        path = [end]
        x, z = end
        for step in range(end_node.visited - 1, -1, -1):
            candidates = []
            for dx, dz in DIRECTION_DELTAS:
                tx, tz = x + dx, z + dz
                if (self.grid.is_within_bounds(tx, tz)
                        and not self.grid.is_blocked(tx, tz)
                        and self.grid.node(tx, tz).visited == step):
                    candidates.append((tx, tz))
            x, z = min(candidates, key=lambda c: math.hypot(c[0] - ex, c[1] - ez))
            path.append((x, z))

        return path

    def path_length(self, start: Coord, end: Coord) -> int:
        """Number of backtrack steps between start and end, or the unreachable sentinel."""
        path = self.reconstruct_path(start, end)
        if path is None:
            return self.unreachable
        return len(path) - 1

    def valid_endpoints(self) -> List[Coord]:
        """Every unblocked cell on the outer ring."""
        return [coord for coord in border_ring(self.grid.size)
                if not self.grid.is_blocked(*coord)]

    def is_endpoint(self, coord: Coord) -> bool:
        """Whether coord is an open border cell."""
        x, z = coord
        size = self.grid.size
        if not self.grid.is_within_bounds(x, z) or self.grid.is_blocked(x, z):
            return False
        return x in (0, size - 1) or z in (0, size - 1)

    def reachable_endpoints(self, source: Coord) -> List[Coord]:
        """Open border cells a single flood from source reaches."""
        labels = self.compute_distances(source)
        return [coord for coord in self.valid_endpoints() if labels[coord] != UNVISITED]

    def nearest_endpoint_distance(self, source: Coord) -> int:
        """Shortest path length from source to any open border cell."""
        lengths = [self.path_length(source, endpoint) for endpoint in self.valid_endpoints()]
        return min(lengths) if lengths else self.unreachable
