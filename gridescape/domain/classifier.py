"""State classification relative to the agent: obstruction signature and legal moves."""

import math
from typing import Dict
import numpy as np

from .types import (
    Coord, Grid, Direction, Quadrant, QuadrantReport, LegalMask,
    DIRECTION_DELTAS, OutOfBoundsError
)


def quadrants_of(agent: Coord, cell: Coord) -> list[Quadrant]:
    """
    Quadrants a cell falls into relative to the agent.

    Comparisons are inclusive, so a cell on an axis through the agent belongs
    to both quadrants on either side of it.
    """
    ax, az = agent
    x, z = cell
    quadrants = []
    if x >= ax and z >= az:
        quadrants.append(Quadrant.NE)
    if x <= ax and z >= az:
        quadrants.append(Quadrant.NW)
    if x >= ax and z <= az:
        quadrants.append(Quadrant.SE)
    if x <= ax and z <= az:
        quadrants.append(Quadrant.SW)
    return quadrants


def detect_blocked_quadrants(grid: Grid, agent: Coord) -> QuadrantReport:
    """
    Summarise which diagonal regions around the agent are most obstructed.

    Every blocked cell contributes 1/distance to each quadrant it falls in.
    Bucket totals are rounded up, and every bucket tied for the maximum goes
    into the signature. A board with nothing blocked has an empty signature.
    """
    totals: Dict[Quadrant, float] = {quadrant: 0.0 for quadrant in Quadrant}
    ax, az = agent

    for x, z in grid.blocked_cells():
        if (x, z) == agent:
            continue
        weight = 1.0 / math.hypot(x - ax, z - az)
        for quadrant in quadrants_of(agent, (x, z)):
            totals[quadrant] += weight

    buckets = {quadrant: int(np.ceil(total)) for quadrant, total in totals.items()}
    highest = max(buckets.values())
    if highest <= 0:
        return QuadrantReport(buckets=buckets, signature=frozenset())

    signature = frozenset(q for q, value in buckets.items() if value == highest)
    return QuadrantReport(buckets=buckets, signature=signature)


def is_direction_legal(grid: Grid, position: Coord, direction: Direction) -> bool:
    """
    Check whether the agent may step in a direction.

    A diagonal step also needs at least one of its two orthogonal
    components open. Off-board targets count as blocked.
    """
    x, z = position
    dx, dz = DIRECTION_DELTAS[direction]
    tx, tz = x + dx, z + dz
    if grid.is_blocked(tx, tz):
        return False
    if direction.is_diagonal:
        return not grid.is_blocked(x + dx, z) or not grid.is_blocked(x, z + dz)
    return True


def legal_directions(grid: Grid, position: Coord) -> LegalMask:
    """Legality of all eight directions, indexed by Direction ordinal."""
    return tuple(is_direction_legal(grid, position, direction) for direction in Direction)


def block_weight(grid: Grid, agent: Coord, position: Coord) -> float:
    """
    Inverse distance from the agent to a cell, as used for obstruction weighting.

    Raises:
        OutOfBoundsError: If position lies off the board
    """
    if not grid.is_within_bounds(*position):
        raise OutOfBoundsError(position, grid.size)
    if position == agent:
        return math.inf
    return 1.0 / math.hypot(position[0] - agent[0], position[1] - agent[1])
