"""Grid factory for creating, resetting, and obstructing escape boards."""

from typing import Optional, List, Iterable
from ..domain.types import Grid, GridNode, Coord
from .rng import SeededRNG


def create_empty_grid(size: int) -> Grid:
    """
    Create a new open board with the specified dimensions.
    
    Args:
        size: Board width and height (must be > 0)
        
    Returns:
        New Grid instance with every cell unblocked and unlabeled
        
    Raises:
        ValueError: If size <= 0
    """
    if size <= 0:
        raise ValueError(f"Grid size must be positive, got {size}")
    
    nodes = {}
    
    for z in range(size):
        for x in range(size):
            node_id = f"{x},{z}"
            nodes[node_id] = GridNode(id=node_id, coord=(x, z))
    
    return Grid(size=size, nodes=nodes)


def reset_grid(grid: Grid) -> None:
    """Reset a grid to the open state. Safe to call repeatedly."""
    grid.reset()


def ring_cells(size: int, inset: int) -> List[Coord]:
    """Coordinates on the square ring `inset` cells in from the border."""
    if inset < 0 or inset > (size - 1) // 2:
        raise ValueError(f"Inset {inset} does not fit a {size}x{size} grid")
    low, high = inset, size - 1 - inset
    cells = []
    for x in range(low, high + 1):
        for z in range(low, high + 1):
            if x in (low, high) or z in (low, high):
                cells.append((x, z))
    return cells


def add_obstacles(grid: Grid, coords: Iterable[Coord]) -> None:
    """Block every listed coordinate."""
    for x, z in coords:
        grid.add_obstacle(x, z)


def add_random_obstacles(grid: Grid, density: float, rng: SeededRNG,
                         exclude: Iterable[Coord] = ()) -> List[Coord]:
    """
    Block a random fraction of the open cells.
    
    Args:
        grid: Grid to modify
        density: Fraction of all cells to block (0.0 to 1.0)
        rng: Random number generator to use
        exclude: Cells that must stay open, such as the agent's cell
        
    Returns:
        The coordinates that were blocked
    """
    if not (0.0 <= density <= 1.0):
        raise ValueError(f"Density must be between 0.0 and 1.0, got {density}")
    
    excluded = set(exclude)
    open_coords = [node.coord for node in grid.nodes.values()
                   if not node.blocked and node.coord not in excluded]
    
    count = min(int(len(grid.nodes) * density), len(open_coords))
    chosen = rng.sample(open_coords, count)
    add_obstacles(grid, chosen)
    return chosen


def random_open_cell(grid: Grid, rng: SeededRNG,
                     exclude: Iterable[Coord] = ()) -> Optional[Coord]:
    """Pick a random unblocked cell, or None when the board is full."""
    excluded = set(exclude)
    open_coords = [node.coord for node in grid.nodes.values()
                   if not node.blocked and node.coord not in excluded]
    if not open_coords:
        return None
    return rng.choice(open_coords)
