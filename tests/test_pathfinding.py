"""Tests for flood-fill distances, path lengths and endpoint enumeration."""

from collections import deque

import pytest

from gridescape.domain.pathfinding import FloodFillPathfinder, border_ring
from gridescape.domain.types import UNREACHABLE, UNVISITED, DIRECTION_DELTAS
from gridescape.utils.grid_factory import (
    create_empty_grid, add_obstacles, add_random_obstacles, ring_cells
)
from gridescape.utils.rng import SeededRNG


def plain_bfs(grid, source):
    """8-connected BFS with no corner rule, used as a lower bound."""
    dist = {source: 0}
    queue = deque([source])
    while queue:
        x, z = queue.popleft()
        for dx, dz in DIRECTION_DELTAS:
            nxt = (x + dx, z + dz)
            if nxt in dist or grid.is_blocked(*nxt):
                continue
            dist[nxt] = dist[(x, z)] + 1
            queue.append(nxt)
    return dist


def random_board(seed, density=0.3):
    grid = create_empty_grid(9)
    add_random_obstacles(grid, density, SeededRNG(seed), exclude=[(4, 4)])
    return grid


def test_source_is_labeled_zero(pathfinder):
    labels = pathfinder.compute_distances((2, 6))
    assert labels[2, 6] == 0


def test_open_board_distances_are_chebyshev(pathfinder):
    labels = pathfinder.compute_distances((4, 4))
    for x in range(9):
        for z in range(9):
            assert labels[x, z] == max(abs(x - 4), abs(z - 4))


def test_labels_written_into_grid(grid, pathfinder):
    pathfinder.compute_distances((0, 0))
    assert grid.node(0, 0).visited == 0
    assert grid.node(8, 3).visited == 8


@pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
def test_labels_never_beat_plain_bfs(seed):
    grid = random_board(seed)
    pathfinder = FloodFillPathfinder(grid)
    labels = pathfinder.compute_distances((4, 4))
    reference = plain_bfs(grid, (4, 4))
    for node in grid.nodes.values():
        label = labels[node.coord]
        if label == UNVISITED:
            continue
        assert node.coord in reference
        assert label >= reference[node.coord]


@pytest.mark.parametrize("seed", [7, 8, 9])
def test_labels_step_by_one_along_neighbours(seed):
    grid = random_board(seed)
    labels = FloodFillPathfinder(grid).compute_distances((4, 4))
    for node in grid.nodes.values():
        label = labels[node.coord]
        if label <= 0:
            continue
        x, z = node.coord
        neighbour_labels = [labels[x + dx, z + dz] for dx, dz in DIRECTION_DELTAS
                            if grid.is_within_bounds(x + dx, z + dz)]
        assert label - 1 in neighbour_labels


def test_flood_does_not_squeeze_between_blocked_corners(grid, pathfinder):
    add_obstacles(grid, [(5, 4), (4, 5)])
    labels = pathfinder.compute_distances((4, 4))
    assert labels[5, 5] > 1
    assert labels[3, 5] == 2


def test_blocked_source_reaches_nothing(grid, pathfinder):
    grid.add_obstacle(4, 4)
    labels = pathfinder.compute_distances((4, 4))
    assert (labels == UNVISITED).sum() == 80


def test_path_length_on_open_board(pathfinder):
    assert pathfinder.path_length((4, 4), (4, 8)) == 4
    assert pathfinder.path_length((4, 4), (8, 8)) == 4
    assert pathfinder.path_length((4, 4), (0, 2)) == 4
    assert pathfinder.path_length((1, 1), (1, 1)) == 0


def test_path_length_to_blocked_cell_is_unreachable(grid, pathfinder):
    grid.add_obstacle(0, 0)
    assert pathfinder.path_length((4, 4), (0, 0)) == UNREACHABLE


def test_path_length_uses_configured_sentinel(grid):
    grid.add_obstacle(0, 0)
    assert FloodFillPathfinder(grid, unreachable=99).path_length((4, 4), (0, 0)) == 99


@pytest.mark.parametrize("seed", [11, 12, 13])
def test_reachability_is_symmetric(seed):
    grid = random_board(seed, density=0.4)
    pathfinder = FloodFillPathfinder(grid)
    cells = [(4, 4), (0, 0), (8, 8), (0, 8), (8, 0), (2, 6), (6, 2)]
    for a in cells:
        for b in cells:
            forward = pathfinder.path_length(a, b) == UNREACHABLE
            backward = pathfinder.path_length(b, a) == UNREACHABLE
            assert forward == backward


def test_reconstructed_path_runs_from_end_to_start(grid, pathfinder):
    add_obstacles(grid, [(5, 3), (5, 4), (5, 5)])
    path = pathfinder.reconstruct_path((4, 4), (8, 4))
    assert path[0] == (8, 4)
    assert path[-1] == (4, 4)
    assert len(path) - 1 == pathfinder.path_length((4, 4), (8, 4))
    for (ax, az), (bx, bz) in zip(path, path[1:]):
        assert max(abs(ax - bx), abs(az - bz)) == 1
        assert not grid.is_blocked(bx, bz)


def test_backtrack_prefers_cells_closest_to_end(pathfinder):
    path = pathfinder.reconstruct_path((4, 4), (8, 4))
    assert path == [(8, 4), (7, 4), (6, 4), (5, 4), (4, 4)]


def test_reconstruct_path_unreachable_returns_none(grid, pathfinder):
    add_obstacles(grid, ring_cells(9, 1))
    assert pathfinder.reconstruct_path((4, 4), (0, 0)) is None


def test_border_ring_order_and_size():
    ring = border_ring(9)
    assert len(ring) == 32
    assert len(set(ring)) == 32
    assert ring[:4] == [(0, 8), (0, 0), (1, 8), (1, 0)]
    assert ring[-2:] == [(0, 7), (8, 7)]


def test_valid_endpoints_on_open_board(pathfinder):
    endpoints = pathfinder.valid_endpoints()
    assert len(endpoints) == 32
    for x, z in endpoints:
        assert x in (0, 8) or z in (0, 8)
    for corner in [(0, 0), (0, 8), (8, 0), (8, 8)]:
        assert endpoints.count(corner) == 1


@pytest.mark.parametrize("seed", [21, 22])
def test_valid_endpoints_exclude_blocked_cells(seed):
    grid = create_empty_grid(9)
    add_random_obstacles(grid, 0.4, SeededRNG(seed))
    pathfinder = FloodFillPathfinder(grid)
    endpoints = pathfinder.valid_endpoints()
    assert all(not grid.is_blocked(*cell) for cell in endpoints)
    assert set(endpoints) == {cell for cell in border_ring(9) if not grid.is_blocked(*cell)}


def test_is_endpoint(grid, pathfinder):
    grid.add_obstacle(0, 4)
    assert pathfinder.is_endpoint((8, 8))
    assert pathfinder.is_endpoint((4, 0))
    assert not pathfinder.is_endpoint((0, 4))
    assert not pathfinder.is_endpoint((4, 4))
    assert not pathfinder.is_endpoint((9, 4))


def test_sealed_ring_keeps_border_open_but_unreachable(grid, pathfinder):
    add_obstacles(grid, ring_cells(9, 1))
    assert len(pathfinder.valid_endpoints()) == 32
    for endpoint in [(0, 0), (4, 8), (8, 3)]:
        assert pathfinder.path_length((4, 4), endpoint) == UNREACHABLE
    assert pathfinder.reachable_endpoints((4, 4)) == []
    assert pathfinder.nearest_endpoint_distance((4, 4)) == UNREACHABLE


def test_gapped_ring_lets_the_agent_out(grid, pathfinder):
    add_obstacles(grid, [cell for cell in ring_cells(9, 1) if cell != (4, 1)])
    assert pathfinder.path_length((4, 4), (4, 0)) == 4
    assert pathfinder.path_length((4, 4), (0, 8)) != UNREACHABLE
    assert pathfinder.nearest_endpoint_distance((4, 4)) == 4


def test_corner_gap_in_ring_stays_sealed(grid, pathfinder):
    add_obstacles(grid, [cell for cell in ring_cells(9, 1) if cell != (1, 1)])
    assert pathfinder.path_length((4, 4), (0, 0)) == UNREACHABLE
    assert pathfinder.reachable_endpoints((4, 4)) == []
