"""Tests for move scoring by escape-distance deltas."""

import pytest

from gridescape.domain.pathfinding import FloodFillPathfinder, border_ring
from gridescape.domain.reward import RewardFunction
from gridescape.utils.grid_factory import add_obstacles, ring_cells


@pytest.fixture
def reward(pathfinder):
    return RewardFunction(pathfinder)


def test_moves_from_center_score_zero(reward):
    assert reward.score_move((4, 4), (4, 5)) == 0.0
    assert reward.score_move((4, 4), (5, 5)) == 0.0


def test_center_scores_zero_even_into_a_blocked_cell(grid, reward):
    grid.add_obstacle(4, 5)
    assert reward.score_move((4, 4), (4, 5)) == 0.0


def test_landing_on_border_scores_one(reward):
    assert reward.score_move((1, 4), (0, 4)) == 1.0
    assert reward.score_move((7, 7), (8, 8)) == 1.0


def test_moving_towards_the_border(reward):
    # Nearest endpoints from (2, 4) are (0, 2)..(0, 6) at distance 2
    assert reward.score_move((2, 4), (1, 4)) == pytest.approx(0.6)


def test_moving_away_is_clamped(reward):
    assert reward.score_move((2, 4), (3, 4)) == -1.0


def test_moving_into_blocked_cell_is_worst(grid, reward):
    grid.add_obstacle(1, 4)
    assert reward.score_move((2, 4), (1, 4)) == -1.0


def test_score_stays_within_bounds(grid, pathfinder):
    add_obstacles(grid, [(1, 3), (1, 5), (3, 3)])
    reward = RewardFunction(pathfinder)
    for target in [(1, 4), (2, 5), (3, 4), (2, 3)]:
        assert -1.0 <= reward.score_move((2, 4), target) <= 1.0


def test_no_endpoints_signals_unwinnable(grid):
    calls = []
    add_obstacles(grid, border_ring(9))
    reward = RewardFunction(FloodFillPathfinder(grid), on_unwinnable=lambda: calls.append(True))
    assert reward.score_move((2, 4), (3, 4)) == 0.0
    assert calls == [True]


def test_sealed_agent_signals_unwinnable(grid):
    calls = []
    add_obstacles(grid, ring_cells(9, 2))
    reward = RewardFunction(FloodFillPathfinder(grid), on_unwinnable=lambda: calls.append(True))
    assert reward.score_move((3, 4), (3, 3)) == 0.0
    assert calls == [True]


def test_reachable_border_does_not_signal(grid):
    calls = []
    reward = RewardFunction(FloodFillPathfinder(grid), on_unwinnable=lambda: calls.append(True))
    reward.score_move((3, 4), (2, 4))
    assert calls == []
