"""Tests for the passive twin table and the algorithmic placer."""

from gridescape.domain.passive import PassiveLearner
from gridescape.domain.types import Direction, ExperienceRecord, Quadrant
from gridescape.utils.grid_factory import create_empty_grid, add_obstacles, ring_cells


def make_record(outcome):
    return ExperienceRecord(signature=frozenset({Quadrant.NW}), position=(4, 4),
                            legal_actions=(True,) * 8, chosen_action=Direction.N,
                            outcome=outcome)


def test_records_are_keyed_by_last_obstacle_with_inverted_outcome():
    learner = PassiveLearner(create_empty_grid(9))
    learner.add_obstacle(2, 7)
    learner.add_obstacle(6, 1)
    passive = learner.add_record(make_record(0.4))
    assert passive.obstacle_position == (6, 1)
    assert passive.outcome == -0.4
    assert passive.signature == frozenset({Quadrant.NW})
    assert learner.table == [passive]


def test_last_obstacle_is_a_copy():
    learner = PassiveLearner(create_empty_grid(9))
    cell = [3, 3]
    learner.add_obstacle(*cell)
    cell[0] = 5
    assert learner.last_obstacle == (3, 3)


def test_reset_keeps_table_and_clear_empties_it():
    learner = PassiveLearner(create_empty_grid(9))
    learner.add_obstacle(1, 1)
    learner.add_record(make_record(1.0))
    learner.reset()
    assert learner.last_obstacle is None
    assert not learner.grid.blocked_cells()
    assert len(learner.table) == 1
    learner.clear()
    assert learner.table == []


def test_escape_paths_start_at_the_agent():
    learner = PassiveLearner(create_empty_grid(9))
    paths = learner.escape_paths((4, 4))
    assert len(paths) == 32
    assert all(path[0] == (4, 4) for path in paths)


def test_suggestion_blocks_the_first_step_of_the_shortest_escape():
    grid = create_empty_grid(9)
    learner = PassiveLearner(grid)
    agent = (2, 4)
    cell = learner.suggest_obstacle(agent)
    assert max(abs(cell[0] - agent[0]), abs(cell[1] - agent[1])) == 1
    assert cell[0] == 1


def test_suggestion_when_sealed_falls_back_to_a_neighbour():
    grid = create_empty_grid(9)
    add_obstacles(grid, ring_cells(9, 2))
    learner = PassiveLearner(grid)
    cell = learner.suggest_obstacle((4, 4))
    assert max(abs(cell[0] - 4), abs(cell[1] - 4)) == 1
    assert not grid.is_blocked(*cell)


def test_suggestion_on_full_board_is_none():
    grid = create_empty_grid(3)
    add_obstacles(grid, [node.coord for node in grid.nodes.values() if node.coord != (1, 1)])
    assert PassiveLearner(grid).suggest_obstacle((1, 1)) is None
