"""Shared fixtures for the grid escape tests."""

import pytest

from gridescape.domain.pathfinding import FloodFillPathfinder
from gridescape.utils.grid_factory import create_empty_grid


@pytest.fixture
def grid():
    """An open 9x9 board."""
    return create_empty_grid(9)


@pytest.fixture
def pathfinder(grid):
    return FloodFillPathfinder(grid)


@pytest.fixture(scope="session")
def qapp():
    """A Qt core application for controller tests; no display is needed."""
    from PySide6.QtCore import QCoreApplication
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app
