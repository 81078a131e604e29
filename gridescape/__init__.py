"""Grid Escape - an experience-driven agent that learns to escape a shrinking board.

This package implements the agent's decision engine: flood-fill pathfinding,
a blocked-quadrant state classifier, a weighted experience table that stands in
for Q-learning, and a reward function based on escape-distance deltas.
"""

__version__ = "1.0.0"
__author__ = "Grid Escape Demo"
