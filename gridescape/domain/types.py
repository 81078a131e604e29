"""Core type definitions for the grid escape decision engine."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional, Tuple, Dict, FrozenSet
import numpy as np

# Coordinate type for grid positions, (x, z) with north = +z
Coord = Tuple[int, int]

# Sentinel path length for pairs with no connecting path
UNREACHABLE = 1000

# Label of a cell the flood fill has not reached
UNVISITED = -1


class GridEscapeError(Exception):
    """Base class for grid escape errors."""


class OutOfBoundsError(GridEscapeError, IndexError):
    """Raised when a coordinate lies outside the board."""

    def __init__(self, coord: Coord, size: int):
        super().__init__(f"Coordinate {coord} is outside the {size}x{size} grid")
        self.coord = coord
        self.size = size


class NoLegalMoveError(GridEscapeError):
    """Raised when the policy is asked to decide with no legal direction."""


class TurnInProgressError(GridEscapeError):
    """Raised when a turn or placement would overlap a turn in flight."""


class EpisodeOverError(GridEscapeError):
    """Raised when the episode already ended in a win or a loss."""


class InvalidPlacementError(GridEscapeError, ValueError):
    """Raised when an obstacle cannot be placed at the requested cell."""


class Direction(IntEnum):
    """The eight compass moves, in the ordinal order used by every lookup table."""
    N = 0
    S = 1
    W = 2
    E = 3
    NE = 4
    SE = 5
    NW = 6
    SW = 7

    @property
    def delta(self) -> Coord:
        """Displacement vector for this direction."""
        return DIRECTION_DELTAS[self]

    @property
    def rotation(self) -> float:
        """Facing angle in degrees (presentation only)."""
        return DIRECTION_ROTATIONS[self]

    @property
    def is_diagonal(self) -> bool:
        """Whether this direction moves on both axes."""
        dx, dz = DIRECTION_DELTAS[self]
        return dx != 0 and dz != 0


# Lookup tables indexed by Direction ordinal
DIRECTION_DELTAS: Tuple[Coord, ...] = (
    (0, 1),    # N
    (0, -1),   # S
    (-1, 0),   # W
    (1, 0),    # E
    (1, 1),    # NE
    (1, -1),   # SE
    (-1, 1),   # NW
    (-1, -1),  # SW
)

DIRECTION_ROTATIONS: Tuple[float, ...] = (
    0.0,    # N
    180.0,  # S
    270.0,  # W
    90.0,   # E
    45.0,   # NE
    135.0,  # SE
    315.0,  # NW
    225.0,  # SW
)


class Quadrant(Enum):
    """Diagonal regions around the agent used to summarise obstruction."""
    NE = "NE"
    NW = "NW"
    SE = "SE"
    SW = "SW"


Signature = FrozenSet[Quadrant]
LegalMask = Tuple[bool, ...]


class TurnResult(Enum):
    """Outcome reported to collaborators after driving a turn."""
    WIN = "win"
    LOSE = "lose"
    CONTINUE = "continue"
    PENDING = "pending"  # Suspended on animation or external feedback

    @property
    def is_terminal(self) -> bool:
        return self in (TurnResult.WIN, TurnResult.LOSE)


class GameMode(Enum):
    """Ways a game can be played."""
    CLASSIC = "classic"  # Moves scored automatically
    USER = "user"        # Moves scored by the player through feedback
    ALGO = "algo"        # Auto-scored, obstacles chosen by the placer


@dataclass
class GridNode:
    """A single board cell."""
    id: str
    coord: Coord
    blocked: bool = False
    visited: int = UNVISITED

    def reset(self):
        """Clear the cell back to an open, unlabeled state."""
        self.blocked = False
        self.visited = UNVISITED


@dataclass
class Grid:
    """Square board of cells indexed by (x, z)."""
    size: int
    nodes: Dict[str, GridNode]

    def is_within_bounds(self, x: int, z: int) -> bool:
        """Check if coordinate is within grid bounds."""
        return 0 <= x < self.size and 0 <= z < self.size

    def node(self, x: int, z: int) -> GridNode:
        """Get node at coordinate, raising OutOfBoundsError outside the board."""
        if not self.is_within_bounds(x, z):
            raise OutOfBoundsError((x, z), self.size)
        return self.nodes[f"{x},{z}"]

    def is_blocked(self, x: int, z: int) -> bool:
        """Whether the cell is blocked; out-of-bounds cells count as blocked."""
        if not self.is_within_bounds(x, z):
            return True
        return self.nodes[f"{x},{z}"].blocked

    def add_obstacle(self, x: int, z: int) -> bool:
        """Block a cell. Returns False if it was already blocked."""
        node = self.node(x, z)
        if node.blocked:
            return False
        node.blocked = True
        return True

    def reset(self):
        """Unblock every cell and clear its flood-fill label."""
        for node in self.nodes.values():
            node.reset()

    def reset_visited(self):
        """Clear flood-fill labels only."""
        for node in self.nodes.values():
            node.visited = UNVISITED

    def blocked_cells(self) -> list[Coord]:
        """Coordinates of every blocked cell, in row-major order."""
        return [node.coord for node in self.nodes.values() if node.blocked]

    def blocked_mask(self) -> np.ndarray:
        """Boolean array indexed [x, z] marking blocked cells."""
        mask = np.zeros((self.size, self.size), dtype=bool)
        for node in self.nodes.values():
            if node.blocked:
                mask[node.coord] = True
        return mask

    @property
    def center(self) -> Coord:
        """The center cell of the board."""
        return (self.size // 2, self.size // 2)


@dataclass(frozen=True)
class ExperienceRecord:
    """One logged decision: the state seen, the move made and how it scored."""
    signature: Signature
    position: Coord
    legal_actions: LegalMask
    chosen_action: Direction
    outcome: float


@dataclass(frozen=True)
class PassiveRecord:
    """Decision mirrored from the placer's point of view."""
    signature: Signature
    obstacle_position: Optional[Coord]
    outcome: float


@dataclass
class QuadrantReport:
    """Rounded obstruction per quadrant and the most obstructed ones."""
    buckets: Dict[Quadrant, int]
    signature: Signature


@dataclass
class Decision:
    """Action chosen by the policy."""
    direction: Direction
    exploratory: bool
    candidate_pool_size: int = 0


@dataclass
class Scoreboard:
    """Running tally of finished episodes."""
    player: int = 0  # Agent trapped
    ai: int = 0      # Agent escaped

    def record(self, result: TurnResult):
        """Add a finished episode to the tally."""
        if result == TurnResult.WIN:
            self.ai += 1
        elif result == TurnResult.LOSE:
            self.player += 1

    def __str__(self) -> str:
        return f"Score: {self.player}-{self.ai}"


@dataclass
class AnalysisReport:
    """Read-only snapshot of how the agent currently sees the board."""
    agent_position: Coord
    buckets: Dict[Quadrant, int]
    signature: Signature
    legal_mask: LegalMask
    nearest_endpoint_distance: int
    block_weights: Dict[Coord, float] = field(default_factory=dict)
    data_points: int = 0


@dataclass
class EngineConfig:
    """Configuration for the escape engine."""
    grid_size: int = 9
    agent_start: Optional[Coord] = None  # None places the agent on the center cell
    unreachable_distance: int = UNREACHABLE
    move_duration: float = 0.5  # seconds the agent spends moving between cells

    # Policy weighting
    similarity_threshold: float = 0.5
    similar_weight_scale: float = 0.6
    position_similarity_weight: float = 0.25
    # Anchors the position term on the agent instead of the origin
    corrected_position_similarity: bool = False

    mode: GameMode = GameMode.CLASSIC
    passive_learning: bool = False
    verbose: bool = False

    def __post_init__(self):
        if self.grid_size < 3:
            raise ValueError(f"Grid size must be at least 3, got {self.grid_size}")
        if self.agent_start is None:
            self.agent_start = (self.grid_size // 2, self.grid_size // 2)
        x, z = self.agent_start
        if not (0 <= x < self.grid_size and 0 <= z < self.grid_size):
            raise ValueError(f"Agent start {self.agent_start} is outside the grid")
        if self.move_duration < 0:
            raise ValueError(f"Move duration must be non-negative, got {self.move_duration}")

    @property
    def external_scoring(self) -> bool:
        """Whether moves wait for feedback instead of being scored automatically."""
        return self.mode == GameMode.USER
