"""Turn sequencer tying the board, policy and reward together behind one engine API."""

from dataclasses import dataclass, replace
from typing import Optional, Callable, Dict, Tuple

from ..domain.types import (
    Coord, Decision, EngineConfig, GameMode, TurnResult, Scoreboard,
    AnalysisReport, ExperienceRecord, LegalMask, Signature,
    EpisodeOverError, TurnInProgressError, InvalidPlacementError, GridEscapeError,
    DIRECTION_DELTAS
)
from ..domain.pathfinding import FloodFillPathfinder
from ..domain.classifier import detect_blocked_quadrants, legal_directions, block_weight
from ..domain.experience import ExperienceTable, ExperiencePolicy, make_record
from ..domain.reward import RewardFunction
from ..domain.passive import PassiveLearner
from ..utils.grid_factory import create_empty_grid, reset_grid
from ..utils.rng import SeededRNG
from .fsm import TurnStateMachine, TurnState


@dataclass
class TurnContext:
    """Everything gathered about the turn in flight."""
    origin: Coord
    legal_mask: LegalMask
    signature: Signature
    decision: Optional[Decision] = None
    destination: Optional[Coord] = None
    elapsed: float = 0.0
    outcome: Optional[float] = None
    feedback: Optional[float] = None


class EscapeEngine:
    """
    The agent's decision engine for one board.

    A turn runs synchronously up to the move, then suspends. The scheduler
    calls `resume` with elapsed time until the move completes. In USER mode
    the turn stays suspended until `set_external_feedback` supplies a score.
    Resetting the grid drops any suspended turn.
    """

    def __init__(self, config: Optional[EngineConfig] = None,
                 rng: Optional[SeededRNG] = None,
                 on_episode_end: Optional[Callable[[TurnResult], None]] = None):
        # Mode switches must not leak into the caller's config
        self.config = replace(config) if config else EngineConfig()
        self.rng = rng or SeededRNG()
        self.on_episode_end = on_episode_end

        # Core components
        self.grid = create_empty_grid(self.config.grid_size)
        self.pathfinder = FloodFillPathfinder(self.grid, self.config.unreachable_distance)
        self.reward = RewardFunction(self.pathfinder, on_unwinnable=self._on_unwinnable)
        self.table = ExperienceTable()
        self.policy = ExperiencePolicy(self.table, self.config, self.rng)
        self.passive = PassiveLearner(create_empty_grid(self.config.grid_size))
        self.scoreboard = Scoreboard()

        self._state_machine = TurnStateMachine()
        self._agent: Coord = self.config.agent_start
        self._turn: Optional[TurnContext] = None
        self._unwinnable = False
        self._turn_count = 0

        self._setup_state_callbacks()

    def _setup_state_callbacks(self):
        """Setup callbacks for state machine transitions."""
        self._state_machine.on_state_enter(TurnState.WON, self._on_won_entered)
        self._state_machine.on_state_enter(TurnState.LOST, self._on_lost_entered)

    # Properties

    @property
    def agent_position(self) -> Coord:
        """Cell the agent currently occupies."""
        return self._agent

    @property
    def state(self) -> TurnState:
        """Current phase of the turn state machine."""
        return self._state_machine.current_state

    @property
    def state_machine(self) -> TurnStateMachine:
        return self._state_machine

    @property
    def current_turn(self) -> Optional[TurnContext]:
        return self._turn

    @property
    def data_points(self) -> int:
        """Number of records in the experience table."""
        return len(self.table)

    @property
    def turn_count(self) -> int:
        """Turns completed in the current episode."""
        return self._turn_count

    @property
    def move_progress(self) -> float:
        """Fraction of the current move completed, for display interpolation."""
        if self.state != TurnState.MOVING or self._turn is None:
            return 0.0
        if self.config.move_duration <= 0:
            return 1.0
        return min(1.0, self._turn.elapsed / self.config.move_duration)

    @property
    def display_position(self) -> Tuple[float, float]:
        """Agent position interpolated along the current move."""
        if self.state != TurnState.MOVING or self._turn is None:
            return float(self._agent[0]), float(self._agent[1])
        t = self.move_progress
        (ox, oz), (dx, dz) = self._turn.origin, self._turn.destination
        return ox + (dx - ox) * t, oz + (dz - oz) * t

    # Board management

    def _check_not_busy(self):
        if self._state_machine.is_terminal():
            raise EpisodeOverError("The episode is over; reset the grid to play again")
        if self._state_machine.is_active():
            raise TurnInProgressError(
                f"A turn is in progress ({self._state_machine.get_state_description()})"
            )

    def add_obstacle(self, x: int, z: int) -> bool:
        """
        Block a cell for the rest of the episode.

        Returns:
            False if the cell was already blocked

        Raises:
            OutOfBoundsError: If the cell lies off the board
            InvalidPlacementError: If the agent stands on the cell
            TurnInProgressError: If the agent is mid-turn
            EpisodeOverError: If the episode has ended
        """
        self._check_not_busy()
        self.grid.node(x, z)
        if (x, z) == self._agent:
            raise InvalidPlacementError(f"Cannot place an obstacle on the agent at {(x, z)}")

        added = self.grid.add_obstacle(x, z)
        if added:
            self.passive.add_obstacle(x, z)
        return added

    def place_suggested_obstacle(self) -> Optional[Coord]:
        """Let the placer choose and block a cell. Returns the cell, or None if the board is full."""
        self._check_not_busy()
        cell = self.passive.suggest_obstacle(self._agent)
        if cell is not None:
            self.add_obstacle(*cell)
        return cell

    def reset_grid(self):
        """Start a new episode on an open board. Any suspended turn is discarded."""
        self._state_machine.reset_to_idle()
        self._turn = None
        self._unwinnable = False
        self._turn_count = 0
        reset_grid(self.grid)
        self.passive.reset()
        self._agent = self.config.agent_start

    def clear_experience(self):
        """Forget everything the agent has learned."""
        self.table.clear()
        self.passive.clear()

    def set_mode(self, mode: GameMode):
        """Switch how moves are scored and obstacles are placed."""
        if self._state_machine.is_active():
            raise TurnInProgressError("Cannot change mode during a turn")
        self.config.mode = mode

    def set_passive_learning(self, enabled: bool):
        """Turn the passive twin log on or off."""
        self.config.passive_learning = enabled

    # Analysis

    def get_block_weight(self, position: Coord) -> float:
        """Inverse distance from the agent to a cell; infinite on the agent's own cell."""
        return block_weight(self.grid, self._agent, position)

    def analyze(self) -> AnalysisReport:
        """Snapshot of how the agent currently reads the board."""
        report = detect_blocked_quadrants(self.grid, self._agent)
        weights = {cell: self.get_block_weight(cell) for cell in self.grid.blocked_cells()}
        return AnalysisReport(
            agent_position=self._agent,
            buckets=report.buckets,
            signature=report.signature,
            legal_mask=legal_directions(self.grid, self._agent),
            nearest_endpoint_distance=self.pathfinder.nearest_endpoint_distance(self._agent),
            block_weights=weights,
            data_points=self.data_points,
        )

    # Turn sequencing

    def run_turn(self) -> TurnResult:
        """
        Start the agent's turn and drive it until it suspends or ends.

        Raises:
            TurnInProgressError: If the previous turn has not finished
            EpisodeOverError: If the episode has ended
        """
        self._check_not_busy()

        if self.pathfinder.is_endpoint(self._agent):
            self._state_machine.transition(TurnState.WON)
            return TurnResult.WIN

        self._state_machine.transition(TurnState.COMPUTE_LEGAL_MOVES)
        legal_mask = legal_directions(self.grid, self._agent)
        if not any(legal_mask):
            return self._lose("no legal move")

        self._state_machine.transition(TurnState.COMPUTE_SIGNATURE)
        if not self.pathfinder.reachable_endpoints(self._agent):
            return self._lose("no reachable endpoint")
        signature = detect_blocked_quadrants(self.grid, self._agent).signature
        self._turn = TurnContext(origin=self._agent, legal_mask=legal_mask, signature=signature)

        self._state_machine.transition(TurnState.DECIDE_ACTION)
        decision = self.policy.decide_action(signature, self._agent, legal_mask)
        dx, dz = DIRECTION_DELTAS[decision.direction]
        self._turn.decision = decision
        self._turn.destination = (self._agent[0] + dx, self._agent[1] + dz)

        self._state_machine.transition(TurnState.MOVING)
        return self.resume(0.0)

    def resume(self, elapsed: float = 0.0) -> TurnResult:
        """Advance a suspended turn by `elapsed` seconds of animation time."""
        state = self._state_machine.current_state

        if state == TurnState.WON:
            return TurnResult.WIN
        if state == TurnState.LOST:
            return TurnResult.LOSE
        if self._turn is None:
            return TurnResult.CONTINUE

        if state == TurnState.MOVING:
            self._turn.elapsed += max(0.0, elapsed)
            if self._turn.elapsed < self.config.move_duration:
                return TurnResult.PENDING
            self._agent = self._turn.destination
            if self.config.external_scoring:
                self._state_machine.transition(TurnState.AWAITING_FEEDBACK)
                if self._turn.feedback is None:
                    return TurnResult.PENDING
                state = TurnState.AWAITING_FEEDBACK
            else:
                return self._score_automatically()

        if state == TurnState.AWAITING_FEEDBACK:
            if self._turn.feedback is None:
                return TurnResult.PENDING
            self._turn.outcome = self._turn.feedback
            return self._record()

        return TurnResult.PENDING

    def set_external_feedback(self, outcome: float) -> TurnResult:
        """
        Score the current move from outside and release the suspended turn.

        Raises:
            GridEscapeError: If no move is waiting to be scored, or the mode
                scores moves itself
        """
        if not self.config.external_scoring:
            raise GridEscapeError(
                f"Moves are scored automatically in {self.config.mode.value} mode"
            )
        if self._turn is None or self.state not in (TurnState.MOVING, TurnState.AWAITING_FEEDBACK):
            raise GridEscapeError("No move is waiting for feedback")
        self._turn.feedback = max(-1.0, min(1.0, float(outcome)))
        if self.state == TurnState.AWAITING_FEEDBACK:
            return self.resume(0.0)
        return TurnResult.PENDING

    def play_turn(self) -> TurnResult:
        """Run a whole auto-scored turn without waiting on animation time."""
        result = self.run_turn()
        if result == TurnResult.PENDING and self.state == TurnState.MOVING:
            result = self.resume(self.config.move_duration)
        return result

    def _score_automatically(self) -> TurnResult:
        self._state_machine.transition(TurnState.SCORING)
        outcome = self.reward.score_move(self._turn.origin, self._turn.destination)
        if self._unwinnable:
            return self._lose("no endpoints left")
        self._turn.outcome = outcome
        return self._record()

    def _record(self) -> TurnResult:
        turn = self._turn
        self._state_machine.transition(TurnState.RECORDING)

        record = make_record(turn.signature, turn.origin, turn.legal_mask,
                             turn.decision, turn.outcome)
        self.table.record_outcome(record)
        if self.config.passive_learning:
            self.passive.add_record(record)

        self._turn_count += 1
        self._log_turn(record, turn.decision)
        self._turn = None

        if self.pathfinder.is_endpoint(self._agent):
            self._state_machine.transition(TurnState.WON)
            return TurnResult.WIN

        self._state_machine.transition(TurnState.IDLE)
        return TurnResult.CONTINUE

    def _lose(self, reason: str) -> TurnResult:
        self._turn = None
        if self.config.verbose:
            print(f"Agent trapped at {self._agent}: {reason}")
        self._state_machine.transition(TurnState.LOST)
        return TurnResult.LOSE

    def _on_unwinnable(self):
        self._unwinnable = True

    def _log_turn(self, record: ExperienceRecord, decision: Decision):
        if not self.config.verbose:
            return
        kind = "explore" if decision.exploratory else f"exploit (pool {decision.candidate_pool_size})"
        print(f"Turn {self._turn_count}: {record.chosen_action.name} "
              f"{record.position} -> {self._agent}, {kind}, outcome {record.outcome:+.2f}")

    # State machine callbacks

    def _on_won_entered(self, context: Optional[Dict]):
        """Called when entering WON state."""
        self._finish_episode(TurnResult.WIN)

    def _on_lost_entered(self, context: Optional[Dict]):
        """Called when entering LOST state."""
        self._finish_episode(TurnResult.LOSE)

    def _finish_episode(self, result: TurnResult):
        self.scoreboard.record(result)
        if self.config.verbose:
            print(f"Episode over after {self._turn_count} turns: {result.value} ({self.scoreboard})")
        if self.on_episode_end:
            self.on_episode_end(result)

