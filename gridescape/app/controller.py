"""Application controller connecting a UI to the escape engine through Qt signals."""

import time
from typing import Optional
from PySide6.QtCore import QObject, QTimer, Signal

from ..domain.types import Coord, EngineConfig, GameMode, TurnResult, GridEscapeError
from ..utils.rng import SeededRNG
from .engine import EscapeEngine
from .fsm import TurnState

# Outcomes sent by the feedback buttons in USER mode
FEEDBACK_GOOD = 1.0
FEEDBACK_OKAY = 0.0
FEEDBACK_BAD = -1.0


class EscapeController(QObject):
    """
    Controller that schedules engine turns and reports progress to the UI.

    The engine never waits on its own; this controller is the scheduler that
    resumes it. A QTimer feeds elapsed time to the engine while the agent is
    moving. Feedback from the UI releases turns waiting in USER mode.

    Signals:
        state_changed: Emitted when the turn state changes
        agent_moved: Emitted on every animation tick with the display position
        feedback_requested: Emitted when a move waits for the player's rating
        turn_finished: Emitted with the TurnResult once a turn completes
        episode_ended: Emitted with WIN or LOSE when the episode ends
        score_changed: Emitted with (player, ai) after an episode ends
        grid_updated: Emitted when the board needs to be redrawn
        error_occurred: Emitted when an engine call fails
    """

    # Qt Signals
    state_changed = Signal(object)  # TurnState
    agent_moved = Signal(float, float)  # x, z display position
    feedback_requested = Signal()
    turn_finished = Signal(object)  # TurnResult
    episode_ended = Signal(object)  # TurnResult
    score_changed = Signal(int, int)  # player, ai
    data_points_changed = Signal(int)
    grid_updated = Signal()
    error_occurred = Signal(str)  # Error message

    def __init__(self, config: Optional[EngineConfig] = None, seed: Optional[int] = None):
        super().__init__()

        # Core components
        self._engine = EscapeEngine(config or EngineConfig(), rng=SeededRNG(seed),
                                    on_episode_end=self._on_episode_end)

        # Timer for move animation
        self._timer = QTimer()
        self._timer.timeout.connect(self._on_timer_tick)
        self._timer_interval = 16  # milliseconds
        self._last_tick: Optional[float] = None

        self._setup_state_callbacks()

    def _setup_state_callbacks(self):
        """Setup callbacks for state machine transitions."""
        machine = self._engine.state_machine
        for state in (TurnState.IDLE, TurnState.MOVING, TurnState.AWAITING_FEEDBACK,
                      TurnState.WON, TurnState.LOST):
            machine.on_state_enter(state, lambda context, s=state: self.state_changed.emit(s))

    # Properties

    @property
    def engine(self) -> EscapeEngine:
        """Get the escape engine."""
        return self._engine

    @property
    def config(self) -> EngineConfig:
        """Get the engine configuration."""
        return self._engine.config

    @property
    def current_state(self) -> TurnState:
        """Get the current turn state."""
        return self._engine.state

    @property
    def agent_position(self) -> Coord:
        """Get the agent's cell."""
        return self._engine.agent_position

    def is_animating(self) -> bool:
        """Whether the move timer is running."""
        return self._timer.isActive()

    # Player actions

    def place_obstacle(self, x: int, z: int) -> bool:
        """Place the player's obstacle. Rejected while the agent is moving."""
        try:
            added = self._engine.add_obstacle(x, z)
            self.grid_updated.emit()
            return added
        except GridEscapeError as e:
            self.error_occurred.emit(f"Cannot place obstacle: {str(e)}")
            return False

    def start_turn(self) -> bool:
        """Run the agent's turn. In ALGO mode the placer blocks a cell first."""
        try:
            if self.config.mode == GameMode.ALGO:
                self._engine.place_suggested_obstacle()
                self.grid_updated.emit()
            result = self._engine.run_turn()
        except GridEscapeError as e:
            self.error_occurred.emit(f"Cannot start turn: {str(e)}")
            return False

        self._handle_result(result)
        return True

    def provide_feedback(self, outcome: float) -> bool:
        """Rate the agent's last move in USER mode."""
        try:
            result = self._engine.set_external_feedback(outcome)
        except GridEscapeError as e:
            self.error_occurred.emit(f"Feedback ignored: {str(e)}")
            return False

        self._handle_result(result)
        return True

    def reset_game(self) -> bool:
        """Clear the board and put the agent back at its start."""
        try:
            self._timer.stop()
            self._last_tick = None
            self._engine.reset_grid()
            self.agent_moved.emit(*self._engine.display_position)
            self.grid_updated.emit()
            return True
        except Exception as e:
            self.error_occurred.emit(f"Failed to reset game: {str(e)}")
            return False

    def clear_ai(self):
        """Forget all experience."""
        self._engine.clear_experience()
        self.data_points_changed.emit(self._engine.data_points)

    def set_mode(self, mode: GameMode) -> bool:
        """Change the game mode between turns."""
        try:
            self._engine.set_mode(mode)
            return True
        except GridEscapeError as e:
            self.error_occurred.emit(f"Cannot change mode: {str(e)}")
            return False

    def set_passive_learning(self, enabled: bool):
        """Toggle the passive twin log."""
        self._engine.set_passive_learning(enabled)

    def analyze_block(self, x: int, z: int) -> Optional[float]:
        """Weight of a block as the agent sees it, for the analysis view."""
        try:
            return self._engine.get_block_weight((x, z))
        except GridEscapeError as e:
            self.error_occurred.emit(f"Cannot analyze block: {str(e)}")
            return None

    # Scheduling

    def _handle_result(self, result: TurnResult):
        """React to the engine's report after driving it."""
        if result == TurnResult.PENDING:
            if self._engine.state == TurnState.MOVING:
                self._start_timer()
            elif self._engine.state == TurnState.AWAITING_FEEDBACK:
                self._timer.stop()
                self.feedback_requested.emit()
            return

        self._timer.stop()
        self._last_tick = None
        self.agent_moved.emit(*self._engine.display_position)
        self.data_points_changed.emit(self._engine.data_points)
        self.grid_updated.emit()
        self.turn_finished.emit(result)

    def _start_timer(self):
        self._last_tick = time.monotonic()
        self._timer.start(self._timer_interval)

    def _on_timer_tick(self):
        """Called on each timer tick while the agent is moving."""
        try:
            now = time.monotonic()
            elapsed = now - self._last_tick if self._last_tick is not None else 0.0
            self._last_tick = now

            result = self._engine.resume(elapsed)
            self.agent_moved.emit(*self._engine.display_position)

            if result != TurnResult.PENDING or self._engine.state != TurnState.MOVING:
                self._handle_result(result)
        except Exception as e:
            self.error_occurred.emit(f"Timer tick error: {str(e)}")
            self._timer.stop()

    def _on_episode_end(self, result: TurnResult):
        scoreboard = self._engine.scoreboard
        self.score_changed.emit(scoreboard.player, scoreboard.ai)
        self.episode_ended.emit(result)

    def cleanup(self):
        """Stop timers before the application shuts down."""
        try:
            self._timer.stop()
        except Exception as e:
            print(f"Cleanup warning: {e}")
