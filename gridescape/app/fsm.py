"""Finite State Machine for the phases of one agent turn."""

from enum import Enum, auto
from typing import Dict, Callable, Optional, List


class TurnState(Enum):
    """Phases of a turn, plus the two terminal outcomes of an episode."""
    IDLE = auto()
    COMPUTE_LEGAL_MOVES = auto()
    COMPUTE_SIGNATURE = auto()
    DECIDE_ACTION = auto()
    MOVING = auto()
    SCORING = auto()
    AWAITING_FEEDBACK = auto()
    RECORDING = auto()
    WON = auto()
    LOST = auto()


class TurnStateMachine:
    """
    State machine for sequencing a turn.

    State Transitions:
    IDLE -> COMPUTE_LEGAL_MOVES (turn started) or WON (already on the border)
    COMPUTE_LEGAL_MOVES -> COMPUTE_SIGNATURE, or LOST (no legal move)
    COMPUTE_SIGNATURE -> DECIDE_ACTION, or LOST (no reachable endpoint)
    DECIDE_ACTION -> MOVING
    MOVING -> SCORING (auto scoring) or AWAITING_FEEDBACK (external scoring)
    SCORING / AWAITING_FEEDBACK -> RECORDING
    RECORDING -> IDLE, or WON (agent reached the border)
    any state -> IDLE (episode reset)
    """

    def __init__(self):
        self.current_state = TurnState.IDLE
        self._enter_callbacks: Dict[TurnState, List[Callable[[Optional[Dict]], None]]] = {}
        self._exit_callbacks: Dict[TurnState, List[Callable[[Optional[Dict]], None]]] = {}

        # Define valid state transitions
        self._valid_transitions = {
            TurnState.IDLE: {TurnState.COMPUTE_LEGAL_MOVES, TurnState.WON},
            TurnState.COMPUTE_LEGAL_MOVES: {TurnState.COMPUTE_SIGNATURE, TurnState.LOST},
            TurnState.COMPUTE_SIGNATURE: {TurnState.DECIDE_ACTION, TurnState.LOST},
            TurnState.DECIDE_ACTION: {TurnState.MOVING, TurnState.LOST},
            TurnState.MOVING: {TurnState.SCORING, TurnState.AWAITING_FEEDBACK},
            TurnState.SCORING: {TurnState.RECORDING, TurnState.LOST},
            TurnState.AWAITING_FEEDBACK: {TurnState.RECORDING},
            TurnState.RECORDING: {TurnState.IDLE, TurnState.WON},
            TurnState.WON: set(),
            TurnState.LOST: set(),
        }
        # Reset is always allowed
        for targets in self._valid_transitions.values():
            targets.add(TurnState.IDLE)

    def on_state_enter(self, state: TurnState, callback: Callable[[Optional[Dict]], None]):
        """Register callback for state entry. Callbacks run in registration order."""
        self._enter_callbacks.setdefault(state, []).append(callback)

    def on_state_exit(self, state: TurnState, callback: Callable[[Optional[Dict]], None]):
        """Register callback for state exit."""
        self._exit_callbacks.setdefault(state, []).append(callback)

    def can_transition(self, to_state: TurnState) -> bool:
        """Check if transition to target state is valid."""
        return to_state in self._valid_transitions.get(self.current_state, set())

    def transition(self, to_state: TurnState, context: Optional[Dict] = None) -> bool:
        """Attempt to transition to target state."""
        if not self.can_transition(to_state):
            return False

        from_state = self.current_state

        for callback in self._exit_callbacks.get(from_state, []):
            callback(context)

        self.current_state = to_state

        for callback in self._enter_callbacks.get(to_state, []):
            callback(context)

        return True

    def reset_to_idle(self, context: Optional[Dict] = None) -> bool:
        """Drop whatever turn is in flight."""
        return self.transition(TurnState.IDLE, context)

    # State checking methods

    def is_idle(self) -> bool:
        """Check if in idle state."""
        return self.current_state == TurnState.IDLE

    def is_terminal(self) -> bool:
        """Check if the episode has ended."""
        return self.current_state in {TurnState.WON, TurnState.LOST}

    def is_suspended(self) -> bool:
        """Check if the turn is waiting on time or feedback."""
        return self.current_state in {TurnState.MOVING, TurnState.AWAITING_FEEDBACK}

    def is_active(self) -> bool:
        """Check if a turn is in flight."""
        return not self.is_idle() and not self.is_terminal()

    def get_state_description(self) -> str:
        """Get human-readable state description."""
        descriptions = {
            TurnState.IDLE: "Ready - place an obstacle",
            TurnState.COMPUTE_LEGAL_MOVES: "Checking available moves",
            TurnState.COMPUTE_SIGNATURE: "Reading the board",
            TurnState.DECIDE_ACTION: "Choosing a move",
            TurnState.MOVING: "Agent moving",
            TurnState.SCORING: "Scoring the move",
            TurnState.AWAITING_FEEDBACK: "Rate the agent's move",
            TurnState.RECORDING: "Recording experience",
            TurnState.WON: "The agent escaped",
            TurnState.LOST: "The agent is trapped",
        }
        return descriptions.get(self.current_state, "Unknown state")
