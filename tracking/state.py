"""
Tracker Lifecycle Module.

Defines the TrackerState enum and the transition table for a tracking
session: Idle -> Calibrating -> Tracking -> Stopped, with Error reachable
from Calibrating or Tracking. Stopped and Error accept a fresh start.
"""

from enum import Enum
from typing import Any

from core.exceptions import InvalidTransitionError
from date_utils import get_current_utc_time


class TrackerState(Enum):
    """Enumeration of tracker lifecycle states."""

    IDLE = "idle"
    CALIBRATING = "calibrating"
    TRACKING = "tracking"
    STOPPED = "stopped"
    ERROR = "error"


_VALID_TRANSITIONS: dict[TrackerState, set[TrackerState]] = {
    TrackerState.IDLE: {TrackerState.CALIBRATING},
    TrackerState.CALIBRATING: {
        TrackerState.TRACKING,
        TrackerState.STOPPED,
        TrackerState.ERROR,
    },
    TrackerState.TRACKING: {TrackerState.STOPPED, TrackerState.ERROR},
    TrackerState.STOPPED: {TrackerState.CALIBRATING},
    TrackerState.ERROR: {TrackerState.CALIBRATING},
}


class TrackerLifecycle:
    """
    Holds the current state and the history of transitions.

    Errors recorded on entry to ERROR are keyed by the state that failed.
    """

    def __init__(self) -> None:
        self.state = TrackerState.IDLE
        self.state_history: list[dict[str, Any]] = []
        self.errors: dict[str, str] = {}

    def can_proceed_to(self, target_state: TrackerState) -> bool:
        return target_state in _VALID_TRANSITIONS.get(self.state, set())

    def set_state(
        self,
        new_state: TrackerState,
        error: str | None = None,
    ) -> TrackerState:
        """
        Move to ``new_state`` and record it in history.

        Args:
            new_state: The state to enter
            error: Optional error message when entering ERROR

        Returns:
            The previous state

        Raises:
            InvalidTransitionError: the transition is not in the table
        """
        previous_state = self.state
        if not self.can_proceed_to(new_state):
            msg = f"Cannot move from {previous_state.value} to {new_state.value}"
            raise InvalidTransitionError(
                msg,
                {"from": previous_state.value, "to": new_state.value},
            )
        self.state = new_state

        state_change = {
            "from": previous_state.value,
            "to": new_state.value,
            "timestamp": get_current_utc_time(),
        }

        if error and new_state == TrackerState.ERROR:
            state_change["error"] = error
            self.errors[previous_state.value] = error

        self.state_history.append(state_change)
        return previous_state

    def is_active(self) -> bool:
        return self.state in (TrackerState.CALIBRATING, TrackerState.TRACKING)

    def get_status(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "history": list(self.state_history),
            "errors": dict(self.errors),
        }
