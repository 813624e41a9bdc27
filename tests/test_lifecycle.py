import pytest

from core.exceptions import InvalidTransitionError
from tracking.state import TrackerLifecycle, TrackerState


def test_initial_state_is_idle() -> None:
    lifecycle = TrackerLifecycle()
    assert lifecycle.state is TrackerState.IDLE
    assert not lifecycle.is_active()
    assert lifecycle.get_status() == {"state": "idle", "history": [], "errors": {}}


def test_happy_path_records_history() -> None:
    lifecycle = TrackerLifecycle()

    for state in (TrackerState.CALIBRATING, TrackerState.TRACKING, TrackerState.STOPPED):
        lifecycle.set_state(state)

    assert [(h["from"], h["to"]) for h in lifecycle.state_history] == [
        ("idle", "calibrating"),
        ("calibrating", "tracking"),
        ("tracking", "stopped"),
    ]


@pytest.mark.parametrize(
    ("path", "target"),
    [
        ([], TrackerState.TRACKING),
        ([], TrackerState.STOPPED),
        ([TrackerState.CALIBRATING], TrackerState.IDLE),
        ([TrackerState.CALIBRATING, TrackerState.TRACKING], TrackerState.CALIBRATING),
        ([TrackerState.CALIBRATING, TrackerState.STOPPED], TrackerState.TRACKING),
    ],
)
def test_invalid_transitions_raise(path, target: TrackerState) -> None:
    lifecycle = TrackerLifecycle()
    for state in path:
        lifecycle.set_state(state)
    before = lifecycle.state

    with pytest.raises(InvalidTransitionError) as excinfo:
        lifecycle.set_state(target)

    assert lifecycle.state is before
    assert excinfo.value.details == {"from": before.value, "to": target.value}


@pytest.mark.parametrize("terminal", [TrackerState.STOPPED, TrackerState.ERROR])
def test_terminal_states_allow_restart(terminal: TrackerState) -> None:
    lifecycle = TrackerLifecycle()
    lifecycle.set_state(TrackerState.CALIBRATING)
    lifecycle.set_state(terminal)

    assert lifecycle.can_proceed_to(TrackerState.CALIBRATING)
    assert lifecycle.set_state(TrackerState.CALIBRATING) is terminal


def test_error_is_recorded_against_failed_state() -> None:
    lifecycle = TrackerLifecycle()
    lifecycle.set_state(TrackerState.CALIBRATING)
    lifecycle.set_state(TrackerState.ERROR, error="no fix")

    assert lifecycle.errors == {"calibrating": "no fix"}
    assert lifecycle.state_history[-1]["error"] == "no fix"
    assert lifecycle.get_status()["state"] == "error"
