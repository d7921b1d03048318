import random

import pytest

from presence_core.challenge import LivelinessChallenge
from presence_core.errors import DeviceError, PermissionDenied
from presence_core.gateway import OutcomeStatus, VerificationOutcome
from presence_core.liveliness import LivelinessMachine, LivelinessState as S

from conftest import FakeCamera, FakeGateway


@pytest.fixture()
def events():
    return {"states": [], "completed": [], "cancelled": 0, "unavailable": []}


def _machine(scheduler, camera, gateway, events):
    def on_cancel():
        events["cancelled"] += 1

    return LivelinessMachine(
        scheduler, camera, gateway,
        on_complete=events["completed"].append,
        on_cancel=on_cancel,
        on_unavailable=events["unavailable"].append,
        on_state_change=lambda state, session: events["states"].append(state),
        rng=random.Random(7),
    )


def test_full_session_walks_every_state_in_order(scheduler, camera, events):
    gateway = FakeGateway()
    machine = _machine(scheduler, camera, gateway, events)

    assert machine.start("QR123")
    assert machine.state is S.ACTION_WINDOW_OPEN
    assert isinstance(machine.session.challenge, LivelinessChallenge)

    scheduler.advance(2.5)
    assert machine.state is S.ACTION_WINDOW_OPEN

    scheduler.advance(0.5)
    assert machine.state is S.ACTION_CONFIRMED

    scheduler.advance(1)
    assert machine.state is S.CAPTURING

    scheduler.run_jobs()
    assert machine.state is S.RESULT_READY
    assert machine.session.outcome.verified
    assert events["completed"] == []

    assert machine.acknowledge()
    assert machine.state is S.IDLE
    assert machine.session is None
    assert [o.status for o in events["completed"]] == [OutcomeStatus.VERIFIED]
    assert scheduler.pending_timers == 0
    assert events["states"] == [
        S.CHALLENGE_DISPLAYED, S.ACTION_WINDOW_OPEN, S.ACTION_CONFIRMED,
        S.CAPTURING, S.VERIFY_PENDING, S.RESULT_READY, S.IDLE,
    ]


def test_gateway_invoked_once_per_session(scheduler, camera, events):
    gateway = FakeGateway()
    machine = _machine(scheduler, camera, gateway, events)

    machine.start("T1")
    scheduler.run_until_idle()
    scheduler.run_until_idle()

    assert gateway.calls == ["T1"]
    assert machine.session.gateway_calls == 1


def test_permission_requested_when_not_yet_granted(scheduler, events):
    camera = FakeCamera(granted=False, grant_on_request=True)
    machine = _machine(scheduler, camera, FakeGateway(), events)

    machine.start("T1")
    assert machine.state is S.AWAITING_PERMISSION
    assert machine.session.challenge is None

    scheduler.run_jobs()
    assert camera.permission_requests == 1
    assert machine.state is S.ACTION_WINDOW_OPEN


def test_permission_denied_is_terminal_until_cancelled(scheduler, events):
    camera = FakeCamera(granted=False, grant_on_request=False)
    gateway = FakeGateway()
    machine = _machine(scheduler, camera, gateway, events)

    machine.start("T1")
    scheduler.run_until_idle()

    assert machine.state is S.UNAVAILABLE
    assert len(events["unavailable"]) == 1
    assert "camera" in events["unavailable"][0].lower()
    assert camera.permission_requests == 1
    assert isinstance(machine.session.error, PermissionDenied)
    assert gateway.calls == []
    assert scheduler.pending_timers == 0

    assert machine.cancel()
    assert machine.state is S.IDLE
    assert events["completed"] == []


def test_camera_error_while_authorizing_makes_session_unavailable(scheduler, events):
    camera = FakeCamera(granted=False)

    def broken_open():
        raise DeviceError("no video device")

    camera.request_permission = broken_open
    gateway = FakeGateway()
    machine = _machine(scheduler, camera, gateway, events)

    machine.start("T1")
    scheduler.run_until_idle()

    assert machine.state is S.UNAVAILABLE
    assert isinstance(machine.session.error, DeviceError)
    assert len(events["unavailable"]) == 1
    assert gateway.calls == []


def test_capture_failure_skips_verify(scheduler, camera, events):
    gateway = FakeGateway(capture_fails=True)
    machine = _machine(scheduler, camera, gateway, events)

    machine.start("T1")
    scheduler.run_until_idle()

    assert machine.state is S.RESULT_READY
    assert machine.session.outcome.status is OutcomeStatus.ERRORED
    assert machine.session.outcome.error is DeviceError
    assert S.VERIFY_PENDING not in events["states"]
    assert gateway.verify_calls == 0


def test_rejected_outcome_reported_on_acknowledge(scheduler, camera, events):
    machine = _machine(scheduler, camera, FakeGateway(VerificationOutcome.rejected()), events)

    machine.start("T1")
    scheduler.run_until_idle()
    machine.acknowledge()

    assert len(events["completed"]) == 1
    assert not events["completed"][0].verified


@pytest.mark.parametrize("elapsed", [0, 3.5, 4])
def test_cancel_before_result_returns_to_idle_silently(scheduler, camera, events, elapsed):
    gateway = FakeGateway()
    machine = _machine(scheduler, camera, gateway, events)

    machine.start("T1")
    scheduler.advance(elapsed)
    assert machine.state is not S.RESULT_READY

    assert machine.cancel()
    assert machine.state is S.IDLE
    assert scheduler.pending_timers == 0

    scheduler.run_until_idle()
    assert machine.state is S.IDLE
    assert events["completed"] == []
    assert events["cancelled"] == 1


def test_late_gateway_result_after_cancel_is_dropped(scheduler, camera, events):
    gateway = FakeGateway()
    machine = _machine(scheduler, camera, gateway, events)

    machine.start("T1")
    scheduler.advance(4)
    assert machine.state is S.CAPTURING

    machine.cancel()
    scheduler.run_jobs()

    assert gateway.calls == ["T1"]
    assert machine.state is S.IDLE
    assert machine.session is None
    assert events["completed"] == []


def test_late_result_does_not_leak_into_next_session(scheduler, camera, events):
    gateway = FakeGateway(VerificationOutcome.rejected())
    machine = _machine(scheduler, camera, gateway, events)

    machine.start("OLD")
    scheduler.advance(4)
    machine.cancel()

    machine.start("NEW")
    scheduler.run_jobs()

    assert machine.state is S.ACTION_WINDOW_OPEN
    assert machine.session.token == "NEW"
    assert machine.session.outcome is None


def test_cancel_refused_in_result_ready_and_idle(scheduler, camera, events):
    machine = _machine(scheduler, camera, FakeGateway(), events)

    assert not machine.cancel()

    machine.start("T1")
    scheduler.run_until_idle()
    assert not machine.cancel()
    assert machine.state is S.RESULT_READY


def test_start_ignored_while_session_active(scheduler, camera, events):
    machine = _machine(scheduler, camera, FakeGateway(), events)

    assert machine.start("T1")
    assert not machine.start("T2")
    assert machine.session.token == "T1"


def test_teardown_clears_timers_without_callbacks(scheduler, camera, events):
    machine = _machine(scheduler, camera, FakeGateway(), events)

    machine.start("T1")
    machine.teardown()
    scheduler.run_until_idle()

    assert machine.state is S.IDLE
    assert scheduler.pending_timers == 0
    assert events["completed"] == []
    assert events["cancelled"] == 0


def test_custom_timings_are_honored(scheduler, camera, events):
    machine = _machine(scheduler, camera, FakeGateway(), events)
    machine.action_window_sec = 5
    machine.settle_delay_sec = 2

    machine.start("T1")
    scheduler.advance(4.5)
    assert machine.state is S.ACTION_WINDOW_OPEN
    scheduler.advance(0.5)
    assert machine.state is S.ACTION_CONFIRMED
    scheduler.advance(1.5)
    assert machine.state is S.ACTION_CONFIRMED
    scheduler.advance(0.5)
    assert machine.state is S.CAPTURING
