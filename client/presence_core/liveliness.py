"""
LivelinessMachine — one challenge-response session against the camera.

  Idle → AwaitingPermission → ChallengeDisplayed → ActionWindowOpen
       → ActionConfirmed → Capturing → VerifyPending → ResultReady → Idle
                                   └─ capture failure ─→ ResultReady(errored)
  AwaitingPermission ─ denied ─→ Unavailable (left only via cancel)

The action is never detected. When the window elapses the user is
assumed to have complied (HEURISTIC_ACTION_CONFIRMATION).

All methods run on the scheduler's main loop. Every async continuation
carries the generation of the session that started it and is dropped if
that session is gone (cancelled, acknowledged, torn down).
"""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .challenge import LivelinessChallenge, select_challenge
from .config import log
from .constants import (
    ACTION_WINDOW_SEC, SETTLE_DELAY_SEC, HEURISTIC_ACTION_CONFIRMATION,
    MSG_CAMERA_UNAVAILABLE, MSG_FAILED,
)
from .errors import PermissionDenied
from .gateway import VerificationOutcome


class LivelinessState(Enum):
    IDLE = "idle"
    AWAITING_PERMISSION = "awaiting-permission"
    CHALLENGE_DISPLAYED = "challenge-displayed"
    ACTION_WINDOW_OPEN = "action-window-open"
    ACTION_CONFIRMED = "action-confirmed"
    CAPTURING = "capturing"
    VERIFY_PENDING = "verify-pending"
    RESULT_READY = "result-ready"
    UNAVAILABLE = "unavailable"


# Cancel is refused here; the caller must acknowledge the result instead.
_NOT_CANCELLABLE = (LivelinessState.IDLE, LivelinessState.RESULT_READY)


@dataclass
class LivelinessSession:
    generation: int
    token: str
    challenge: Optional[LivelinessChallenge] = None
    outcome: Optional[VerificationOutcome] = None
    timer: object = None
    gateway_calls: int = 0
    error: Optional[Exception] = None


class LivelinessMachine:

    def __init__(self, scheduler, camera, gateway, on_complete, on_cancel=None,
                 on_unavailable=None, on_state_change=None,
                 action_window_sec=ACTION_WINDOW_SEC, settle_delay_sec=SETTLE_DELAY_SEC,
                 rng=random):
        self._scheduler = scheduler
        self._camera = camera
        self._gateway = gateway
        self._on_complete = on_complete
        self._on_cancel = on_cancel
        self._on_unavailable = on_unavailable
        self._on_state_change = on_state_change
        self.action_window_sec = action_window_sec
        self.settle_delay_sec = settle_delay_sec
        self._rng = rng

        self.state = LivelinessState.IDLE
        self.session: Optional[LivelinessSession] = None
        self._generation = 0

    # ─── Public API ──────────────────────────────────────────

    def start(self, token) -> bool:
        if self.state is not LivelinessState.IDLE:
            log.warning("Liveliness start ignored in state %s", self.state.name)
            return False

        self._generation += 1
        self.session = LivelinessSession(generation=self._generation, token=token)

        if self._camera.permission_granted:
            self._show_challenge()
            return True

        self._set_state(LivelinessState.AWAITING_PERMISSION)
        gen = self._generation
        self._scheduler.submit(
            self._authorize,
            on_done=lambda _: self._on_permission(gen, None),
            on_error=lambda e: self._on_permission(gen, e),
        )
        return True

    def acknowledge(self) -> bool:
        """Dismiss the result: report it upward and release the session."""
        if self.state is not LivelinessState.RESULT_READY:
            return False
        outcome = self.session.outcome
        self._release()
        self._set_state(LivelinessState.IDLE)
        self._on_complete(outcome)
        return True

    def cancel(self) -> bool:
        """Abort from any state but Idle/ResultReady. No outcome is reported."""
        if self.state in _NOT_CANCELLABLE:
            return False
        log.info("Liveliness session cancelled in state %s", self.state.name)
        self._release()
        self._set_state(LivelinessState.IDLE)
        if self._on_cancel is not None:
            self._on_cancel()
        return True

    def teardown(self):
        """Drop everything silently (window closed, app shutting down)."""
        if self.session is not None:
            self._release()
        self.state = LivelinessState.IDLE

    # ─── Transitions ─────────────────────────────────────────

    def _authorize(self):
        """Worker side: open the camera or raise PermissionDenied."""
        if not self._camera.request_permission():
            raise PermissionDenied(MSG_CAMERA_UNAVAILABLE)

    def _on_permission(self, gen, error):
        if not self._is_current(gen, LivelinessState.AWAITING_PERMISSION):
            return
        if error is None:
            self._show_challenge()
            return
        if isinstance(error, PermissionDenied):
            log.warning("Camera permission denied — session unavailable")
        else:
            log.error("Camera authorization failed: %s", error)
        self.session.error = error
        self._set_state(LivelinessState.UNAVAILABLE)
        if self._on_unavailable is not None:
            self._on_unavailable(MSG_CAMERA_UNAVAILABLE)

    def _show_challenge(self):
        session = self.session
        session.challenge = select_challenge(self._rng)
        self._set_state(LivelinessState.CHALLENGE_DISPLAYED)

        gen = session.generation
        session.timer = self._scheduler.after(
            self.action_window_sec, self._on_window_elapsed, gen,
        )
        self._set_state(LivelinessState.ACTION_WINDOW_OPEN)

    def _on_window_elapsed(self, gen):
        if not self._is_current(gen, LivelinessState.ACTION_WINDOW_OPEN):
            return
        log.info("Action window elapsed — confirming (%s)", HEURISTIC_ACTION_CONFIRMATION)
        self.session.timer = self._scheduler.after(self.settle_delay_sec, self._capture, gen)
        self._set_state(LivelinessState.ACTION_CONFIRMED)

    def _capture(self, gen):
        if not self._is_current(gen, LivelinessState.ACTION_CONFIRMED):
            return
        session = self.session
        session.timer = None
        session.gateway_calls += 1
        self._set_state(LivelinessState.CAPTURING)

        def on_captured():
            self._scheduler.call_soon(self._on_captured, gen)

        self._scheduler.submit(
            self._gateway.capture_and_verify, session.token, on_captured,
            on_done=lambda outcome: self._on_outcome(gen, outcome),
            on_error=lambda e: self._on_outcome(gen, VerificationOutcome.errored(type(e), MSG_FAILED)),
        )

    def _on_captured(self, gen):
        if not self._is_current(gen, LivelinessState.CAPTURING):
            return
        self._set_state(LivelinessState.VERIFY_PENDING)

    def _on_outcome(self, gen, outcome):
        if not self._is_current(gen, LivelinessState.CAPTURING, LivelinessState.VERIFY_PENDING):
            return
        log.info("Liveliness result: %s", outcome.status.value)
        self.session.outcome = outcome
        self._set_state(LivelinessState.RESULT_READY)

    # ─── Helpers ─────────────────────────────────────────────

    def _is_current(self, gen, *states) -> bool:
        if self.session is None or self.session.generation != gen or self.state not in states:
            log.debug("Dropping stale continuation (gen=%d, state=%s)", gen, self.state.name)
            return False
        return True

    def _release(self):
        if self.session.timer is not None:
            self._scheduler.cancel(self.session.timer)
        self.session = None

    def _set_state(self, state):
        self.state = state
        log.info("Liveliness → %s", state.name)
        if self._on_state_change is not None:
            self._on_state_change(state, self.session)
