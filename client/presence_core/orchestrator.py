"""
ScanOrchestrator — scan → liveliness → commit, with retry/cancel policy.

The processing guard is the current PipelineRun: set synchronously when a
scan is accepted, cleared on every terminal path (commit success, decline,
cancel, camera unavailable). Scans arriving while a run exists are dropped,
not queued. After a successful commit the flow is finished: scans stay
refused until the user dismisses the success message, so a code still in
view is not accepted a second time. The scanner gates on accepting_scans.

Each run has a generation. A commit result whose run is gone (cancelled,
declined) is dropped silently.
"""

import random
from dataclasses import dataclass

from .config import log
from .constants import (
    ACTION_WINDOW_SEC, SETTLE_DELAY_SEC, DEFAULT_COURSE_ID,
    MSG_FAILED_TITLE, MSG_MARK_FAILED,
)
from .errors import PresenceError
from .liveliness import LivelinessMachine, LivelinessState


@dataclass
class PipelineRun:
    generation: int
    token: str
    commit_attempts: int = 0
    retry_chosen: bool = False


class ScanOrchestrator:

    def __init__(self, scheduler, camera, gateway, commit_adapter, presenter,
                 course_id=DEFAULT_COURSE_ID, action_window_sec=ACTION_WINDOW_SEC,
                 settle_delay_sec=SETTLE_DELAY_SEC, rng=random, leave_on_decline=False):
        self._scheduler = scheduler
        self._commit_adapter = commit_adapter
        self._presenter = presenter
        self.course_id = course_id
        self.leave_on_decline = leave_on_decline
        self.last_message = None

        self._run = None
        self._generation = 0
        self._finished = False

        self.machine = LivelinessMachine(
            scheduler, camera, gateway,
            on_complete=self._on_liveliness_complete,
            on_cancel=self._on_liveliness_cancelled,
            on_unavailable=self._on_camera_unavailable,
            on_state_change=self._on_state_change,
            action_window_sec=action_window_sec,
            settle_delay_sec=settle_delay_sec,
            rng=rng,
        )

    @property
    def is_processing(self) -> bool:
        return self._run is not None

    @property
    def accepting_scans(self) -> bool:
        return self._run is None and not self._finished

    @property
    def token(self):
        return self._run.token if self._run is not None else None

    # ─── Scan input ──────────────────────────────────────────

    def on_scan(self, raw_token) -> bool:
        """Accept a scanned payload unless a pipeline is already in flight."""
        if self._run is not None:
            log.debug("Scan dropped — pipeline already in flight")
            return False
        if self._finished:
            log.debug("Scan dropped — attendance already marked")
            return False

        if not raw_token or not raw_token.strip():
            log.warning("Ignoring empty scan payload")
            return False

        self._generation += 1
        self._run = PipelineRun(generation=self._generation, token=raw_token)
        log.info("Scan accepted (run %d) — starting liveliness check", self._generation)
        self.machine.start(raw_token)
        return True

    def cancel(self) -> bool:
        """User cancel. Aborts liveliness or abandons an in-flight commit."""
        if self._run is None:
            return False
        if self.machine.state is LivelinessState.RESULT_READY:
            return False
        if self.machine.state is not LivelinessState.IDLE:
            return self.machine.cancel()
        log.info("Run %d abandoned by user", self._run.generation)
        self._clear_guard()
        return True

    def leave(self):
        """Navigate away: cancel whatever is running and close the flow."""
        self.cancel()
        self._presenter.leave()

    def shutdown(self):
        self.machine.teardown()
        self._clear_guard()

    # ─── Liveliness callbacks ────────────────────────────────

    def _on_state_change(self, state, session):
        self._presenter.show_state(state, session)
        if state is not LivelinessState.RESULT_READY:
            return

        outcome = session.outcome
        if outcome.verified:
            self._presenter.show_result(outcome, on_dismiss=self.machine.acknowledge)
        else:
            self._presenter.ask_retry(
                MSG_FAILED_TITLE, outcome.message,
                on_retry=lambda: self._resolve_failed_result(retry=True),
                on_decline=lambda: self._resolve_failed_result(retry=False),
                decline_label="Leave" if self.leave_on_decline else "Not Now",
            )

    def _resolve_failed_result(self, retry):
        if self._run is None:
            return
        self._run.retry_chosen = retry
        self.machine.acknowledge()

    def _on_liveliness_complete(self, outcome):
        run = self._run
        if run is None:
            return

        if outcome.verified:
            self._commit(run)
            return

        if outcome.transport_failed:
            log.warning("Run %d: verifier unreachable", run.generation)
        else:
            log.info("Run %d: not verified (%s)", run.generation, outcome.status.value)

        self._clear_guard()
        if run.retry_chosen or not self.leave_on_decline:
            self._presenter.show_scanner()
        else:
            self._presenter.leave()

    def _on_liveliness_cancelled(self):
        self._clear_guard()
        self._presenter.show_scanner()

    def _on_camera_unavailable(self, message):
        self._presenter.show_message("Camera Unavailable", message, on_ok=self.leave)

    # ─── Commit ──────────────────────────────────────────────

    def _commit(self, run):
        run.commit_attempts += 1
        gen = run.generation
        log.info("Run %d: committing attendance (attempt %d)", gen, run.commit_attempts)
        self._presenter.show_busy("Marking attendance...")
        self._scheduler.submit(
            self._commit_adapter.commit, run.token, self.course_id,
            on_done=lambda message: self._on_committed(gen, message),
            on_error=lambda e: self._on_commit_failed(gen, e),
        )

    def _on_committed(self, gen, message):
        if not self._is_current(gen):
            return
        self._finished = True
        self._clear_guard()
        self.last_message = message
        self._presenter.show_message("Success", message, on_ok=self._end_flow)

    def _end_flow(self):
        self._finished = False
        self._presenter.leave()

    def _on_commit_failed(self, gen, error):
        if not self._is_current(gen):
            return
        message = error.message if isinstance(error, PresenceError) else MSG_MARK_FAILED
        self.last_message = message
        self._presenter.ask_retry(
            "Error", message,
            on_retry=lambda: self._retry_commit(gen),
            on_decline=lambda: self._abandon_commit(gen),
        )

    def _retry_commit(self, gen):
        if self._is_current(gen):
            self._commit(self._run)

    def _abandon_commit(self, gen):
        if not self._is_current(gen):
            return
        self._clear_guard()
        self._presenter.leave()

    # ─── Guard ───────────────────────────────────────────────

    def _is_current(self, gen) -> bool:
        if self._run is None or self._run.generation != gen:
            log.debug("Dropping late result for run %d", gen)
            return False
        return True

    def _clear_guard(self):
        if self._run is not None:
            log.info("Run %d finished — guard cleared", self._run.generation)
        self._run = None
