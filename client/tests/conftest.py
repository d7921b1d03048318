import os
import tempfile
from collections import deque

import pytest

# config.py creates its home directory and log file at import time.
os.environ.setdefault("PRESENCE_HOME", tempfile.mkdtemp(prefix="presence-test-"))

from presence_core.constants import MSG_CAPTURE_FAILED  # noqa: E402
from presence_core.errors import DeviceError  # noqa: E402
from presence_core.gateway import VerificationOutcome  # noqa: E402


class ManualScheduler:
    """Deterministic stand-in for TkScheduler: time only moves on advance()."""

    def __init__(self):
        self.now = 0.0
        self.submitted = []
        self._timers = {}
        self._next_handle = 0
        self._jobs = deque()

    @property
    def pending_timers(self):
        return len(self._timers)

    @property
    def pending_jobs(self):
        return len(self._jobs)

    def after(self, delay_sec, fn, *args):
        self._next_handle += 1
        handle = self._next_handle
        self._timers[handle] = (self.now + delay_sec, handle, fn, args)
        return handle

    def cancel(self, handle):
        self._timers.pop(handle, None)

    def submit(self, fn, *args, on_done=None, on_error=None):
        self.submitted.append(fn)
        self._jobs.append(("work", fn, args, on_done, on_error))

    def call_soon(self, fn, *args):
        self._jobs.append(("call", fn, args, None, None))

    def run_jobs(self):
        """Run queued work; results are queued behind anything work posted."""
        while self._jobs:
            kind, fn, args, on_done, on_error = self._jobs.popleft()
            if kind == "call":
                fn(*args)
                continue
            try:
                result = fn(*args)
            except Exception as e:
                if on_error is not None:
                    self.call_soon(on_error, e)
                continue
            if on_done is not None:
                self.call_soon(on_done, result)

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [t for t in self._timers.values() if t[0] <= target]
            if not due:
                break
            when, handle, fn, args = min(due, key=lambda t: (t[0], t[1]))
            del self._timers[handle]
            self.now = when
            fn(*args)
        self.now = target

    def run_until_idle(self, limit=60):
        """Alternate jobs and timers until nothing is left (or `limit` seconds pass)."""
        start = self.now
        while True:
            self.run_jobs()
            if not self._timers or self.now - start >= limit:
                return
            next_due = min(t[0] for t in self._timers.values())
            self.advance(max(0.0, next_due - self.now))


class FakeCamera:

    def __init__(self, granted=True, grant_on_request=True, fail_capture=False):
        self.permission_granted = granted
        self.grant_on_request = grant_on_request
        self.fail_capture = fail_capture
        self.permission_requests = 0
        self.captures = 0
        self.frames = []

    def request_permission(self):
        self.permission_requests += 1
        self.permission_granted = self.grant_on_request
        return self.grant_on_request

    def capture_still(self, quality=0.8, skip_post_processing=True):
        self.captures += 1
        if self.fail_capture:
            raise DeviceError("camera unplugged")
        return b"\xff\xd8fake-jpeg\xff\xd9"

    def read_frame(self):
        return self.frames.pop(0) if self.frames else None


class FakeGateway:

    def __init__(self, outcome=None, capture_fails=False):
        self.outcome = outcome or VerificationOutcome.accepted()
        self.capture_fails = capture_fails
        self.calls = []
        self.verify_calls = 0

    def capture_and_verify(self, token, on_captured=None):
        self.calls.append(token)
        if self.capture_fails:
            return VerificationOutcome.errored(DeviceError, MSG_CAPTURE_FAILED)
        if on_captured is not None:
            on_captured()
        self.verify_calls += 1
        return self.outcome


class FakeLedger:
    """Commit adapter double. `respond(token, course_id)` returns or raises."""

    def __init__(self, respond=None):
        self.respond = respond or (lambda token, course_id: "Attendance marked")
        self.calls = []

    def commit(self, token, course_id):
        self.calls.append((token, course_id))
        return self.respond(token, course_id)


class FakeStore:

    def __init__(self, credential="bearer-abc"):
        self.credential = credential

    def get_credential(self):
        return self.credential


class FakePresenter:

    def __init__(self):
        self.calls = []
        self.retry = None
        self.dismiss = None
        self.message_ok = None
        self.decline_label = None

    def names(self):
        return [c[0] for c in self.calls]

    def show_state(self, state, session):
        self.calls.append(("show_state", state))

    def show_result(self, outcome, on_dismiss):
        self.calls.append(("show_result", outcome))
        self.dismiss = on_dismiss

    def ask_retry(self, title, message, on_retry, on_decline, decline_label="Leave"):
        self.calls.append(("ask_retry", title, message))
        self.decline_label = decline_label
        self.retry = (on_retry, on_decline)

    def show_message(self, title, message, on_ok):
        self.calls.append(("show_message", title, message))
        self.message_ok = on_ok

    def show_busy(self, text):
        self.calls.append(("show_busy", text))

    def show_scanner(self):
        self.calls.append(("show_scanner",))

    def leave(self):
        self.calls.append(("leave",))


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def camera():
    return FakeCamera()


@pytest.fixture()
def presenter():
    return FakePresenter()
