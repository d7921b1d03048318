"""
TkScheduler — timers and worker dispatch on the Tk main loop.

  after(sec, fn)         → root.after, returns a handle for cancel()
  submit(fn, on_done)    → fn on a daemon thread, on_done back on the main loop
  call_soon(fn)          → thread-safe hop onto the main loop

Worker threads never touch session state. They only put results on a
queue which _drain() empties every WORKER_POLL_MS. Callbacks are
exception-guarded so a bad callback never kills the Tk loop.
"""

import queue
import threading

from .config import log
from .constants import WORKER_POLL_MS


class TkScheduler:

    def __init__(self, root):
        self._root = root
        self._results = queue.Queue()
        self._timers = set()
        self._stopped = False
        self._root.after(WORKER_POLL_MS, self._drain)

    @property
    def pending_timers(self) -> int:
        return len(self._timers)

    # ─── Timers ──────────────────────────────────────────────

    def after(self, delay_sec, fn, *args):
        handle = None

        def fire():
            self._timers.discard(handle)
            _run_guarded(fn, *args)

        handle = self._root.after(int(delay_sec * 1000), fire)
        self._timers.add(handle)
        return handle

    def cancel(self, handle):
        if handle is None or handle not in self._timers:
            return
        self._timers.discard(handle)
        try:
            self._root.after_cancel(handle)
        except Exception as e:
            log.debug("after_cancel(%s) failed: %s", handle, e)

    # ─── Workers ─────────────────────────────────────────────

    def submit(self, fn, *args, on_done=None, on_error=None):
        """Run fn(*args) on a worker; deliver the result on the main loop."""

        def work():
            try:
                result = fn(*args)
            except Exception as e:
                log.warning("Worker %s raised: %s", getattr(fn, "__name__", fn), e)
                if on_error is not None:
                    self._results.put((on_error, (e,)))
                return
            if on_done is not None:
                self._results.put((on_done, (result,)))

        threading.Thread(target=work, daemon=True).start()

    def call_soon(self, fn, *args):
        """Safe to call from any thread."""
        self._results.put((fn, args))

    def stop(self):
        self._stopped = True
        for handle in list(self._timers):
            self.cancel(handle)

    def _drain(self):
        batch = 0
        while batch < 50:
            try:
                fn, args = self._results.get_nowait()
            except queue.Empty:
                break
            batch += 1
            _run_guarded(fn, *args)

        if not self._stopped:
            self._root.after(WORKER_POLL_MS, self._drain)


def _run_guarded(fn, *args):
    try:
        fn(*args)
    except Exception as e:
        log.error("Scheduled callback %s failed: %s", getattr(fn, "__name__", fn), e, exc_info=True)
