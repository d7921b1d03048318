"""
PresenceApp — the Tkinter application that wires the pipeline together.

  QrScanner  → ScanOrchestrator.on_scan
  ScanOrchestrator → LivelinessMachine → CaptureVerifyGateway
                   → AttendanceCommitAdapter → TkPresenter

Everything runs on Tk's event loop. Blocking work (camera open/capture,
HTTP) goes through TkScheduler.submit onto short-lived worker threads.
"""

import tkinter as tk

from .constants import CLIENT_VERSION, MSG_CAMERA_UNAVAILABLE
from .config import log, safe_print
from .camera import CameraDevice
from .commit import AttendanceCommitAdapter
from .gateway import CaptureVerifyGateway
from .orchestrator import ScanOrchestrator
from .presenter import TkPresenter
from .scanner import QrScanner
from .scheduler import TkScheduler


class PresenceApp:

    def __init__(self, config, session_store):
        self._config = config
        self._store = session_store
        self._root = None
        self._scheduler = None
        self._camera = None
        self._scanner = None
        self.orchestrator = None

    def run(self):
        """Start the client. Blocks on Tk mainloop. Call from main thread."""
        self._root = tk.Tk()
        self._scheduler = TkScheduler(self._root)
        self._camera = CameraDevice(self._config.get("cameraIndex", 0))

        server_url = self._config["serverUrl"]
        presenter = TkPresenter(self._root, on_cancel=self._on_cancel, on_leave=self.stop)
        self.orchestrator = ScanOrchestrator(
            self._scheduler,
            self._camera,
            CaptureVerifyGateway(self._camera, self._store, server_url),
            AttendanceCommitAdapter(self._store, server_url),
            presenter,
            course_id=self._config["courseId"],
            action_window_sec=self._config["actionWindowSec"],
            settle_delay_sec=self._config["settleDelaySec"],
        )
        self._scanner = QrScanner(
            self._scheduler, self._camera,
            on_scan=self.orchestrator.on_scan,
            is_busy=lambda: not self.orchestrator.accepting_scans,
            on_frame=presenter.show_preview,
        )

        self._scheduler.submit(
            self._camera.request_permission,
            on_done=lambda granted: self._on_camera_ready(granted, presenter),
            on_error=lambda e: self._on_camera_ready(False, presenter),
        )

        log.info("v%s started (server=%s, course=%s)",
                 CLIENT_VERSION, server_url, self._config["courseId"])
        safe_print("Presence check running.\n")

        try:
            self._root.mainloop()
        finally:
            self._shutdown()

    def stop(self):
        if self._root is None:
            return
        try:
            self._root.quit()
        except tk.TclError:
            pass

    def _on_camera_ready(self, granted, presenter):
        if granted:
            self._scanner.start()
        else:
            presenter.show_message("Camera Unavailable", MSG_CAMERA_UNAVAILABLE, on_ok=self.stop)

    def _on_cancel(self):
        if not self.orchestrator.cancel() and not self.orchestrator.is_processing:
            self.stop()

    def _shutdown(self):
        if self._scanner is not None:
            self._scanner.stop()
        if self.orchestrator is not None:
            self.orchestrator.shutdown()
        if self._scheduler is not None:
            self._scheduler.stop()
        if self._camera is not None:
            self._camera.release()
        try:
            self._root.destroy()
        except tk.TclError:
            pass
        log.info("PresenceApp shut down.")
