"""
QrScanner — polls camera frames on the main loop and decodes QR codes.

The decoded payload is handed to on_scan untouched; it is an opaque
token to the client. Decoding is skipped while is_busy() is true, which
is how the scanning surface is disabled during a pipeline run.
"""

import cv2

from .config import log
from .constants import SCAN_POLL_MS


_detector = cv2.QRCodeDetector()


def decode_qr(frame):
    """Return the QR payload in `frame`, or None."""
    if frame is None:
        return None
    try:
        data, points, _ = _detector.detectAndDecode(frame)
    except cv2.error as e:
        log.debug("QR decode error: %s", e)
        return None
    if points is None or not data:
        return None
    return data


class QrScanner:

    def __init__(self, scheduler, camera, on_scan, is_busy, on_frame=None):
        self._scheduler = scheduler
        self._camera = camera
        self._on_scan = on_scan
        self._is_busy = is_busy
        self._on_frame = on_frame
        self._timer = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        if not self._running:
            self._running = True
            log.info("QR scanner started")
            self._timer = self._scheduler.after(SCAN_POLL_MS / 1000, self._poll)

    def stop(self):
        if self._running:
            self._running = False
            self._scheduler.cancel(self._timer)
            self._timer = None
            log.info("QR scanner stopped")

    def _poll(self):
        try:
            self._scan_once()
        finally:
            if self._running:
                self._timer = self._scheduler.after(SCAN_POLL_MS / 1000, self._poll)

    def _scan_once(self):
        frame = self._camera.read_frame()
        if frame is None:
            return
        if self._on_frame is not None:
            self._on_frame(frame)

        if self._is_busy():
            return

        payload = decode_qr(frame)
        if payload is None:
            return
        log.info("QR code scanned (%d chars)", len(payload))
        self._on_scan(payload)
