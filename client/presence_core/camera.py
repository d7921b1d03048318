"""
Camera device: open/authorize, frame reads for the QR scanner, JPEG stills.

A desktop OS has no separate permission prompt we can drive; the camera
is "authorized" once the device opens. A device that cannot be opened
after a few attempts is reported as denied, and the liveliness session
goes to Unavailable.

Frames are read from the Tk thread (scanner) and stills from a worker
thread (capture). A lock serializes access to the VideoCapture.
"""

import threading
import time

import cv2

from .config import log
from .constants import CAPTURE_QUALITY, CAPTURE_SKIP_POST_PROCESSING, CAMERA_WARMUP_FRAMES
from .errors import DeviceError


class CameraDevice:

    def __init__(self, device_index=0, width=640, height=480, max_retries=3, retry_delay=1.0):
        self.device_index = device_index
        self.width = width
        self.height = height
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._cap = None
        self._lock = threading.Lock()

    @property
    def permission_granted(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def request_permission(self) -> bool:
        """Open the device, retrying a few times. Blocking; run on a worker."""
        with self._lock:
            if self._cap is not None and self._cap.isOpened():
                return True

            for attempt in range(self.max_retries):
                cap = cv2.VideoCapture(self.device_index)
                if cap.isOpened():
                    cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
                    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
                    cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
                    for _ in range(CAMERA_WARMUP_FRAMES):
                        cap.grab()
                    self._cap = cap
                    log.info(
                        "Camera %d opened: %dx%d", self.device_index,
                        int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
                        int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
                    )
                    return True
                cap.release()
                if attempt < self.max_retries - 1:
                    log.warning("Camera not ready, retrying (%d/%d)...", attempt + 1, self.max_retries)
                    time.sleep(self.retry_delay)

        log.error("Camera %d could not be opened — treating as denied", self.device_index)
        return False

    def read_frame(self):
        """Latest frame as a BGR array, or None."""
        with self._lock:
            if self._cap is None:
                return None
            ok, frame = self._cap.read()
        return frame if ok else None

    def capture_still(self, quality=CAPTURE_QUALITY, skip_post_processing=CAPTURE_SKIP_POST_PROCESSING):
        """
        Grab one still and return it as JPEG bytes. Raises DeviceError.
        The bytes live only in memory; nothing is written to disk.
        """
        with self._lock:
            if self._cap is None:
                raise DeviceError("Camera is not open")
            try:
                # Drop the buffered frame so the still reflects the settle moment.
                self._cap.grab()
                ok, frame = self._cap.read()
            except cv2.error as e:
                raise DeviceError(f"Camera read failed: {e}") from e

        if not ok or frame is None:
            raise DeviceError("Camera returned no frame")

        if not skip_post_processing:
            frame = cv2.flip(frame, 1)

        jpeg_quality = max(1, min(100, int(round(quality * 100))))
        ok, buf = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, jpeg_quality])
        if not ok:
            raise DeviceError("JPEG encoding failed")
        return buf.tobytes()

    def release(self):
        with self._lock:
            if self._cap is not None:
                self._cap.release()
                self._cap = None
                log.info("Camera released")
