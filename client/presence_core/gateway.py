"""
Capture & Verify Gateway — one still, one verify call, one outcome.

Everything that can go wrong between the camera and the verifier is
caught here and folded into a VerificationOutcome. No retry happens at
this level; the orchestrator owns retry policy.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .config import log
from .constants import (
    CAPTURE_QUALITY, CAPTURE_SKIP_POST_PROCESSING,
    MSG_VERIFIED, MSG_FAILED, MSG_TRANSPORT_FAILED, MSG_CAPTURE_FAILED,
)
from .errors import DeviceError, VerificationTransportFailed, VerificationRejected
from . import api


class OutcomeStatus(Enum):
    VERIFIED = "verified"
    REJECTED = "not-verified"
    ERRORED = "errored"


@dataclass(frozen=True)
class VerificationOutcome:
    status: OutcomeStatus
    message: str
    error: Optional[type] = None    # DeviceError / VerificationTransportFailed / VerificationRejected

    @property
    def verified(self) -> bool:
        return self.status is OutcomeStatus.VERIFIED

    @property
    def transport_failed(self) -> bool:
        return self.error is VerificationTransportFailed

    @classmethod
    def accepted(cls):
        return cls(OutcomeStatus.VERIFIED, MSG_VERIFIED)

    @classmethod
    def rejected(cls):
        return cls(OutcomeStatus.REJECTED, MSG_FAILED, VerificationRejected)

    @classmethod
    def errored(cls, error, message):
        return cls(OutcomeStatus.ERRORED, message, error)


class CaptureVerifyGateway:

    def __init__(self, camera, session_store, server_url,
                 quality=CAPTURE_QUALITY, skip_post_processing=CAPTURE_SKIP_POST_PROCESSING):
        self._camera = camera
        self._store = session_store
        self._server_url = server_url
        self._quality = quality
        self._skip_post_processing = skip_post_processing

    def capture_and_verify(self, token, on_captured: Optional[Callable[[], None]] = None):
        """
        Blocking. Takes a still, sends it with `token`, returns the outcome.
        `on_captured` fires between the two steps; a capture failure returns
        before the verifier is ever contacted.
        """
        try:
            image = self._camera.capture_still(
                quality=self._quality, skip_post_processing=self._skip_post_processing,
            )
        except DeviceError as e:
            log.warning("Capture failed: %s", e)
            return VerificationOutcome.errored(DeviceError, MSG_CAPTURE_FAILED)

        log.info("Still captured (%d bytes)", len(image))
        if on_captured is not None:
            on_captured()

        credential = self._store.get_credential()
        if not credential:
            log.warning("No stored credential — verify will be sent unauthenticated")

        try:
            verified = api.verify_face(self._server_url, image, token, credential)
        except VerificationTransportFailed as e:
            log.warning("Verification transport failed: %s", e)
            return VerificationOutcome.errored(VerificationTransportFailed, MSG_TRANSPORT_FAILED)
        finally:
            del image

        return VerificationOutcome.accepted() if verified else VerificationOutcome.rejected()
