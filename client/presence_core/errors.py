"""
Failure taxonomy for the presence-check pipeline.

Capture and verification failures never leave gateway.py as exceptions;
they are turned into a VerificationOutcome there. Ledger failures are
raised to the orchestrator, which always offers a user-initiated retry.
"""


class PresenceError(Exception):
    """Base class. `message` is safe to show to the user."""

    def __init__(self, message, status=None, body=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body


class PermissionDenied(PresenceError):
    """Camera access refused. Terminal for the session."""


class DeviceError(PresenceError):
    """Camera failed to open or to produce a still."""


class VerificationTransportFailed(PresenceError):
    """The verify call did not return a usable answer (network, 5xx, bad body)."""


class VerificationRejected(PresenceError):
    """The verifier answered and said the face does not match."""


class LedgerRejected(PresenceError):
    """Attendance refused by the server (duplicate, expired token, wrong course)."""


class LedgerUnreachable(PresenceError):
    """Attendance call failed in transport or with a server-side error."""
