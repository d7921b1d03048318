"""
Attendance Commit Adapter — one ledger call per attempt, credential attached.
"""

from .config import log
from .errors import LedgerRejected
from . import api


class AttendanceCommitAdapter:

    def __init__(self, session_store, server_url):
        self._store = session_store
        self._server_url = server_url

    def commit(self, token, course_id):
        """Blocking. Returns the server message; raises LedgerRejected/LedgerUnreachable."""
        credential = self._store.get_credential()
        if not credential:
            log.warning("Commit attempted without a stored credential")
            raise LedgerRejected("You are not logged in. Please log in and scan again.")

        message = api.mark_attendance(self._server_url, token, course_id, credential)
        return message or "Attendance marked."
