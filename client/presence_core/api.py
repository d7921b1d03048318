"""
Server API calls: face verification, attendance mark, student login.

All functions are blocking and are run on worker threads (never on the
Tk main thread). They raise the typed errors from errors.py; callers
decide what the user sees.
"""

import requests

from .config import log
from .constants import (
    VERIFY_PATH, MARK_PATH, LOGIN_PATH,
    API_TIMEOUT_VERIFY, API_TIMEOUT_MARK, API_TIMEOUT_LOGIN,
    MSG_MARK_FAILED,
)
from .errors import (
    PresenceError, VerificationTransportFailed, LedgerRejected, LedgerUnreachable,
)
from . import http_client


def _auth_headers(credential):
    if not credential:
        return {}
    return {"Authorization": f"Bearer {credential}"}


def _server_error(resp):
    """Pull the server's own error text out of a failed response, if any."""
    try:
        data = resp.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    return data.get("error") or data.get("message")


def _reset_connections():
    """Drop pooled connections after a refused or reset connection."""
    log.info("Resetting HTTP session")
    http_client.http = http_client.reset_session(http_client.http)


# ─── Face verification ───────────────────────────────────────────

def verify_face(server_url, image, qr_token, credential):
    """
    Upload the captured still with the scanned token.
    Returns the server's `verified` flag. Raises VerificationTransportFailed
    on anything that is not a well-formed 200 answer.
    """
    url = f"{server_url}{VERIFY_PATH}"
    files = {"faceImage": ("face.jpg", image, "image/jpeg")}
    data = {"qrToken": qr_token}

    try:
        resp = http_client.http.post(
            url, files=files, data=data,
            headers=_auth_headers(credential), timeout=API_TIMEOUT_VERIFY,
        )
    except requests.RequestException as e:
        log.warning("Verify network error: %s", e)
        if isinstance(e, requests.ConnectionError):
            _reset_connections()
        raise VerificationTransportFailed(str(e)) from e

    if resp.status_code != 200:
        log.warning("Verify failed: HTTP %d — %s", resp.status_code, resp.text[:200])
        raise VerificationTransportFailed(
            _server_error(resp) or f"HTTP {resp.status_code}",
            status=resp.status_code, body=resp.text,
        )

    try:
        verified = resp.json()["verified"]
    except (ValueError, KeyError, TypeError) as e:
        log.warning("Verify returned an unexpected body: %s", resp.text[:200])
        raise VerificationTransportFailed(
            "Malformed verification response", status=resp.status_code, body=resp.text,
        ) from e

    log.info("Verify OK | verified=%s", bool(verified))
    return bool(verified)


# ─── Attendance mark ─────────────────────────────────────────────

def mark_attendance(server_url, qr_token, course_id, credential):
    """
    Record attendance for `course_id` using the scanned token.
    Returns the server's message. 4xx raises LedgerRejected, transport
    errors and 5xx raise LedgerUnreachable.
    """
    url = f"{server_url}{MARK_PATH}"
    payload = {"qrToken": qr_token, "courseId": course_id}

    try:
        resp = http_client.http.post(
            url, json=payload, headers=_auth_headers(credential), timeout=API_TIMEOUT_MARK,
        )
    except requests.RequestException as e:
        log.warning("Mark network error: %s", e)
        if isinstance(e, requests.ConnectionError):
            _reset_connections()
        raise LedgerUnreachable(MSG_MARK_FAILED) from e

    if resp.status_code in (200, 201):
        message = ""
        try:
            message = resp.json().get("message", "")
        except (ValueError, AttributeError):
            log.warning("Mark returned a non-JSON body: %s", resp.text[:200])
        log.info("Attendance marked | course=%s | %s", course_id, message)
        return message

    server_msg = _server_error(resp) or MSG_MARK_FAILED
    if 400 <= resp.status_code < 500:
        log.warning("Mark REJECTED (%d): %s", resp.status_code, server_msg)
        raise LedgerRejected(server_msg, status=resp.status_code, body=resp.text)

    log.warning("Mark failed: HTTP %d — %s", resp.status_code, resp.text[:200])
    raise LedgerUnreachable(server_msg, status=resp.status_code, body=resp.text)


# ─── Login ───────────────────────────────────────────────────────

def login(server_url, student_id, password):
    """Exchange student credentials for a bearer token. Returns the token."""
    url = f"{server_url.rstrip('/')}{LOGIN_PATH}"
    payload = {"studentId": student_id, "password": password}

    log.info("Logging in %s at %s ...", student_id, url)
    try:
        resp = http_client.http.post(url, json=payload, timeout=API_TIMEOUT_LOGIN)
    except requests.RequestException as e:
        raise PresenceError(f"Cannot connect to {server_url}. Check network.") from e

    if resp.status_code != 200:
        raise PresenceError(
            _server_error(resp) or "An error occurred.",
            status=resp.status_code, body=resp.text,
        )

    try:
        token = resp.json()["token"]
    except (ValueError, KeyError, TypeError) as e:
        raise PresenceError("Login response did not contain a token.") from e

    log.info("Logged in as %s", student_id)
    return token
