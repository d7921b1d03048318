"""
Paths, logging setup, config load/save, credential store, safe_print.
"""

import os
import json
import sys
import logging
from pathlib import Path

from .constants import (
    DEFAULT_SERVER_URL, DEFAULT_COURSE_ID, ACTION_WINDOW_SEC, SETTLE_DELAY_SEC,
)


# ─── Paths ───────────────────────────────────────────────────────
# One config (server, course, stored login) per user per machine.
BASE_DIR = Path(os.environ.get("PRESENCE_HOME") or Path(__file__).parent.parent)
BASE_DIR.mkdir(parents=True, exist_ok=True)

CONFIG_FILE = BASE_DIR / "config.json"
LOG_FILE = BASE_DIR / "client.log"


# ─── Safe print (no crash when --noconsole) ──────────────────────

def safe_print(*args, **kwargs):
    try:
        print(*args, **kwargs)
    except Exception:
        pass


# ─── Logging ─────────────────────────────────────────────────────

try:
    if LOG_FILE.exists() and LOG_FILE.stat().st_size > 1_000_000:
        LOG_FILE.write_text("")
except OSError:
    pass

_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

log = logging.getLogger("presence")
log.setLevel(logging.INFO)

if not log.handlers:
    file_handler = logging.FileHandler(str(LOG_FILE), encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    log.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(_FORMAT))
    log.addHandler(console_handler)


# ─── Config Management ──────────────────────────────────────────

def load_config():
    """Load config from disk. Returns dict or None."""
    if CONFIG_FILE.exists():
        try:
            with open(CONFIG_FILE, "r") as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            return None
    return None


def save_config(config):
    """Save config dict to disk."""
    with open(CONFIG_FILE, "w") as f:
        json.dump(config, f, indent=2)
    log.info("Config saved to %s", CONFIG_FILE)


def with_defaults(config):
    """Fill in every key the client reads, keeping values already set."""
    merged = {
        "serverUrl": DEFAULT_SERVER_URL,
        "courseId": DEFAULT_COURSE_ID,
        "cameraIndex": 0,
        "actionWindowSec": ACTION_WINDOW_SEC,
        "settleDelaySec": SETTLE_DELAY_SEC,
    }
    merged.update(config or {})
    merged["serverUrl"] = merged["serverUrl"].rstrip("/")
    return merged


# ─── Identity session store ─────────────────────────────────────

class SessionStore:
    """
    Holds the bearer credential obtained at login.

    The core only ever calls get_credential(); login is the single writer.
    """

    def __init__(self, config):
        self._config = config

    def get_credential(self):
        token = self._config.get("userToken")
        return token or None

    def set_credential(self, token, student_id=None):
        self._config["userToken"] = token
        if student_id:
            self._config["studentId"] = student_id
        save_config(self._config)

    def clear(self):
        self._config.pop("userToken", None)
        save_config(self._config)
        log.info("Stored credential cleared")
