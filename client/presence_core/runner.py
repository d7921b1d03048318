"""
Entry point: load config, make sure a student is logged in, run the app.
"""

import sys

from .constants import CLIENT_VERSION
from .config import log, safe_print, load_config, save_config, with_defaults, SessionStore
from .login import gui_login
from .app import PresenceApp


def main():
    """Primary client entry point."""
    safe_print("Presence Check v" + CLIENT_VERSION)
    safe_print()

    stored = load_config()
    config = with_defaults(stored)
    if stored is None:
        save_config(config)

    store = SessionStore(config)
    if "--logout" in sys.argv[1:]:
        store.clear()

    if not store.get_credential():
        if not gui_login(config, store):
            log.info("Login dialog closed without credentials — exiting")
            sys.exit(1)
    else:
        log.info("Using stored login for %s", config.get("studentId", "?"))

    try:
        PresenceApp(config, store).run()
    except KeyboardInterrupt:
        safe_print("\nStopped by user.")
