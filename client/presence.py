"""
Presence Check — Attendance Client
==================================
Scan the attendance QR code, complete a short liveliness challenge in
front of the camera, and the attendance is marked once the server has
verified your face.

PRIVACY: The captured still is held in memory only for the single
verification upload. Nothing is written to disk.

Usage:
    python presence.py            # log in on first run, then scan
    python presence.py --logout   # forget the stored login first
"""

from presence_core.runner import main


if __name__ == "__main__":
    main()
