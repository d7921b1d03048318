"""
Constants, timings, endpoint paths, theme colors and user-facing texts.
"""

CLIENT_VERSION = "1.0.0"

# ─── Liveliness timings ──────────────────────────────────────────
ACTION_WINDOW_SEC = 3          # User gets 3s to perform the challenge
SETTLE_DELAY_SEC = 1           # Pause after the window before the still is taken

# Confirmation is timer-based: once the window elapses the action is
# assumed performed. There is no gesture detector behind it.
HEURISTIC_ACTION_CONFIRMATION = "assume-compliance-after-timeout"

# ─── Capture ─────────────────────────────────────────────────────
CAPTURE_QUALITY = 0.8          # 0..1, mapped to JPEG quality 80
CAPTURE_SKIP_POST_PROCESSING = True
CAMERA_WARMUP_FRAMES = 5
SCAN_POLL_MS = 150             # QR frame polling interval on the Tk loop
WORKER_POLL_MS = 50            # How often worker results are drained

# ─── Network ─────────────────────────────────────────────────────
DEFAULT_SERVER_URL = "http://192.168.1.5:5000/api"
DEFAULT_COURSE_ID = "CS101"
API_TIMEOUT_VERIFY = 30        # Image upload + face match on the server
API_TIMEOUT_MARK = 20
API_TIMEOUT_LOGIN = 15

VERIFY_PATH = "/attendance/verify-face"
MARK_PATH = "/attendance/mark"
LOGIN_PATH = "/students/login"

# ─── Texts ───────────────────────────────────────────────────────
MSG_VERIFIED_TITLE = "Verification Successful"
MSG_VERIFIED = "Your identity has been verified successfully."
MSG_FAILED_TITLE = "Verification Failed"
MSG_FAILED = "We could not verify your identity. Please try again."
MSG_TRANSPORT_FAILED = "Could not reach the verification server. Please try again."
MSG_CAPTURE_FAILED = "Failed to capture image. Please try again."
MSG_CAMERA_UNAVAILABLE = (
    "No access to camera. Allow camera access for this app in your "
    "system settings, then come back and scan again."
)
MSG_MARK_FAILED = "Failed to mark attendance."

# ─── Theme (same dark palette as the attendance portal) ──────────
THEME = {
    "bg_darkest":    "#020617",
    "bg_card":       "#1e293b",
    "bg_input":      "#0f172a",
    "header_bg":     "#0a2c54",
    "primary":       "#3b82f6",
    "primary_hover": "#2563eb",
    "text_primary":  "#f1f5f9",
    "text_secondary":"#cbd5e1",
    "text_muted":    "#94a3b8",
    "border":        "#374151",
    "success":       "#22c55e",
    "error":         "#ef4444",
    "warning":       "#fbbf24",
}
