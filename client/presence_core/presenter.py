"""
TkPresenter — scanner/challenge window and modal result dialogs.

Created and used EXCLUSIVELY on the Tkinter main thread. The orchestrator
tells it what to show; it never decides anything. Dialog buttons call
back into the orchestrator through the callbacks they were given.
Hardened against widget-destroyed crashes with TclError guards.
"""

import base64
import tkinter as tk

import cv2

from .config import log
from .constants import (
    THEME, MSG_VERIFIED_TITLE, HEURISTIC_ACTION_CONFIRMATION,
)
from .liveliness import LivelinessState

_PREVIEW_SIZE = (480, 360)

_STATUS_TEXT = {
    LivelinessState.AWAITING_PERMISSION: "Requesting camera permission...",
    LivelinessState.ACTION_CONFIRMED: "Action completed! Capturing image...",
    LivelinessState.CAPTURING: "Capturing image...",
    LivelinessState.VERIFY_PENDING: "Verifying your identity...",
}


class TkPresenter:

    def __init__(self, root, on_cancel, on_leave):
        self._root = root
        self._on_cancel = on_cancel
        self._on_leave = on_leave
        self._dialog = None
        self._preview_img = None
        self._build_ui()

    # ─── UI construction ─────────────────────────────────────

    def _build_ui(self):
        root = self._root
        root.title("Presence Check")
        root.configure(bg=THEME["bg_darkest"])
        root.protocol("WM_DELETE_WINDOW", self._on_leave)

        header = tk.Frame(root, bg=THEME["header_bg"], height=64)
        header.pack(fill="x")
        header.pack_propagate(False)
        tk.Label(header, text="Attendance Check-In",
                 font=("Segoe UI", 16, "bold"), fg="white",
                 bg=THEME["header_bg"]).pack(expand=True)

        self._preview = tk.Label(root, bg="black", text="Starting camera...",
                                 fg=THEME["text_muted"], compound="center")
        self._preview.pack(padx=20, pady=(16, 8))

        self._title_label = tk.Label(root, text="", font=("Segoe UI", 14, "bold"),
                                     bg=THEME["bg_darkest"], fg=THEME["text_primary"])
        self._title_label.pack()
        self._instruction_label = tk.Label(root, text="", font=("Segoe UI", 13),
                                           bg=THEME["bg_darkest"], fg=THEME["warning"],
                                           wraplength=460)
        self._instruction_label.pack(pady=(4, 0))
        self._status_label = tk.Label(root, text="", font=("Segoe UI", 11),
                                      bg=THEME["bg_darkest"], fg=THEME["text_muted"])
        self._status_label.pack(pady=(4, 8))

        tk.Button(root, text="Cancel", font=("Segoe UI", 12, "bold"),
                  bg=THEME["bg_card"], fg=THEME["text_primary"],
                  activebackground=THEME["border"], activeforeground="white",
                  relief="flat", padx=20, pady=8, cursor="hand2",
                  command=self._on_cancel).pack(pady=(0, 16))

        self.show_scanner()

    # ─── Main window ─────────────────────────────────────────

    def show_preview(self, frame):
        """Render a BGR camera frame into the preview label."""
        try:
            small = cv2.resize(frame, _PREVIEW_SIZE)
            ok, png = cv2.imencode(".png", small)
            if not ok:
                return
            self._preview_img = tk.PhotoImage(data=base64.b64encode(png.tobytes()))
            self._safe_widget_config(self._preview, image=self._preview_img)
        except (cv2.error, tk.TclError) as e:
            log.debug("Preview update failed: %s", e)

    def show_scanner(self):
        self._close_dialog()
        self._set_texts("Scan the QR Code", "", "Hold the attendance code inside the frame.")

    def show_state(self, state, session):
        if state is LivelinessState.ACTION_WINDOW_OPEN and session is not None:
            self._set_texts("Please:", session.challenge.prompt, "")
            log.info("Challenge shown: %s (%s)", session.challenge.name,
                     HEURISTIC_ACTION_CONFIRMATION)
        elif state in _STATUS_TEXT:
            self._safe_widget_config(self._status_label, text=_STATUS_TEXT[state])

    def show_busy(self, text):
        self._set_texts("", "", text)

    # ─── Dialogs ─────────────────────────────────────────────

    def show_result(self, outcome, on_dismiss):
        self._open_dialog(
            MSG_VERIFIED_TITLE, outcome.message, THEME["success"],
            [("Continue", on_dismiss)],
        )

    def ask_retry(self, title, message, on_retry, on_decline, decline_label="Leave"):
        self._open_dialog(
            title, message, THEME["error"],
            [("Try Again", on_retry), (decline_label, on_decline)],
        )

    def show_message(self, title, message, on_ok):
        color = THEME["success"] if title == "Success" else THEME["warning"]
        self._open_dialog(title, message, color, [("OK", on_ok)])

    def leave(self):
        self._close_dialog()
        self._on_leave()

    def _open_dialog(self, title, message, color, buttons):
        self._close_dialog()
        top = tk.Toplevel(self._root)
        self._dialog = top
        top.title(title)
        top.configure(bg=THEME["bg_card"])
        top.transient(self._root)
        top.resizable(False, False)
        top.protocol("WM_DELETE_WINDOW", lambda: None)

        tk.Label(top, text=title, font=("Segoe UI", 16, "bold"),
                 fg=color, bg=THEME["bg_card"]).pack(padx=30, pady=(22, 10))
        tk.Label(top, text=message, font=("Segoe UI", 12),
                 fg=THEME["text_primary"], bg=THEME["bg_card"],
                 wraplength=360, justify="center").pack(padx=30, pady=(0, 18))

        row = tk.Frame(top, bg=THEME["bg_card"])
        row.pack(fill="x", padx=30, pady=(0, 22))
        for i, (label, callback) in enumerate(buttons):
            primary = i == 0
            tk.Button(
                row, text=label, font=("Segoe UI", 12, "bold"),
                bg=THEME["primary"] if primary else THEME["bg_input"],
                fg="white", activebackground=THEME["primary_hover"],
                activeforeground="white", relief="flat", padx=20, pady=8,
                cursor="hand2", command=lambda cb=callback: self._press(cb),
            ).pack(side="left", expand=True, fill="x", padx=4)

        top.grab_set()
        log.info("Dialog shown: %s", title)

    def _press(self, callback):
        self._close_dialog()
        try:
            callback()
        except Exception as e:
            log.error("Dialog callback error: %s", e, exc_info=True)

    def _close_dialog(self):
        if self._dialog is not None:
            try:
                self._dialog.grab_release()
                self._dialog.destroy()
            except tk.TclError:
                pass
            self._dialog = None

    # ─── Safe widget helpers ─────────────────────────────────

    def _set_texts(self, title, instruction, status):
        self._safe_widget_config(self._title_label, text=title)
        self._safe_widget_config(self._instruction_label, text=instruction)
        self._safe_widget_config(self._status_label, text=status)

    def _safe_widget_config(self, widget, **kwargs):
        """Configure a widget, silently ignoring TclError if destroyed."""
        try:
            widget.config(**kwargs)
        except (tk.TclError, AttributeError):
            pass
