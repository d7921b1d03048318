"""
Student login: token exchange + GUI login dialog.
"""

import tkinter as tk

from .constants import THEME
from .config import log
from .errors import PresenceError
from . import api


def login_and_store(session_store, server_url, student_id, password):
    """Log in and keep the bearer token as the session credential."""
    token = api.login(server_url, student_id, password)
    session_store.set_credential(token, student_id=student_id)
    return token


def gui_login(config, session_store):
    """Show a login dialog. Returns True once a credential is stored."""
    result = {"ok": False}

    root = tk.Tk()
    root.title("Presence Check — Student Login")
    root.geometry("440x400")
    root.resizable(False, False)
    root.configure(bg=THEME["bg_darkest"])
    root.attributes("-topmost", True)

    root.update_idletasks()
    x = (root.winfo_screenwidth() // 2) - 220
    y = (root.winfo_screenheight() // 2) - 200
    root.geometry(f"440x400+{x}+{y}")

    header = tk.Frame(root, bg=THEME["header_bg"], height=70)
    header.pack(fill="x")
    header.pack_propagate(False)
    tk.Label(header, text="Student Login", font=("Segoe UI", 16, "bold"),
             fg="white", bg=THEME["header_bg"]).pack(expand=True)

    body = tk.Frame(root, bg=THEME["bg_darkest"], padx=35, pady=20)
    body.pack(fill="both", expand=True)

    def field(label, var, show=None):
        tk.Label(body, text=label, font=("Segoe UI", 11, "bold"),
                 bg=THEME["bg_darkest"], fg=THEME["text_primary"]).pack(anchor="w")
        entry = tk.Entry(body, textvariable=var, font=("Segoe UI", 12), show=show,
                         bg=THEME["bg_input"], fg=THEME["text_primary"],
                         insertbackground=THEME["text_primary"],
                         relief="solid", borderwidth=1,
                         highlightbackground=THEME["border"],
                         highlightcolor=THEME["primary"])
        entry.pack(fill="x", pady=(4, 12))
        return entry

    id_var = tk.StringVar(value=config.get("studentId", ""))
    pw_var = tk.StringVar()
    url_var = tk.StringVar(value=config["serverUrl"])
    field("Student ID", id_var).focus_set()
    field("Password", pw_var, show="*")
    field("Server URL", url_var)

    status = tk.Label(body, text="", font=("Segoe UI", 10), bg=THEME["bg_darkest"])
    status.pack(pady=(0, 8))

    def on_login():
        student_id = id_var.get().strip()
        password = pw_var.get()
        url = url_var.get().strip().rstrip("/")
        if not student_id or not password:
            status.config(text="Student ID and password are required.", fg=THEME["error"])
            return
        if not url:
            status.config(text="Server URL is required.", fg=THEME["error"])
            return

        status.config(text="Logging in...", fg=THEME["primary"])
        root.update()

        try:
            config["serverUrl"] = url
            login_and_store(session_store, url, student_id, password)
            result["ok"] = True
            status.config(text="Logged in!", fg=THEME["success"])
            root.after(600, root.quit)
        except PresenceError as e:
            log.warning("Login failed: %s", e)
            status.config(text=f"Login Failed: {e.message[:80]}", fg=THEME["error"])

    tk.Button(body, text="Login", font=("Segoe UI", 12, "bold"),
              bg=THEME["primary"], fg="white",
              activebackground=THEME["primary_hover"], activeforeground="white",
              relief="flat", padx=20, pady=10, cursor="hand2",
              command=on_login).pack(fill="x")
    root.bind("<Return>", lambda e: on_login())

    root.protocol("WM_DELETE_WINDOW", root.quit)
    root.mainloop()

    try:
        root.destroy()
    except tk.TclError:
        pass

    return result["ok"]
