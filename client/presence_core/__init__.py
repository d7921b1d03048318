"""
presence_core — QR scan + liveliness check + attendance commit client
======================================================================
Architecture: Tkinter main-thread event loop. Blocking I/O on workers.

  constants.py    → Version, timings, endpoints, texts, theme
  config.py       → Paths, logging, config load/save, SessionStore
  errors.py       → PresenceError taxonomy (device, verify, ledger)
  http_client.py  → HTTP session with retry/pooling + certifi CA bundle
  api.py          → Server API calls (verify-face, mark, login)
  challenge.py    → Liveliness challenge catalog + random selector
  camera.py       → CameraDevice (OpenCV open/read/JPEG still)
  gateway.py      → CaptureVerifyGateway → VerificationOutcome
  scheduler.py    → TkScheduler (root.after timers + worker dispatch)
  liveliness.py   → LivelinessMachine (challenge → capture → verify)
  commit.py       → AttendanceCommitAdapter (ledger call)
  orchestrator.py → ScanOrchestrator (guard, retry/cancel policy)
  scanner.py      → QrScanner (frame polling + cv2 QR decode)
  presenter.py    → TkPresenter (window + modal dialogs)
  login.py        → Student login dialog
  app.py          → PresenceApp (wiring + Tk main loop)
  runner.py       → main()
"""
