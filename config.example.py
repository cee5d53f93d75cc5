# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets (the VAPID private key in particular). Use .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "DAILYFLOW_APP_NAME": "App display name (default: Daily Flow).",
    "DAILYFLOW_LOG_LEVEL": "Console logging level (default: INFO).",
    # Paths (gitignored)
    "DAILYFLOW_DATA_DIR": "Local data directory, also holds daily_flow.log (default: .local/daily_flow).",
    "DAILYFLOW_DB_PATH": "TaskStore SQLite path (default: <data_dir>/daily_flow.sqlite3).",
    # Web Push
    "DAILYFLOW_VAPID_PRIVATE_KEY": "VAPID private key; VAPID_PRIVATE_KEY is accepted too. Unset => push disabled.",
    "DAILYFLOW_VAPID_SUBJECT": "VAPID 'sub' claim, mailto: or https: URL (default: mailto:admin@example.com).",
    "DAILYFLOW_PUSH_TTL_SECONDS": "How long the push service may hold an undelivered alert (default: 300).",
    "DAILYFLOW_PUSH_TIMEOUT_SECONDS": "HTTP timeout per push request (default: 10).",
    # Notifications
    "DAILYFLOW_NOTIFICATION_TITLE": "Notification title (default: app name).",
    "DAILYFLOW_NOTIFICATION_URL": "URL opened when the notification is clicked (default: /).",
    # Scheduler
    "DAILYFLOW_SCHEDULER_ENABLED": "Run the per-minute alert sweep (true/false, default: true).",
}
