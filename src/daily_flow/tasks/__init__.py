"""
Task subsystem.

Components:
- task_models.py: data structures (Task, User, Subscription, enums)
- dates.py: timezone-aware "local now" and calendar date helpers
- recurrence.py: decides whether a task is due on a local date
- task_index.py: read-path filtering, ordering and grouping
- task_store.py: SQLite-backed storage + query/update helpers
- alert_scheduler.py: per-minute sweep that dispatches task alerts
- task_api.py: small high-level helpers used by the rest of the app
"""
