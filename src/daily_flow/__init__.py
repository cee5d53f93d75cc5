"""
Daily Flow: recurring task tracker core.

Subpackages:
- tasks: data model, recurrence evaluation, SQLite store, alert scheduler
- push: Web Push delivery
- cli: composition root and process entrypoint
"""
