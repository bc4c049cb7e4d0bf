"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Effort, TaskStatus, Day, CompletionRecord)
- status.py: urgency derivation (status / priority / days overdue)
- week.py: 7-day window with per-day load
- task_scheduler.py: greedy group-first smart scheduler
- task_store.py: SQLite-backed storage
- rest_store.py: client for the hosted REST backend
- stats.py: completion statistics
- task_api.py: small high-level actions used by the console
"""
