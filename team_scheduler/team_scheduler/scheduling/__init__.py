"""
Scheduling Services Module

This module provides the scheduling core and its orchestration:
- Calendar boundaries in a fixed-offset timezone (time_window.py)
- Recurrence expansion into occurrences (recurrence.py)
- Conflict detection between schedules (conflicts.py)
- Conflict warning cache (warning_cache.py)
- Schedule use cases (service.py) wired by factory.py
"""
