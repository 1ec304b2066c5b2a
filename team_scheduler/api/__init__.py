"""
Team Scheduler API

Structure:
    api/
    ├── __init__.py              # This file
    ├── schedules/               # Schedules domain
    │   └── __init__.py          # Re-exports from schedule_api
    ├── shared/                  # Shared utilities
    │   ├── __init__.py          # Re-exports validators
    │   └── validators.py        # Request parsing and validation
    └── schedule_api.py          # Whitelisted endpoints

Usage:
    frappe.call("team_scheduler.api.schedules.list_schedules", ...)
    frappe.call("team_scheduler.api.schedule_api.list_schedules", ...)
"""

# Re-export domains for convenient access
from . import schedules
from . import shared

__all__ = [
    "schedules",
    "shared",
]
