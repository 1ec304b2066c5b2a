"""
Schedules API Domain

Handles team schedules: CRUD, listing by period with conflict warnings,
and recurrence expansion.
"""

# Re-export endpoints from schedule_api for new-style imports
from team_scheduler.api.schedule_api import (
	# Listing
	list_schedules,
	get_schedule,
	get_period_range,
	# CRUD
	create_schedule,
	update_schedule,
	delete_schedule,
)

__all__ = [
	# Listing
	"list_schedules",
	"get_schedule",
	"get_period_range",
	# CRUD
	"create_schedule",
	"update_schedule",
	"delete_schedule",
]
