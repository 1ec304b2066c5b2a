"""
Team Schedule API Endpoints

Whitelisted functions for the desk UI and external clients. All endpoints
require an authenticated session; the session user is the acting principal.

Datetimes are ISO 8601 strings. Values without offset are read as wall-clock
time in the configured scheduler timezone (UTC+09:00 unless the site config
says otherwise).
"""

import frappe
from frappe import _
from frappe.utils import cint
from datetime import datetime
from typing import Any, Dict, Optional

from team_scheduler.team_scheduler.scheduling.factory import get_schedule_service, get_settings
from team_scheduler.team_scheduler.scheduling.models import (
	ListSchedulesParams,
	Principal,
	RecurrenceInput,
	ScheduleInput,
)
from team_scheduler.team_scheduler.scheduling.time_window import get_period_range as resolve_period_range

from team_scheduler.api.shared import (
	parse_string_list,
	validate_datetime_string,
	validate_docname,
	validate_optional_datetime,
	validate_period,
	validate_weekdays,
)

ADMIN_ROLE = "System Manager"

# Errors that already carry a user facing message and HTTP status
_CLIENT_ERRORS = (frappe.ValidationError, frappe.DoesNotExistError, frappe.PermissionError)


def get_principal() -> Principal:
	"""Principal for the session user."""
	user = frappe.session.user
	if not user or user == "Guest":
		frappe.throw(_("Login required"), frappe.PermissionError)

	is_admin = user == "Administrator" or ADMIN_ROLE in frappe.get_roles(user)
	return Principal(user_id=user, is_admin=is_admin)


def _report_client_error(e: Exception) -> None:
	frappe.msgprint(str(e), title=_("Team Schedule"), indicator="red")


def _serialize_warnings(warnings) -> list:
	return [warning.as_dict() for warning in warnings]


def _build_recurrence(
	frequency: Optional[str],
	weekdays: Any,
	ends_on: Optional[str]
) -> Optional[RecurrenceInput]:
	if not frequency:
		return None

	return RecurrenceInput(
		frequency=frequency,
		weekdays=validate_weekdays(weekdays),
		ends_on=validate_optional_datetime(ends_on, "ends_on"),
	)


def _build_input(
	title: str,
	start: str,
	end: str,
	participants: Any,
	description: Optional[str] = None,
	room: Optional[str] = None,
	web_conference_url: Optional[str] = None,
	creator: Optional[str] = None,
	frequency: Optional[str] = None,
	weekdays: Any = None,
	ends_on: Optional[str] = None,
	remove_recurrence: Any = 0
) -> ScheduleInput:
	return ScheduleInput(
		title=title or "",
		start=validate_datetime_string(start, "start"),
		end=validate_datetime_string(end, "end"),
		participants=parse_string_list(participants, "participants"),
		creator=creator or None,
		description=description or "",
		room=validate_docname(room, "room") if room else None,
		web_conference_url=(web_conference_url or "").strip(),
		recurrence=_build_recurrence(frequency, weekdays, ends_on),
		remove_recurrence=bool(cint(remove_recurrence)),
	)


@frappe.whitelist(methods=['GET'])
def list_schedules(
	period: Optional[str] = None,
	reference: Optional[str] = None,
	participants: Any = None,
	starts_after: Optional[str] = None,
	ends_before: Optional[str] = None
) -> Dict[str, Any]:
	"""
	List schedules of the session user (and optional extra participants).

	Args:
		period: "day", "week" or "month"; fills the bounds not given explicitly
		reference: datetime inside the period (defaults to now)
		participants: JSON list or comma separated user ids
		starts_after: only schedules ending after this datetime
		ends_before: only schedules starting before this datetime

	Returns:
		dict: {
			"schedules": [Schedule.as_dict(), ...],
			"warnings": [Conflict.as_dict(), ...]
		}

	Example:
		```javascript
		frappe.call({
			method: "team_scheduler.api.schedules.list_schedules",
			args: {period: "week", reference: "2024-04-03T15:30:00+09:00"},
			callback: function(r) {
				console.log(r.message.schedules, r.message.warnings);
			}
		});
		```
	"""
	params = ListSchedulesParams(
		principal=get_principal(),
		participants=parse_string_list(participants, "participants"),
		starts_after=validate_optional_datetime(starts_after, "starts_after"),
		ends_before=validate_optional_datetime(ends_before, "ends_before"),
		period=validate_period(period),
		period_reference=validate_optional_datetime(reference, "reference"),
	)

	try:
		schedules, warnings = get_schedule_service().list_schedules(params)
		return {
			"schedules": [schedule.as_dict() for schedule in schedules],
			"warnings": _serialize_warnings(warnings),
		}

	except _CLIENT_ERRORS as e:
		_report_client_error(e)
		raise
	except Exception as e:
		frappe.log_error(f"Error in list_schedules: {str(e)}", "API Error")
		frappe.throw(_("Could not list schedules"))


@frappe.whitelist(methods=['GET'])
def get_schedule(
	schedule: str,
	range_start: Optional[str] = None,
	range_end: Optional[str] = None
) -> Dict[str, Any]:
	"""
	Get one schedule with its occurrences.

	Occurrences are expanded between range_start and range_end; without a
	range, over the month containing the schedule start.
	"""
	schedule = validate_docname(schedule, "schedule")
	principal = get_principal()
	start = validate_optional_datetime(range_start, "range_start")
	end = validate_optional_datetime(range_end, "range_end")

	try:
		result = get_schedule_service().get_schedule(principal, schedule, start, end)
		return result.as_dict()

	except _CLIENT_ERRORS as e:
		_report_client_error(e)
		raise
	except Exception as e:
		frappe.log_error(f"Error in get_schedule: {str(e)}", "API Error")
		frappe.throw(_("Could not load schedule {0}").format(schedule))


@frappe.whitelist(methods=['POST'])
def create_schedule(
	title: str,
	start: str,
	end: str,
	participants: Any,
	description: Optional[str] = None,
	room: Optional[str] = None,
	web_conference_url: Optional[str] = None,
	creator: Optional[str] = None,
	frequency: Optional[str] = None,
	weekdays: Any = None,
	ends_on: Optional[str] = None
) -> Dict[str, Any]:
	"""
	Create a schedule.

	Conflicts with existing schedules do not block creation; they are
	returned as warnings.

	Args:
		title: schedule title
		start, end: ISO datetimes, start < end
		participants: JSON list or comma separated user ids
		creator: defaults to the session user (admins may set another user)
		frequency: "Daily" or "Weekly" to attach a recurrence
		weekdays: weekday names for the recurrence, e.g. ["Monday", "Friday"]
		ends_on: last instant an occurrence may start at

	Returns:
		dict: {"schedule": Schedule.as_dict(), "warnings": [Conflict.as_dict()]}
	"""
	principal = get_principal()
	data = _build_input(
		title, start, end, participants,
		description=description,
		room=room,
		web_conference_url=web_conference_url,
		creator=creator,
		frequency=frequency,
		weekdays=weekdays,
		ends_on=ends_on,
	)

	try:
		schedule, warnings = get_schedule_service().create_schedule(principal, data)
		frappe.db.commit()

		return {
			"schedule": schedule.as_dict(),
			"warnings": _serialize_warnings(warnings),
		}

	except _CLIENT_ERRORS as e:
		_report_client_error(e)
		raise
	except Exception as e:
		frappe.log_error(f"Error in create_schedule: {str(e)}", "API Error")
		frappe.throw(_("Could not create schedule"))


@frappe.whitelist(methods=['POST', 'PUT'])
def update_schedule(
	schedule: str,
	title: str,
	start: str,
	end: str,
	participants: Any,
	description: Optional[str] = None,
	room: Optional[str] = None,
	web_conference_url: Optional[str] = None,
	frequency: Optional[str] = None,
	weekdays: Any = None,
	ends_on: Optional[str] = None,
	remove_recurrence: Any = 0
) -> Dict[str, Any]:
	"""
	Replace the fields of a schedule owned by the session user.

	Existing recurrence rules are dropped when start, end or participants
	change, when a new frequency is given, or when remove_recurrence is 1.

	Returns:
		dict: {"schedule": Schedule.as_dict(), "warnings": [Conflict.as_dict()]}
	"""
	schedule = validate_docname(schedule, "schedule")
	principal = get_principal()
	data = _build_input(
		title, start, end, participants,
		description=description,
		room=room,
		web_conference_url=web_conference_url,
		frequency=frequency,
		weekdays=weekdays,
		ends_on=ends_on,
		remove_recurrence=remove_recurrence,
	)

	try:
		updated, warnings = get_schedule_service().update_schedule(principal, schedule, data)
		frappe.db.commit()

		return {
			"schedule": updated.as_dict(),
			"warnings": _serialize_warnings(warnings),
		}

	except _CLIENT_ERRORS as e:
		_report_client_error(e)
		raise
	except Exception as e:
		frappe.log_error(f"Error in update_schedule: {str(e)}", "API Error")
		frappe.throw(_("Could not update schedule {0}").format(schedule))


@frappe.whitelist(methods=['POST', 'DELETE'])
def delete_schedule(schedule: str) -> Dict[str, Any]:
	"""
	Delete a schedule and its recurrence rules.

	Returns:
		dict: {"success": True, "message": str}
	"""
	schedule = validate_docname(schedule, "schedule")
	principal = get_principal()

	try:
		get_schedule_service().delete_schedule(principal, schedule)
		frappe.db.commit()

		return {
			"success": True,
			"message": _("Schedule {0} deleted").format(schedule)
		}

	except _CLIENT_ERRORS as e:
		_report_client_error(e)
		raise
	except Exception as e:
		frappe.log_error(f"Error in delete_schedule: {str(e)}", "API Error")
		frappe.throw(_("Could not delete schedule {0}").format(schedule))


@frappe.whitelist(methods=['GET'])
def get_period_range(period: str, reference: Optional[str] = None) -> Dict[str, str]:
	"""
	Resolve a day/week/month preset to its [start, end) window.

	Weeks start on Monday. The window is computed in the scheduler timezone.

	Returns:
		dict: {"period": str, "start": ISO datetime, "end": ISO datetime}
	"""
	period_type = validate_period(period)
	if period_type is None:
		frappe.throw(_("period is required"), frappe.ValidationError)

	tz = get_settings().timezone
	reference_dt = validate_optional_datetime(reference, "reference")
	if reference_dt is None:
		reference_dt = datetime.now(tz)

	start, end = resolve_period_range(period_type, reference_dt, tz)
	return {
		"period": period_type.value,
		"start": start.isoformat(),
		"end": end.isoformat(),
	}

