"""
Frappe Repositories

Database-backed implementations of the repository interfaces, on top of the
Team Schedule, Schedule Recurrence, Meeting Room and User DocTypes.

Frappe stores Datetime fields naive, in the site timezone. Values are
localized into the scheduler's fixed-offset zone when read, and converted
back to naive wall-clock time in that zone when written.
"""

import frappe
from frappe.utils import get_datetime
from datetime import datetime
from typing import Any, Dict, List, Optional
import pytz

from .errors import ScheduleNotFoundError
from .models import RecurrenceInput, Schedule, ScheduleFilter, StoredRecurrence
from .recurrence import Weekday
from .repository import RecurrenceRepository, RoomCatalog, ScheduleRepository, UserDirectory
from .time_window import to_timezone

SCHEDULE_DOCTYPE = "Team Schedule"
PARTICIPANT_DOCTYPE = "Team Schedule Participant"
RECURRENCE_DOCTYPE = "Schedule Recurrence"
ROOM_DOCTYPE = "Meeting Room"

# Set on Team Schedule docs written by the schedule service, which reports
# conflicts itself
SKIP_CONFLICT_WARNING_FLAG = "skip_conflict_warning"

# Check fields of Schedule Recurrence, Monday first
WEEKDAY_FIELDS = (
	("monday", Weekday.MONDAY),
	("tuesday", Weekday.TUESDAY),
	("wednesday", Weekday.WEDNESDAY),
	("thursday", Weekday.THURSDAY),
	("friday", Weekday.FRIDAY),
	("saturday", Weekday.SATURDAY),
	("sunday", Weekday.SUNDAY),
)

_SCHEDULE_FIELDS = [
	"name",
	"title",
	"description",
	"creator",
	"start_datetime",
	"end_datetime",
	"room",
	"web_conference_url",
	"creation",
	"modified",
]


def weekdays_from_row(row: Any) -> Weekday:
	"""Build a Weekday mask from the monday..sunday Check fields of a row/doc."""
	mask = Weekday.none()
	for fieldname, day in WEEKDAY_FIELDS:
		if row.get(fieldname):
			mask |= day
	return mask


def weekdays_to_fields(mask: Weekday) -> Dict[str, int]:
	return {fieldname: 1 if mask & day else 0 for fieldname, day in WEEKDAY_FIELDS}


class _FrappeTimezoneMixin:

	def __init__(self, tz: pytz.tzinfo.BaseTzInfo):
		self.tz = tz

	def _read_datetime(self, value: Any) -> Optional[datetime]:
		if not value:
			return None
		return to_timezone(get_datetime(value), self.tz)

	def _write_datetime(self, value: Optional[datetime]) -> Optional[datetime]:
		if value is None:
			return None
		return to_timezone(value, self.tz).replace(tzinfo=None)


class FrappeScheduleRepository(_FrappeTimezoneMixin, ScheduleRepository):
	"""Team Schedule persistence."""

	def get(self, name: str) -> Schedule:
		if not name or not frappe.db.exists(SCHEDULE_DOCTYPE, name):
			raise ScheduleNotFoundError(f"{SCHEDULE_DOCTYPE} {name} not found")

		doc = frappe.get_doc(SCHEDULE_DOCTYPE, name)
		return self._from_doc(doc)

	def create(self, schedule: Schedule) -> Schedule:
		doc = frappe.get_doc({"doctype": SCHEDULE_DOCTYPE})
		self._apply(doc, schedule)
		doc.insert(ignore_permissions=True)
		return self._from_doc(doc)

	def update(self, schedule: Schedule) -> Schedule:
		if not frappe.db.exists(SCHEDULE_DOCTYPE, schedule.name):
			raise ScheduleNotFoundError(f"{SCHEDULE_DOCTYPE} {schedule.name} not found")

		doc = frappe.get_doc(SCHEDULE_DOCTYPE, schedule.name)
		self._apply(doc, schedule)
		doc.save(ignore_permissions=True)
		return self._from_doc(doc)

	def delete(self, name: str) -> None:
		if not frappe.db.exists(SCHEDULE_DOCTYPE, name):
			raise ScheduleNotFoundError(f"{SCHEDULE_DOCTYPE} {name} not found")

		frappe.delete_doc(SCHEDULE_DOCTYPE, name, ignore_permissions=True)

	def list(self, schedule_filter: Optional[ScheduleFilter] = None) -> List[Schedule]:
		"""
		List schedules matching the filter, ordered by start then name.

		Algoritmo:
			1. Resolve schedule names visible to the participant filter
			   (as participant via the child table, or as creator)
			2. Apply the time bounds on the parent table
			3. Load participants for all rows in one query
		"""
		schedule_filter = schedule_filter or ScheduleFilter()
		filters: Dict[str, Any] = {}

		if schedule_filter.participants:
			names = self._names_for_participants(schedule_filter.participants)
			if not names:
				return []
			filters["name"] = ["in", names]

		if schedule_filter.starts_after is not None:
			filters["end_datetime"] = [">", self._write_datetime(schedule_filter.starts_after)]
		if schedule_filter.ends_before is not None:
			filters["start_datetime"] = ["<", self._write_datetime(schedule_filter.ends_before)]

		rows = frappe.get_all(
			SCHEDULE_DOCTYPE,
			filters=filters,
			fields=_SCHEDULE_FIELDS,
			order_by="start_datetime asc, name asc"
		)
		if not rows:
			return []

		participants_by_schedule = self._load_participants([row.name for row in rows])

		return [
			self._from_row(row, participants_by_schedule.get(row.name, []))
			for row in rows
		]

	def _names_for_participants(self, participants: List[str]) -> List[str]:
		as_participant = frappe.get_all(
			PARTICIPANT_DOCTYPE,
			filters={"parenttype": SCHEDULE_DOCTYPE, "user": ["in", participants]},
			pluck="parent"
		)
		as_creator = frappe.get_all(
			SCHEDULE_DOCTYPE,
			filters={"creator": ["in", participants]},
			pluck="name"
		)
		return sorted(set(as_participant) | set(as_creator))

	def _load_participants(self, names: List[str]) -> Dict[str, List[str]]:
		rows = frappe.get_all(
			PARTICIPANT_DOCTYPE,
			filters={"parenttype": SCHEDULE_DOCTYPE, "parent": ["in", names]},
			fields=["parent", "user"],
			order_by="idx asc"
		)
		result: Dict[str, List[str]] = {}
		for row in rows:
			result.setdefault(row.parent, []).append(row.user)
		return result

	def _apply(self, doc: Any, schedule: Schedule) -> None:
		doc.flags[SKIP_CONFLICT_WARNING_FLAG] = True
		doc.title = schedule.title
		doc.description = schedule.description
		doc.creator = schedule.creator
		doc.start_datetime = self._write_datetime(schedule.start)
		doc.end_datetime = self._write_datetime(schedule.end)
		doc.room = schedule.room
		doc.web_conference_url = schedule.web_conference_url
		doc.set("participants", [{"user": user} for user in schedule.participants])

	def _from_doc(self, doc: Any) -> Schedule:
		participants = [row.user for row in (doc.get("participants") or [])]
		return self._from_row(doc, participants)

	def _from_row(self, row: Any, participants: List[str]) -> Schedule:
		return Schedule(
			name=row.name,
			creator=row.creator,
			title=row.title or "",
			description=row.description or "",
			start=self._read_datetime(row.start_datetime),
			end=self._read_datetime(row.end_datetime),
			participants=list(participants),
			room=row.room or None,
			web_conference_url=row.web_conference_url or "",
			created_at=self._read_datetime(row.creation),
			updated_at=self._read_datetime(row.modified),
		)


class FrappeRecurrenceRepository(_FrappeTimezoneMixin, RecurrenceRepository):
	"""Schedule Recurrence persistence."""

	def save(self, schedule: str, starts_on: datetime, recurrence: RecurrenceInput) -> StoredRecurrence:
		frequency = recurrence.frequency
		if hasattr(frequency, "value"):
			frequency = frequency.value

		values = {
			"doctype": RECURRENCE_DOCTYPE,
			"schedule": schedule,
			"frequency": frequency,
			"starts_on": self._write_datetime(starts_on),
			"ends_on": self._write_datetime(recurrence.ends_on),
		}
		values.update(weekdays_to_fields(recurrence.weekdays))

		doc = frappe.get_doc(values)
		doc.insert(ignore_permissions=True)
		return self._from_row(doc)

	def delete_for_schedule(self, schedule: str) -> None:
		names = frappe.get_all(RECURRENCE_DOCTYPE, filters={"schedule": schedule}, pluck="name")
		for name in names:
			frappe.delete_doc(RECURRENCE_DOCTYPE, name, ignore_permissions=True)

	def list_for_schedules(self, schedules: List[str]) -> Dict[str, List[StoredRecurrence]]:
		if not schedules:
			return {}

		rows = frappe.get_all(
			RECURRENCE_DOCTYPE,
			filters={"schedule": ["in", schedules]},
			fields=["name", "schedule", "frequency", "starts_on", "ends_on"]
			+ [fieldname for fieldname, _day in WEEKDAY_FIELDS],
			order_by="creation asc"
		)

		result: Dict[str, List[StoredRecurrence]] = {}
		for row in rows:
			result.setdefault(row.schedule, []).append(self._from_row(row))
		return result

	def _from_row(self, row: Any) -> StoredRecurrence:
		return StoredRecurrence(
			name=row.name,
			schedule=row.schedule,
			frequency=row.frequency,
			weekdays=weekdays_from_row(row),
			starts_on=self._read_datetime(row.starts_on),
			ends_on=self._read_datetime(row.ends_on),
		)


class FrappeUserDirectory(UserDirectory):

	def missing_user_ids(self, user_ids: List[str]) -> List[str]:
		if not user_ids:
			return []

		existing = set(frappe.get_all(
			"User",
			filters={"name": ["in", user_ids], "enabled": 1},
			pluck="name"
		))
		return [user for user in user_ids if user not in existing]


class FrappeRoomCatalog(RoomCatalog):

	def room_exists(self, room: str) -> bool:
		return bool(room) and bool(frappe.db.exists(ROOM_DOCTYPE, room))
