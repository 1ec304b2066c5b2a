# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Team Schedule DocType

A meeting with participants, an optional room and an optional recurrence.
Conflicts with other schedules are reported as warnings, never blocking.
"""

import frappe
from frappe import _
from frappe.model.document import Document
from frappe.utils import get_datetime

from team_scheduler.team_scheduler.scheduling.conflicts import ScheduleSpan, detect_conflicts
from team_scheduler.team_scheduler.scheduling.factory import get_settings
from team_scheduler.team_scheduler.scheduling.frappe_repository import (
	FrappeScheduleRepository,
	RECURRENCE_DOCTYPE,
	SKIP_CONFLICT_WARNING_FLAG,
)
from team_scheduler.team_scheduler.scheduling.time_window import to_timezone


class TeamSchedule(Document):
	"""
	Team Schedule with validation and conflict warnings.

	Validations:
	- title required
	- start_datetime < end_datetime
	- at least one participant, no duplicates
	"""

	def validate(self) -> None:
		"""
		Validación antes de guardar.
		"""
		if not self.creator:
			self.creator = frappe.session.user

		self._validate_title()
		self._validate_datetime_consistency()
		self._validate_participants()
		self._warn_conflicts()

	def on_trash(self) -> None:
		"""Delete recurrence rules of this schedule."""
		for name in frappe.get_all(RECURRENCE_DOCTYPE, filters={"schedule": self.name}, pluck="name"):
			frappe.delete_doc(RECURRENCE_DOCTYPE, name, ignore_permissions=True)

	# ===== VALIDATION METHODS =====

	def _validate_title(self) -> None:
		if not (self.title or "").strip():
			frappe.throw(_("Title is required"))

	def _validate_datetime_consistency(self) -> None:
		"""Valida que start_datetime < end_datetime."""
		if not self.start_datetime or not self.end_datetime:
			frappe.throw(_("Start DateTime and End DateTime are required"))

		if get_datetime(self.start_datetime) >= get_datetime(self.end_datetime):
			frappe.throw(_("Start DateTime must be before End DateTime"))

	def _validate_participants(self) -> None:
		users = [row.user for row in (self.participants or []) if row.user]
		if not users:
			frappe.throw(_("At least one participant is required"))

		duplicates = sorted({user for user in users if users.count(user) > 1})
		if duplicates:
			frappe.throw(_("Duplicate participants: {0}").format(", ".join(duplicates)))

	def _warn_conflicts(self) -> None:
		"""Show overlapping bookings of the same participants or room."""
		if self.flags.get(SKIP_CONFLICT_WARNING_FLAG):
			return

		tz = get_settings().timezone
		repository = FrappeScheduleRepository(tz)

		existing = [
			schedule.to_span()
			for schedule in repository.list()
			if schedule.name != self.name
		]
		candidate = ScheduleSpan(
			name=self.name or "",
			start=to_timezone(get_datetime(self.start_datetime), tz),
			end=to_timezone(get_datetime(self.end_datetime), tz),
			participants=tuple(row.user for row in self.participants if row.user),
			room=self.room or None,
		)

		conflicts = detect_conflicts(existing, candidate)
		if not conflicts:
			return

		lines = []
		for conflict in conflicts:
			if conflict.participant:
				lines.append(_("{0} is also booked in {1}").format(conflict.participant, conflict.with_schedule))
			else:
				lines.append(_("Room {0} is also booked in {1}").format(conflict.room, conflict.with_schedule))

		frappe.msgprint(
			"<br>".join(lines),
			title=_("Scheduling conflicts"),
			indicator="orange",
		)
