# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Schedule Recurrence DocType

Daily/Weekly repetition of a Team Schedule. Occurrences are never stored;
they are expanded on read by the RecurrenceEngine.
"""

import frappe
from frappe import _
from frappe.model.document import Document
from frappe.utils import get_datetime

from team_scheduler.team_scheduler.scheduling.errors import InvalidFrequencyError
from team_scheduler.team_scheduler.scheduling.frappe_repository import weekdays_from_row
from team_scheduler.team_scheduler.scheduling.recurrence import Frequency, parse_frequency


class ScheduleRecurrence(Document):
	"""
	Validations:
	- schedule and frequency required
	- Weekly requires at least one weekday
	- ends_on >= starts_on (if present)
	"""

	def validate(self) -> None:
		if not self.schedule:
			frappe.throw(_("Schedule is required"))

		self._validate_frequency()
		self._validate_dates()

	def _validate_frequency(self) -> None:
		try:
			frequency = parse_frequency(self.frequency)
		except InvalidFrequencyError:
			frappe.throw(_("Frequency must be Daily or Weekly"))

		if frequency == Frequency.WEEKLY and not weekdays_from_row(self):
			frappe.throw(_("Select at least one weekday for a Weekly recurrence"))

	def _validate_dates(self) -> None:
		if not self.starts_on:
			frappe.throw(_("Starts On is required"))

		if self.ends_on and get_datetime(self.ends_on) < get_datetime(self.starts_on):
			frappe.throw(_("Ends On must be on or after Starts On"))
