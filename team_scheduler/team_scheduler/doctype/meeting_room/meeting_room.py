# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Meeting Room DocType

Bookable room referenced by Team Schedule.room.
"""

import frappe
from frappe import _
from frappe.model.document import Document
from frappe.utils import cint

from team_scheduler.team_scheduler.scheduling.factory import get_settings


class MeetingRoom(Document):

	def validate(self) -> None:
		if not (self.room_name or "").strip():
			frappe.throw(_("Room Name is required"))

		self._validate_capacity()

	def _validate_capacity(self) -> None:
		"""Capacity must be >= 0 and within team_scheduler_max_room_capacity (0 = no limit)."""
		capacity = cint(self.capacity)
		if capacity < 0:
			frappe.throw(_("Capacity cannot be negative"))

		max_capacity = get_settings().max_room_capacity
		if max_capacity and capacity > max_capacity:
			frappe.throw(_("Capacity cannot exceed {0}").format(max_capacity))
