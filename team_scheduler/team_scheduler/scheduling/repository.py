"""
Repository Interfaces

Collaborators the schedule service depends on. Frappe-backed
implementations live in frappe_repository.py; tests use in-memory fakes.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from .models import RecurrenceInput, Schedule, ScheduleFilter, StoredRecurrence


class ScheduleRepository(ABC):
	"""Persistence of Team Schedule records."""

	@abstractmethod
	def get(self, name: str) -> Schedule:
		"""
		Load one schedule.

		Raises:
			ScheduleNotFoundError: if it does not exist
		"""
		pass

	@abstractmethod
	def create(self, schedule: Schedule) -> Schedule:
		"""Persist a new schedule; returns it with its assigned name."""
		pass

	@abstractmethod
	def update(self, schedule: Schedule) -> Schedule:
		pass

	@abstractmethod
	def delete(self, name: str) -> None:
		pass

	@abstractmethod
	def list(self, schedule_filter: Optional[ScheduleFilter] = None) -> List[Schedule]:
		"""
		List schedules.

		Filter semantics:
			- participants: schedule has any of them as participant or creator
			- starts_after: schedule ends after this instant
			- ends_before: schedule starts before this instant
		"""
		pass


class RecurrenceRepository(ABC):
	"""Persistence of Schedule Recurrence records."""

	@abstractmethod
	def save(self, schedule: str, starts_on: datetime, recurrence: RecurrenceInput) -> StoredRecurrence:
		pass

	@abstractmethod
	def delete_for_schedule(self, schedule: str) -> None:
		pass

	@abstractmethod
	def list_for_schedules(self, schedules: List[str]) -> Dict[str, List[StoredRecurrence]]:
		"""Rules grouped by schedule name; schedules without rules are absent."""
		pass


class UserDirectory(ABC):

	@abstractmethod
	def missing_user_ids(self, user_ids: List[str]) -> List[str]:
		"""Return the subset of user_ids that do not exist."""
		pass


class RoomCatalog(ABC):

	@abstractmethod
	def room_exists(self, room: str) -> bool:
		pass
