"""
Schedule Service Models

Plain value types exchanged between the whitelisted API, the schedule
service and the repositories.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .conflicts import ScheduleSpan
from .recurrence import Occurrence, Weekday
from .time_window import PeriodType


@dataclass(frozen=True)
class Principal:
	"""The authenticated user invoking a service operation."""

	user_id: str
	is_admin: bool = False


@dataclass
class RecurrenceInput:
	"""Caller supplied recurrence for a schedule write."""

	frequency: Any
	weekdays: Weekday = field(default_factory=Weekday.none)
	ends_on: Optional[datetime] = None


@dataclass
class ScheduleInput:
	"""Caller supplied schedule fields."""

	title: str
	start: Optional[datetime]
	end: Optional[datetime]
	participants: List[str] = field(default_factory=list)
	creator: Optional[str] = None
	description: str = ""
	room: Optional[str] = None
	web_conference_url: str = ""
	recurrence: Optional[RecurrenceInput] = None
	# drop existing recurrence rules on update
	remove_recurrence: bool = False


@dataclass
class StoredRecurrence:
	"""A recurrence rule as persisted for a schedule."""

	name: str
	schedule: str
	frequency: Any
	weekdays: Weekday
	starts_on: datetime
	ends_on: Optional[datetime] = None


@dataclass
class Schedule:
	"""A persisted meeting schedule (read model)."""

	name: str
	creator: str
	title: str
	start: datetime
	end: datetime
	participants: List[str] = field(default_factory=list)
	description: str = ""
	room: Optional[str] = None
	web_conference_url: str = ""
	created_at: Optional[datetime] = None
	updated_at: Optional[datetime] = None
	occurrences: List[Occurrence] = field(default_factory=list)

	def to_span(self) -> ScheduleSpan:
		return ScheduleSpan(
			name=self.name,
			start=self.start,
			end=self.end,
			participants=tuple(self.participants),
			room=self.room,
		)

	def as_dict(self) -> Dict[str, Any]:
		return {
			"name": self.name,
			"creator": self.creator,
			"title": self.title,
			"description": self.description,
			"start": self.start.isoformat(),
			"end": self.end.isoformat(),
			"participants": list(self.participants),
			"room": self.room,
			"web_conference_url": self.web_conference_url,
			"occurrences": [occurrence.as_dict() for occurrence in self.occurrences],
		}


@dataclass(frozen=True)
class ScheduleFilter:
	"""Narrows the schedule repository list query."""

	participants: Optional[List[str]] = None
	starts_after: Optional[datetime] = None
	ends_before: Optional[datetime] = None


@dataclass
class ListSchedulesParams:
	"""Inputs of a schedule listing."""

	principal: Principal
	participants: List[str] = field(default_factory=list)
	starts_after: Optional[datetime] = None
	ends_before: Optional[datetime] = None
	period: Optional[PeriodType] = None
	period_reference: Optional[datetime] = None
