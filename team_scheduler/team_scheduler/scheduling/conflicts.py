"""
Conflict Detection Service

Detects double bookings between a candidate schedule and existing schedules:
- Participant conflicts: a participant attends both overlapping schedules
- Room conflicts: both overlapping schedules use the same room

Intervals are half-open, so a schedule ending at 10:00 never conflicts with
one starting at 10:00.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple


class ConflictType(str, Enum):
	PARTICIPANT = "participant"
	ROOM = "room"


@dataclass(frozen=True)
class ScheduleSpan:
	"""
	Conflict view of a schedule: who, where and when.

	Participants keep their given order (duplicates dropped), which fixes the
	order of participant conflicts in the output.
	"""

	name: str
	start: datetime
	end: datetime
	participants: Tuple[str, ...] = field(default_factory=tuple)
	room: Optional[str] = None

	def __post_init__(self) -> None:
		unique = tuple(dict.fromkeys(p for p in self.participants if p))
		object.__setattr__(self, "participants", unique)


@dataclass(frozen=True)
class Conflict:
	"""A detected double booking against `with_schedule`."""

	with_schedule: str
	conflict_type: ConflictType
	participant: Optional[str] = None
	room: Optional[str] = None

	def as_dict(self) -> Dict[str, Any]:
		return {
			"schedule": self.with_schedule,
			"type": self.conflict_type.value,
			"participant": self.participant,
			"room": self.room,
		}


def overlaps(a: ScheduleSpan, b: ScheduleSpan) -> bool:
	"""Half-open overlap test: a.start < b.end AND b.start < a.end."""
	return a.start < b.end and b.start < a.end


def detect_conflicts(
	existing: Optional[Iterable[ScheduleSpan]],
	candidate: ScheduleSpan
) -> List[Conflict]:
	"""
	Detect conflicts of `candidate` against each existing schedule.

	Args:
		existing: schedules already booked (None or empty means no conflicts)
		candidate: schedule being created/updated

	Returns:
		list[Conflict]: in the iteration order of `existing`; for each
		existing schedule its participant conflicts come before its room
		conflict. Empty list when nothing conflicts.

	Algorithm:
		1. Skip existing schedules that do not overlap the candidate
		2. One participant conflict per participant in both sets
		3. One room conflict when both use the same room
	"""
	conflicts: List[Conflict] = []
	if not existing:
		return conflicts

	for schedule in existing:
		if not overlaps(schedule, candidate):
			continue

		conflicts.extend(_participant_conflicts(schedule, candidate))

		room_conflict = _room_conflict(schedule, candidate)
		if room_conflict is not None:
			conflicts.append(room_conflict)

	return conflicts


def detect_pairwise_conflicts(schedules: Optional[Sequence[ScheduleSpan]]) -> List[Conflict]:
	"""
	Symmetric all-pairs variant used for listing warnings.

	Each unordered pair (i, j), i < j, is checked once with schedules[i] as
	the candidate, so reported conflicts point at the later schedule. Pairs of
	the same schedule (same name) are skipped.

	Quadratic in len(schedules); meant for a single listing page.
	"""
	conflicts: List[Conflict] = []
	if not schedules or len(schedules) < 2:
		return conflicts

	for index, candidate in enumerate(schedules[:-1]):
		others = [s for s in schedules[index + 1:] if s.name != candidate.name]
		conflicts.extend(detect_conflicts(others, candidate))

	return conflicts


def _participant_conflicts(existing: ScheduleSpan, candidate: ScheduleSpan) -> List[Conflict]:
	if not existing.participants or not candidate.participants:
		return []

	existing_set = set(existing.participants)
	return [
		Conflict(
			with_schedule=existing.name,
			conflict_type=ConflictType.PARTICIPANT,
			participant=participant,
		)
		for participant in candidate.participants
		if participant in existing_set
	]


def _room_conflict(existing: ScheduleSpan, candidate: ScheduleSpan) -> Optional[Conflict]:
	if not existing.room or not candidate.room:
		return None

	if existing.room != candidate.room:
		return None

	return Conflict(
		with_schedule=existing.name,
		conflict_type=ConflictType.ROOM,
		room=candidate.room,
	)
