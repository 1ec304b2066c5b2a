"""
Recurrence Engine

Expands a Daily/Weekly recurrence rule into concrete occurrences inside a
bounded window.

Semantics:
- All timestamps are normalized to the engine's fixed-offset timezone.
- The window is closed on both ends: an occurrence is emitted when its start
  falls in [lower_bound, upper_bound].
- Expansion without an upper bound (no rule.ends_on and no range_end) is
  refused with UnboundedWindowError.
- Weekly rules keep only the selected weekdays (no weekdays -> nothing).
  Daily rules keep every day, or only the selected weekdays when some are set.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum, IntFlag
from typing import Any, Dict, Iterable, List, Optional, Union
import pytz

from .errors import (
	InvalidDurationError,
	InvalidFrequencyError,
	InvalidRecurrenceRuleError,
	UnboundedWindowError,
)
from .time_window import to_timezone


class Frequency(str, Enum):
	"""Supported recurrence frequencies (values match the DocType Select options)."""

	DAILY = "Daily"
	WEEKLY = "Weekly"


class Weekday(IntFlag):
	"""
	Weekday set as a 7-bit mask, bit 0 = Monday ... bit 6 = Sunday.

	Bit positions follow date.weekday(), so membership of a date is a single
	AND against `Weekday.from_date(d)`.
	"""

	MONDAY = 1 << 0
	TUESDAY = 1 << 1
	WEDNESDAY = 1 << 2
	THURSDAY = 1 << 3
	FRIDAY = 1 << 4
	SATURDAY = 1 << 5
	SUNDAY = 1 << 6

	@classmethod
	def none(cls) -> "Weekday":
		return cls(0)

	@classmethod
	def every_day(cls) -> "Weekday":
		return cls(0x7F)

	@classmethod
	def from_date(cls, value: Union[date, datetime]) -> "Weekday":
		return cls(1 << value.weekday())

	def names(self) -> List[str]:
		"""Member names in Monday..Sunday order, e.g. ["Monday", "Friday"]."""
		return [day.name.capitalize() for day in _ORDERED_WEEKDAYS if day & self]


_ORDERED_WEEKDAYS = (
	Weekday.MONDAY,
	Weekday.TUESDAY,
	Weekday.WEDNESDAY,
	Weekday.THURSDAY,
	Weekday.FRIDAY,
	Weekday.SATURDAY,
	Weekday.SUNDAY,
)

_WEEKDAYS_BY_NAME = {}
for _day in _ORDERED_WEEKDAYS:
	_WEEKDAYS_BY_NAME[_day.name.lower()] = _day
	_WEEKDAYS_BY_NAME[_day.name.lower()[:3]] = _day


def weekday_mask(days: Optional[Iterable[Union[Weekday, str, int]]]) -> Weekday:
	"""
	Build a Weekday mask from mixed inputs.

	Args:
		days: iterable of Weekday flags, names ("Monday", "mon") or
			date.weekday() indexes (0 = Monday ... 6 = Sunday)

	Returns:
		Weekday: combined mask (Weekday.none() for None/empty)

	Raises:
		InvalidRecurrenceRuleError: on an unknown name or index
	"""
	mask = Weekday.none()
	if not days:
		return mask

	for day in days:
		if isinstance(day, Weekday):
			mask |= day
		elif isinstance(day, bool):
			raise InvalidRecurrenceRuleError(f"Invalid weekday: {day!r}")
		elif isinstance(day, int):
			if not 0 <= day <= 6:
				raise InvalidRecurrenceRuleError(f"Invalid weekday index: {day}")
			mask |= Weekday(1 << day)
		elif isinstance(day, str):
			key = day.strip().lower()
			if key not in _WEEKDAYS_BY_NAME:
				raise InvalidRecurrenceRuleError(f"Invalid weekday name: {day!r}")
			mask |= _WEEKDAYS_BY_NAME[key]
		else:
			raise InvalidRecurrenceRuleError(f"Invalid weekday: {day!r}")

	return mask


def parse_frequency(value: Any) -> Frequency:
	"""
	Resolve a frequency value ("Daily", "weekly", Frequency.WEEKLY...).

	Raises:
		InvalidFrequencyError: if the value is missing or unsupported
	"""
	if isinstance(value, Frequency):
		return value

	if isinstance(value, str) and value.strip():
		normalized = value.strip().capitalize()
		for frequency in Frequency:
			if frequency.value == normalized:
				return frequency

	raise InvalidFrequencyError(f"Unsupported recurrence frequency: {value!r}")


@dataclass(frozen=True)
class RecurrenceRule:
	"""
	Recurrence configuration attached to a schedule.

	`frequency` is kept as given; it is resolved (and rejected if invalid) by
	the engine, so a rule read from storage with a corrupt frequency still
	loads and fails loudly at expansion time.
	"""

	name: str
	schedule: str
	frequency: Any
	starts_on: datetime
	weekdays: Weekday = field(default_factory=Weekday.none)
	ends_on: Optional[datetime] = None

	def __post_init__(self) -> None:
		if not isinstance(self.weekdays, Weekday):
			object.__setattr__(self, "weekdays", weekday_mask(self.weekdays))

		if self.ends_on is None:
			return

		if (self.ends_on.tzinfo is None) != (self.starts_on.tzinfo is None):
			raise InvalidRecurrenceRuleError(
				f"Recurrence {self.name}: starts_on and ends_on must both be naive or both timezone-aware"
			)

		if self.ends_on < self.starts_on:
			raise InvalidRecurrenceRuleError(
				f"Recurrence {self.name}: ends_on ({self.ends_on}) is before starts_on ({self.starts_on})"
			)


@dataclass(frozen=True)
class Occurrence:
	"""One concrete instance generated from a recurrence rule."""

	schedule: str
	rule: str
	start: datetime
	end: datetime

	def as_dict(self) -> Dict[str, Any]:
		return {
			"schedule": self.schedule,
			"rule": self.rule,
			"start": self.start.isoformat(),
			"end": self.end.isoformat(),
		}


class RecurrenceEngine:
	"""
	Expands recurrence rules into occurrences.

	Stateless apart from the target timezone, so a single instance can be
	shared across threads.
	"""

	def __init__(self, tz: pytz.tzinfo.BaseTzInfo):
		if tz is None:
			raise ValueError("RecurrenceEngine requires a timezone")
		self.tz = tz

	def generate_occurrences(
		self,
		rule: RecurrenceRule,
		base_start: datetime,
		base_end: datetime,
		range_start: Optional[datetime] = None,
		range_end: Optional[datetime] = None
	) -> List[Occurrence]:
		"""
		Generate occurrences of `rule` inside the resolved window.

		Args:
			rule: recurrence rule to expand
			base_start: start of the owning schedule (provides time-of-day)
			base_end: end of the owning schedule (provides the duration)
			range_start: optional caller lower bound
			range_end: optional caller upper bound

		Returns:
			list[Occurrence]: strictly ascending by start, at most one per
			calendar day. Empty when the window is empty.

		Raises:
			InvalidDurationError: base_end <= base_start
			InvalidFrequencyError: rule.frequency is missing or unsupported
			UnboundedWindowError: neither rule.ends_on nor range_end is set

		Algorithm:
			1. Normalize every timestamp to self.tz
			2. upper = min(rule.ends_on, range_end); lower = max(rule.starts_on, range_start)
			3. Walk day by day from the first day >= lower, keeping base_start's time
			4. Emit the days whose weekday passes the frequency filter
		"""
		tz = self.tz

		base_start = to_timezone(base_start, tz)
		base_end = to_timezone(base_end, tz)
		if base_end <= base_start:
			raise InvalidDurationError(
				f"Schedule duration must be positive (start={base_start.isoformat()}, end={base_end.isoformat()})"
			)
		duration = base_end - base_start

		frequency = parse_frequency(rule.frequency)

		upper_candidates = [
			to_timezone(bound, tz)
			for bound in (rule.ends_on, range_end)
			if bound is not None
		]
		if not upper_candidates:
			raise UnboundedWindowError(
				f"Recurrence {rule.name} has no end bound; supply ends_on or range_end"
			)
		upper_bound = min(upper_candidates)

		lower_bound = to_timezone(rule.starts_on, tz)
		if range_start is not None:
			lower_bound = max(lower_bound, to_timezone(range_start, tz))

		if lower_bound > upper_bound:
			return []

		mask = rule.weekdays
		if frequency == Frequency.WEEKLY and not mask:
			return []

		occurrences = []
		current = self._first_candidate(lower_bound, base_start)

		while current <= upper_bound:
			if self._should_include(frequency, mask, current):
				occurrences.append(Occurrence(
					schedule=rule.schedule,
					rule=rule.name,
					start=current,
					end=current + duration,
				))
			# fixed offset: +24h is always the next calendar day at the same wall time
			current = current + timedelta(days=1)

		return occurrences

	def _first_candidate(self, lower_bound: datetime, template: datetime) -> datetime:
		"""First instant >= lower_bound that carries template's time-of-day."""
		candidate = self.tz.localize(datetime.combine(lower_bound.date(), template.time()))
		if candidate < lower_bound:
			candidate = candidate + timedelta(days=1)
		return candidate

	@staticmethod
	def _should_include(frequency: Frequency, mask: Weekday, day: datetime) -> bool:
		if frequency == Frequency.DAILY:
			if not mask:
				return True
			return bool(mask & Weekday.from_date(day))

		# Weekly
		return bool(mask & Weekday.from_date(day))
