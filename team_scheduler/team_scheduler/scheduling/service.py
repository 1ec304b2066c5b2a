"""
Schedule Service

Orchestrates schedule writes and reads around the scheduling core:
- validation and authorization of schedule writes
- conflict warnings (non-blocking) for creates, updates and listings
- recurrence persistence and expansion into occurrences
- warning cache maintenance

Repositories, clock and logger are injected so the service runs the same
against Frappe DocTypes or in-memory fakes.
"""

from dataclasses import replace
from datetime import datetime
from typing import Callable, List, Optional, Tuple
from urllib.parse import urlparse
import pytz

from .conflicts import Conflict, detect_conflicts, detect_pairwise_conflicts
from .errors import (
	InvalidFrequencyError,
	ScheduleAccessDeniedError,
	ScheduleValidationError,
	error_kind,
)
from .models import (
	ListSchedulesParams,
	Principal,
	RecurrenceInput,
	Schedule,
	ScheduleFilter,
	ScheduleInput,
	StoredRecurrence,
)
from .recurrence import Occurrence, RecurrenceEngine, RecurrenceRule, parse_frequency
from .repository import RecurrenceRepository, RoomCatalog, ScheduleRepository, UserDirectory
from .time_window import PeriodType, get_period_range, to_timezone
from .warning_cache import WarningCache, build_cache_key


def unique_sorted(values: List[str]) -> List[str]:
	"""Drop blanks and duplicates, sort the rest."""
	return sorted({value for value in (values or []) if value})


class ScheduleService:
	"""
	Schedule use cases.

	Args:
		schedules: ScheduleRepository
		tz: fixed-offset timezone used for validation, windows and expansion
		recurrences: RecurrenceRepository (optional; no recurrence support without it)
		users: UserDirectory (optional; participants not checked without it)
		rooms: RoomCatalog (optional; rooms not checked without it)
		warning_cache: WarningCache for listing warnings (optional)
		clock: callable returning the current aware datetime
		logger: logger; defaults to frappe.logger("team_scheduler")
	"""

	def __init__(
		self,
		schedules: ScheduleRepository,
		tz: pytz.tzinfo.BaseTzInfo,
		recurrences: Optional[RecurrenceRepository] = None,
		users: Optional[UserDirectory] = None,
		rooms: Optional[RoomCatalog] = None,
		warning_cache: Optional[WarningCache] = None,
		clock: Optional[Callable[[], datetime]] = None,
		logger=None
	):
		if tz is None:
			raise ValueError("ScheduleService requires a timezone")

		self.schedules = schedules
		self.tz = tz
		self.recurrences = recurrences
		self.users = users
		self.rooms = rooms
		self.warning_cache = warning_cache
		self.engine = RecurrenceEngine(tz)
		self._clock = clock or (lambda: datetime.now(pytz.UTC))
		self._logger = logger

	@property
	def logger(self):
		if self._logger is None:
			import frappe
			self._logger = frappe.logger("team_scheduler")
		return self._logger

	def now(self) -> datetime:
		return to_timezone(self._clock(), self.tz)

	# ===== WRITES =====

	def create_schedule(self, principal: Principal, data: ScheduleInput) -> Tuple[Schedule, List[Conflict]]:
		"""
		Create a schedule and report conflicts with existing ones.

		Returns:
			tuple: (persisted Schedule, conflict warnings)

		Raises:
			ScheduleAccessDeniedError: non-admin creating for someone else
			ScheduleValidationError: invalid fields, unknown participants or room
		"""
		creator = data.creator or principal.user_id
		try:
			if creator != principal.user_id and not principal.is_admin:
				raise ScheduleAccessDeniedError(
					f"{principal.user_id} cannot create schedules for {creator}"
				)

			self._validate_input(data)
			participants = unique_sorted(data.participants)
			self._ensure_participants_exist(participants + [creator])
			self._ensure_room_exists(data.room)

			now = self.now()
			schedule = Schedule(
				name="",
				creator=creator,
				title=data.title.strip(),
				description=data.description or "",
				start=to_timezone(data.start, self.tz),
				end=to_timezone(data.end, self.tz),
				participants=participants,
				room=data.room or None,
				web_conference_url=data.web_conference_url or "",
				created_at=now,
				updated_at=now,
			)

			warnings = self._detect_conflicts(schedule)
			persisted = self.schedules.create(schedule)

			if data.recurrence is not None and self.recurrences is not None:
				self.recurrences.save(persisted.name, persisted.start, data.recurrence)

			self._invalidate_warnings()
		except Exception as e:
			self.logger.error(
				f"create_schedule failed for principal {principal.user_id} "
				f"(creator {creator}): {e} [{error_kind(e)}]"
			)
			raise

		self.logger.info(
			f"Schedule created: {persisted.name} by {principal.user_id} "
			f"({len(warnings)} conflict warnings)"
		)
		return persisted, warnings

	def update_schedule(
		self,
		principal: Principal,
		name: str,
		data: ScheduleInput
	) -> Tuple[Schedule, List[Conflict]]:
		"""
		Update a schedule owned by the principal (or any schedule, for admins).

		Recurrence handling:
			- existing rules are dropped when start, end or participants change,
			  when a new recurrence is supplied, or when remove_recurrence is set
			- a supplied recurrence is saved again from the new start
		"""
		try:
			existing = self.schedules.get(name)

			if existing.creator != principal.user_id and not principal.is_admin:
				raise ScheduleAccessDeniedError(f"{principal.user_id} cannot modify {name}")

			errors = ScheduleValidationError()
			if data.creator and data.creator != existing.creator:
				errors.add("creator", "creator cannot be changed")
			self._validate_input(data, errors)

			participants = unique_sorted(data.participants)
			self._ensure_participants_exist(participants + [existing.creator])
			self._ensure_room_exists(data.room)

			updated = replace(
				existing,
				title=data.title.strip(),
				description=data.description or "",
				start=to_timezone(data.start, self.tz),
				end=to_timezone(data.end, self.tz),
				participants=participants,
				room=data.room or None,
				web_conference_url=data.web_conference_url or "",
				updated_at=self.now(),
				occurrences=[],
			)

			cleanup_needed = (
				data.recurrence is not None
				or data.remove_recurrence
				or existing.start != updated.start
				or existing.end != updated.end
				or unique_sorted(existing.participants) != participants
			)

			warnings = self._detect_conflicts(updated)
			persisted = self.schedules.update(updated)

			if self.recurrences is not None:
				if cleanup_needed:
					self.recurrences.delete_for_schedule(persisted.name)
				if data.recurrence is not None:
					self.recurrences.save(persisted.name, persisted.start, data.recurrence)

			self._invalidate_warnings()
		except Exception as e:
			self.logger.error(
				f"update_schedule failed for {name} (principal {principal.user_id}): "
				f"{e} [{error_kind(e)}]"
			)
			raise

		self.logger.info(
			f"Schedule updated: {persisted.name} by {principal.user_id} "
			f"({len(warnings)} conflict warnings)"
		)
		return persisted, warnings

	def delete_schedule(self, principal: Principal, name: str) -> None:
		"""Delete a schedule and its recurrence rules."""
		try:
			existing = self.schedules.get(name)

			if existing.creator != principal.user_id and not principal.is_admin:
				raise ScheduleAccessDeniedError(f"{principal.user_id} cannot delete {name}")

			self.schedules.delete(name)
			if self.recurrences is not None:
				self.recurrences.delete_for_schedule(name)

			self._invalidate_warnings()
		except Exception as e:
			self.logger.error(
				f"delete_schedule failed for {name} (principal {principal.user_id}): "
				f"{e} [{error_kind(e)}]"
			)
			raise

		self.logger.info(f"Schedule deleted: {name} by {principal.user_id}")

	# ===== READS =====

	def get_schedule(
		self,
		principal: Principal,
		name: str,
		range_start: Optional[datetime] = None,
		range_end: Optional[datetime] = None
	) -> Schedule:
		"""
		Load one schedule with its occurrences.

		Visible to admins, the creator and participants. When no range is
		given, occurrences are expanded over the month containing the
		schedule start. A range without an end stops at the end of the month
		containing range_start.
		"""
		schedule = self.schedules.get(name)

		if not self._can_view(principal, schedule):
			raise ScheduleAccessDeniedError(f"{principal.user_id} cannot view {name}")

		if range_start is None and range_end is None:
			range_start, range_end = get_period_range(PeriodType.MONTH, schedule.start, self.tz)
		elif range_end is None:
			_month_start, range_end = get_period_range(PeriodType.MONTH, range_start, self.tz)

		return self._expand_recurrences([schedule], range_start, range_end)[0]

	def list_schedules(self, params: ListSchedulesParams) -> Tuple[List[Schedule], List[Conflict]]:
		"""
		List schedules visible to the principal, with occurrences and warnings.

		Returns:
			tuple: (schedules ordered by start then name, conflict warnings
			between the listed schedules)

		Algoritmo:
			1. Build the repository filter (participants + period window)
			2. Query and order results
			3. Expand recurrences inside the resolved window (open windows stop at the
			   end of the month containing starts_after, the reference or now)
			4. Warnings: cache hit, or all-pairs detection stored in the cache
		"""
		try:
			schedule_filter = self.build_list_filter(params)
			results = self.schedules.list(schedule_filter)

			ordered = sorted(results, key=lambda s: (s.start, s.name))
			schedules = self._expand_recurrences(
				ordered,
				schedule_filter.starts_after,
				self._expansion_end(params, schedule_filter)
			)
			warnings = self._list_warnings(params, schedule_filter, schedules)
		except Exception as e:
			self.logger.error(
				f"list_schedules failed for principal {params.principal.user_id}: "
				f"{e} [{error_kind(e)}]"
			)
			raise

		self.logger.info(
			f"Schedules listed for {params.principal.user_id}: "
			f"{len(schedules)} results, {len(warnings)} conflict warnings"
		)
		return schedules, warnings

	def build_list_filter(self, params: ListSchedulesParams) -> ScheduleFilter:
		"""
		Resolve the repository filter for a listing.

		The principal is always part of the participant filter. A period
		preset only fills the bounds the caller left empty.
		"""
		participants = unique_sorted(list(params.participants or []) + [params.principal.user_id])

		starts_after = params.starts_after
		ends_before = params.ends_before

		if params.period is not None:
			reference = params.period_reference or self.now()
			period_start, period_end = get_period_range(params.period, reference, self.tz)
			if starts_after is None:
				starts_after = period_start
			if ends_before is None:
				ends_before = period_end

		return ScheduleFilter(
			participants=participants or None,
			starts_after=starts_after,
			ends_before=ends_before,
		)

	# ===== HELPERS =====

	def _expansion_end(self, params: ListSchedulesParams, schedule_filter: ScheduleFilter) -> datetime:
		"""Upper bound for occurrence expansion of a listing."""
		if schedule_filter.ends_before is not None:
			return schedule_filter.ends_before

		anchor = schedule_filter.starts_after or params.period_reference or self.now()
		_month_start, month_end = get_period_range(PeriodType.MONTH, anchor, self.tz)
		return month_end

	def _list_warnings(
		self,
		params: ListSchedulesParams,
		schedule_filter: ScheduleFilter,
		schedules: List[Schedule]
	) -> List[Conflict]:
		if self.warning_cache is None:
			return detect_pairwise_conflicts([s.to_span() for s in schedules])

		key = build_cache_key(params, schedule_filter)
		cached, hit = self.warning_cache.get(key)
		if hit:
			return cached

		warnings = detect_pairwise_conflicts([s.to_span() for s in schedules])
		self.warning_cache.store(key, warnings)
		return warnings

	def _detect_conflicts(self, candidate: Schedule) -> List[Conflict]:
		existing = [
			schedule.to_span()
			for schedule in self.schedules.list(ScheduleFilter())
			if schedule.name != candidate.name
		]
		return detect_conflicts(existing, candidate.to_span())

	def _expand_recurrences(
		self,
		schedules: List[Schedule],
		range_start: Optional[datetime],
		range_end: Optional[datetime]
	) -> List[Schedule]:
		if self.recurrences is None or not schedules:
			return schedules

		rules_by_schedule = self.recurrences.list_for_schedules([s.name for s in schedules])
		if not rules_by_schedule:
			return schedules

		expanded = []
		for schedule in schedules:
			stored_rules = rules_by_schedule.get(schedule.name)
			if not stored_rules:
				expanded.append(schedule)
				continue

			occurrences: List[Occurrence] = []
			for stored in stored_rules:
				occurrences.extend(self.engine.generate_occurrences(
					self._to_rule(stored),
					schedule.start,
					schedule.end,
					range_start=range_start,
					range_end=range_end,
				))
			occurrences.sort(key=lambda o: (o.start, o.rule))
			expanded.append(replace(schedule, occurrences=occurrences))

		return expanded

	def _to_rule(self, stored: StoredRecurrence) -> RecurrenceRule:
		return RecurrenceRule(
			name=stored.name,
			schedule=stored.schedule,
			frequency=stored.frequency,
			weekdays=stored.weekdays,
			starts_on=to_timezone(stored.starts_on, self.tz),
			ends_on=to_timezone(stored.ends_on, self.tz) if stored.ends_on is not None else None,
		)

	def _can_view(self, principal: Principal, schedule: Schedule) -> bool:
		if principal.is_admin:
			return True
		return principal.user_id == schedule.creator or principal.user_id in schedule.participants

	def _validate_input(self, data: ScheduleInput, errors: Optional[ScheduleValidationError] = None) -> None:
		"""Collect field errors for a schedule write and raise them together."""
		if errors is None:
			errors = ScheduleValidationError()

		if not (data.title or "").strip():
			errors.add("title", "title is required")

		if data.start is None:
			errors.add("start", "start is required")
		elif not self._in_fixed_offset(data.start):
			errors.add("start", f"start must be in UTC{self._offset_label()}")

		if data.end is None:
			errors.add("end", "end is required")
		elif not self._in_fixed_offset(data.end):
			errors.add("end", f"end must be in UTC{self._offset_label()}")

		if data.start is not None and data.end is not None and "start" not in errors.field_errors \
				and "end" not in errors.field_errors:
			if to_timezone(data.start, self.tz) >= to_timezone(data.end, self.tz):
				errors.add("time", "start must be before end")

		if data.web_conference_url and not self._is_valid_url(data.web_conference_url):
			errors.add("web_conference_url", "must be a valid URL")

		if not unique_sorted(data.participants):
			errors.add("participants", "at least one participant is required")

		if data.recurrence is not None:
			self._validate_recurrence(data.recurrence, data.start, errors)

		if errors.has_errors():
			raise errors

	def _validate_recurrence(
		self,
		recurrence: RecurrenceInput,
		start: Optional[datetime],
		errors: ScheduleValidationError
	) -> None:
		try:
			parse_frequency(recurrence.frequency)
		except InvalidFrequencyError:
			errors.add("recurrence", "frequency must be Daily or Weekly")
			return

		if recurrence.ends_on is not None and start is not None and "start" not in errors.field_errors:
			if to_timezone(recurrence.ends_on, self.tz) < to_timezone(start, self.tz):
				errors.add("recurrence", "ends_on must not be before start")

	def _in_fixed_offset(self, value: datetime) -> bool:
		if value.tzinfo is None:
			return True
		return value.utcoffset() == self.tz.utcoffset(value.replace(tzinfo=None))

	def _offset_label(self) -> str:
		return self.now().strftime("%z")

	@staticmethod
	def _is_valid_url(value: str) -> bool:
		parsed = urlparse(value.strip())
		return parsed.scheme in ("http", "https") and bool(parsed.netloc)

	def _ensure_participants_exist(self, user_ids: List[str]) -> None:
		if self.users is None:
			return

		missing = self.users.missing_user_ids(unique_sorted(user_ids))
		if missing:
			raise ScheduleValidationError(
				{"participants": f"unknown user ids: {', '.join(missing)}"}
			)

	def _ensure_room_exists(self, room: Optional[str]) -> None:
		if not room or self.rooms is None:
			return

		if not self.rooms.room_exists(room):
			raise ScheduleValidationError({"room": "room does not exist"})

	def _invalidate_warnings(self) -> None:
		if self.warning_cache is not None:
			self.warning_cache.invalidate()
