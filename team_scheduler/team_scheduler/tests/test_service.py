"""
Tests for scheduling/service.py

Runs ScheduleService against in-memory repositories, a fixed clock and a
stdlib logger, so no Frappe site is needed.
"""

import logging
import unittest
from dataclasses import replace
from datetime import datetime, timedelta
import pytz

from team_scheduler.team_scheduler.scheduling.conflicts import ConflictType
from team_scheduler.team_scheduler.scheduling.errors import (
	ScheduleAccessDeniedError,
	ScheduleNotFoundError,
	ScheduleValidationError,
)
from team_scheduler.team_scheduler.scheduling.models import (
	ListSchedulesParams,
	Principal,
	RecurrenceInput,
	ScheduleInput,
	StoredRecurrence,
)
from team_scheduler.team_scheduler.scheduling.recurrence import Frequency, weekday_mask
from team_scheduler.team_scheduler.scheduling.repository import (
	RecurrenceRepository,
	RoomCatalog,
	ScheduleRepository,
	UserDirectory,
)
from team_scheduler.team_scheduler.scheduling.service import ScheduleService, unique_sorted
from team_scheduler.team_scheduler.scheduling.time_window import PeriodType, get_fixed_timezone
from team_scheduler.team_scheduler.scheduling.warning_cache import WarningCache

TOKYO = get_fixed_timezone(540)

ALICE = Principal("alice")
BOB = Principal("bob")
ADMIN = Principal("admin", is_admin=True)


def tokyo(*args):
	return TOKYO.localize(datetime(*args))


class InMemoryScheduleRepository(ScheduleRepository):

	def __init__(self):
		self.rows = {}
		self.list_calls = 0
		self._counter = 0

	def get(self, name):
		if name not in self.rows:
			raise ScheduleNotFoundError(f"Team Schedule {name} not found")
		return replace(self.rows[name], participants=list(self.rows[name].participants))

	def create(self, schedule):
		self._counter += 1
		stored = replace(schedule, name=f"TS-{self._counter:04d}", participants=list(schedule.participants))
		self.rows[stored.name] = stored
		return self.get(stored.name)

	def update(self, schedule):
		if schedule.name not in self.rows:
			raise ScheduleNotFoundError(f"Team Schedule {schedule.name} not found")
		self.rows[schedule.name] = replace(schedule, participants=list(schedule.participants))
		return self.get(schedule.name)

	def delete(self, name):
		if name not in self.rows:
			raise ScheduleNotFoundError(f"Team Schedule {name} not found")
		del self.rows[name]

	def list(self, schedule_filter=None):
		self.list_calls += 1
		results = []
		for schedule in self.rows.values():
			if schedule_filter is not None:
				if schedule_filter.participants:
					members = set(schedule.participants) | {schedule.creator}
					if not members & set(schedule_filter.participants):
						continue
				if schedule_filter.starts_after is not None and not schedule.end > schedule_filter.starts_after:
					continue
				if schedule_filter.ends_before is not None and not schedule.start < schedule_filter.ends_before:
					continue
			results.append(self.get(schedule.name))
		return results


class InMemoryRecurrenceRepository(RecurrenceRepository):

	def __init__(self):
		self.rules = []
		self._counter = 0

	def save(self, schedule, starts_on, recurrence):
		self._counter += 1
		rule = StoredRecurrence(
			name=f"REC-{self._counter:04d}",
			schedule=schedule,
			frequency=recurrence.frequency,
			weekdays=recurrence.weekdays,
			starts_on=starts_on,
			ends_on=recurrence.ends_on,
		)
		self.rules.append(rule)
		return rule

	def delete_for_schedule(self, schedule):
		self.rules = [rule for rule in self.rules if rule.schedule != schedule]

	def list_for_schedules(self, schedules):
		result = {}
		for rule in self.rules:
			if rule.schedule in schedules:
				result.setdefault(rule.schedule, []).append(rule)
		return result


class StaticUserDirectory(UserDirectory):

	def __init__(self, users):
		self.users = set(users)

	def missing_user_ids(self, user_ids):
		return [user for user in user_ids if user not in self.users]


class StaticRoomCatalog(RoomCatalog):

	def __init__(self, rooms):
		self.rooms = set(rooms)

	def room_exists(self, room):
		return room in self.rooms


class ScheduleServiceTestCase(unittest.TestCase):

	def setUp(self):
		self.schedules = InMemoryScheduleRepository()
		self.recurrences = InMemoryRecurrenceRepository()
		self.cache = WarningCache(ttl=30, max_entries=8, clock=self._now)
		self.logger = logging.getLogger("team_scheduler.tests.service")
		self.service = ScheduleService(
			schedules=self.schedules,
			tz=TOKYO,
			recurrences=self.recurrences,
			users=StaticUserDirectory(["alice", "bob", "carol", "admin"]),
			rooms=StaticRoomCatalog(["R-1", "R-2"]),
			warning_cache=self.cache,
			clock=self._now,
			logger=self.logger,
		)

	@staticmethod
	def _now():
		return pytz.UTC.localize(datetime(2024, 3, 1, 0, 0))

	def _input(self, **overrides):
		values = {
			"title": "Weekly sync",
			"start": tokyo(2024, 3, 4, 9, 0),
			"end": tokyo(2024, 3, 4, 10, 0),
			"participants": ["bob", "alice"],
		}
		values.update(overrides)
		return ScheduleInput(**values)

	def _create(self, principal=ALICE, **overrides):
		schedule, _warnings = self.service.create_schedule(principal, self._input(**overrides))
		return schedule


class TestCreateSchedule(ScheduleServiceTestCase):

	def test_create_defaults_creator_and_sorts_participants(self):
		with self.assertLogs(self.logger, level="INFO") as logs:
			schedule, warnings = self.service.create_schedule(
				ALICE, self._input(participants=["carol", "bob", "carol", ""])
			)

		self.assertEqual(schedule.name, "TS-0001")
		self.assertEqual(schedule.creator, "alice")
		self.assertEqual(schedule.participants, ["bob", "carol"])
		self.assertEqual(warnings, [])
		self.assertIn("Schedule created: TS-0001 by alice", logs.output[0])

	def test_naive_datetimes_are_local_wall_time(self):
		schedule = self._create(start=datetime(2024, 3, 4, 9, 0), end=datetime(2024, 3, 4, 10, 0))

		self.assertEqual(schedule.start, tokyo(2024, 3, 4, 9, 0))
		self.assertEqual(schedule.start.utcoffset(), timedelta(hours=9))

	def test_non_admin_cannot_create_for_others(self):
		with self.assertRaises(ScheduleAccessDeniedError):
			self.service.create_schedule(ALICE, self._input(creator="bob"))

	def test_admin_can_create_for_others(self):
		schedule, _warnings = self.service.create_schedule(ADMIN, self._input(creator="bob"))
		self.assertEqual(schedule.creator, "bob")

	def test_field_errors_reported_together(self):
		data = self._input(
			title="  ",
			end=tokyo(2024, 3, 4, 8, 0),
			participants=[],
			web_conference_url="meet.example.com/abc",
		)

		with self.assertLogs(self.logger, level="ERROR") as logs:
			with self.assertRaises(ScheduleValidationError) as ctx:
				self.service.create_schedule(ALICE, data)

		self.assertEqual(
			sorted(ctx.exception.field_errors),
			["participants", "time", "title", "web_conference_url"]
		)
		self.assertIn("[validation]", logs.output[0])
		self.assertEqual(self.schedules.rows, {})

	def test_start_in_other_offset_rejected(self):
		utc_start = tokyo(2024, 3, 4, 9, 0).astimezone(pytz.UTC)

		with self.assertRaises(ScheduleValidationError) as ctx:
			self.service.create_schedule(ALICE, self._input(start=utc_start))

		self.assertIn("start", ctx.exception.field_errors)
		self.assertIn("+0900", ctx.exception.field_errors["start"])

	def test_https_conference_url_accepted(self):
		schedule = self._create(web_conference_url="https://meet.example.com/abc")
		self.assertEqual(schedule.web_conference_url, "https://meet.example.com/abc")

	def test_unknown_participant(self):
		with self.assertRaises(ScheduleValidationError) as ctx:
			self.service.create_schedule(ALICE, self._input(participants=["bob", "mallory"]))

		self.assertIn("mallory", ctx.exception.field_errors["participants"])

	def test_unknown_room(self):
		with self.assertRaises(ScheduleValidationError) as ctx:
			self.service.create_schedule(ALICE, self._input(room="R-9"))

		self.assertEqual(list(ctx.exception.field_errors), ["room"])

	def test_invalid_recurrence_frequency(self):
		data = self._input(recurrence=RecurrenceInput(frequency="Monthly"))

		with self.assertRaises(ScheduleValidationError) as ctx:
			self.service.create_schedule(ALICE, data)

		self.assertIn("recurrence", ctx.exception.field_errors)

	def test_recurrence_ending_before_start(self):
		data = self._input(recurrence=RecurrenceInput(
			frequency=Frequency.DAILY,
			ends_on=tokyo(2024, 3, 3, 9, 0),
		))

		with self.assertRaises(ScheduleValidationError) as ctx:
			self.service.create_schedule(ALICE, data)

		self.assertIn("recurrence", ctx.exception.field_errors)

	def test_conflicts_are_warnings(self):
		existing = self._create(participants=["bob"], room="R-1")

		schedule, warnings = self.service.create_schedule(
			BOB,
			self._input(
				start=tokyo(2024, 3, 4, 9, 30),
				end=tokyo(2024, 3, 4, 10, 30),
				participants=["bob", "carol"],
				room="R-1",
			)
		)

		self.assertEqual(schedule.name, "TS-0002")
		self.assertEqual(
			[(w.with_schedule, w.conflict_type, w.participant or w.room) for w in warnings],
			[
				(existing.name, ConflictType.PARTICIPANT, "bob"),
				(existing.name, ConflictType.ROOM, "R-1"),
			]
		)

	def test_create_saves_recurrence(self):
		schedule = self._create(recurrence=RecurrenceInput(
			frequency=Frequency.WEEKLY,
			weekdays=weekday_mask(["Monday"]),
			ends_on=tokyo(2024, 3, 25, 9, 0),
		))

		self.assertEqual(len(self.recurrences.rules), 1)
		self.assertEqual(self.recurrences.rules[0].schedule, schedule.name)
		self.assertEqual(self.recurrences.rules[0].starts_on, schedule.start)

	def test_create_invalidates_warning_cache(self):
		self.cache.store("key", [])

		self._create()

		self.assertEqual(len(self.cache), 0)


class TestUpdateAndDeleteSchedule(ScheduleServiceTestCase):

	def setUp(self):
		super().setUp()
		self.schedule = self._create(recurrence=RecurrenceInput(
			frequency=Frequency.DAILY,
			ends_on=tokyo(2024, 3, 10, 9, 0),
		))

	def test_update_fields(self):
		updated, warnings = self.service.update_schedule(
			ALICE, self.schedule.name, self._input(title="Renamed", room="R-2")
		)

		self.assertEqual(updated.title, "Renamed")
		self.assertEqual(updated.room, "R-2")
		self.assertEqual(warnings, [])

	def test_update_does_not_conflict_with_itself(self):
		_updated, warnings = self.service.update_schedule(
			ALICE, self.schedule.name, self._input(title="Same slot")
		)
		self.assertEqual(warnings, [])

	def test_unchanged_times_keep_recurrence(self):
		self.service.update_schedule(ALICE, self.schedule.name, self._input(title="Renamed"))
		self.assertEqual(len(self.recurrences.rules), 1)

	def test_moving_schedule_drops_recurrence(self):
		self.service.update_schedule(
			ALICE,
			self.schedule.name,
			self._input(start=tokyo(2024, 3, 4, 11, 0), end=tokyo(2024, 3, 4, 12, 0))
		)
		self.assertEqual(self.recurrences.rules, [])

	def test_changing_participants_drops_recurrence(self):
		self.service.update_schedule(ALICE, self.schedule.name, self._input(participants=["carol"]))
		self.assertEqual(self.recurrences.rules, [])

	def test_remove_recurrence(self):
		self.service.update_schedule(ALICE, self.schedule.name, self._input(remove_recurrence=True))
		self.assertEqual(self.recurrences.rules, [])

	def test_new_recurrence_replaces_old(self):
		self.service.update_schedule(
			ALICE,
			self.schedule.name,
			self._input(recurrence=RecurrenceInput(
				frequency=Frequency.WEEKLY,
				weekdays=weekday_mask(["Friday"]),
				ends_on=tokyo(2024, 3, 31),
			))
		)

		self.assertEqual(len(self.recurrences.rules), 1)
		self.assertEqual(self.recurrences.rules[0].frequency, Frequency.WEEKLY)

	def test_only_creator_or_admin_may_update(self):
		with self.assertRaises(ScheduleAccessDeniedError):
			self.service.update_schedule(BOB, self.schedule.name, self._input())

		updated, _warnings = self.service.update_schedule(ADMIN, self.schedule.name, self._input(title="By admin"))
		self.assertEqual(updated.creator, "alice")

	def test_creator_cannot_change(self):
		with self.assertRaises(ScheduleValidationError) as ctx:
			self.service.update_schedule(ALICE, self.schedule.name, self._input(creator="bob"))

		self.assertIn("creator", ctx.exception.field_errors)

	def test_update_missing_schedule(self):
		with self.assertRaises(ScheduleNotFoundError):
			self.service.update_schedule(ALICE, "TS-9999", self._input())

	def test_delete_removes_recurrences(self):
		with self.assertLogs(self.logger, level="INFO") as logs:
			self.service.delete_schedule(ALICE, self.schedule.name)

		self.assertEqual(self.schedules.rows, {})
		self.assertEqual(self.recurrences.rules, [])
		self.assertIn(f"Schedule deleted: {self.schedule.name} by alice", logs.output[0])

	def test_delete_requires_creator(self):
		with self.assertRaises(ScheduleAccessDeniedError):
			self.service.delete_schedule(BOB, self.schedule.name)

	def test_delete_missing_schedule(self):
		with self.assertLogs(self.logger, level="ERROR") as logs:
			with self.assertRaises(ScheduleNotFoundError):
				self.service.delete_schedule(ALICE, "TS-9999")

		self.assertIn("[not_found]", logs.output[0])


class TestReadSchedules(ScheduleServiceTestCase):

	def test_get_schedule_expands_month_by_default(self):
		schedule = self._create(recurrence=RecurrenceInput(frequency=Frequency.DAILY))

		loaded = self.service.get_schedule(ALICE, schedule.name)

		# Mar 4 through Mar 31
		self.assertEqual(len(loaded.occurrences), 28)
		self.assertEqual(loaded.occurrences[0].start, tokyo(2024, 3, 4, 9, 0))
		self.assertEqual(loaded.occurrences[-1].start, tokyo(2024, 3, 31, 9, 0))

	def test_get_schedule_with_range(self):
		schedule = self._create(recurrence=RecurrenceInput(
			frequency=Frequency.WEEKLY,
			weekdays=weekday_mask(["Monday", "Wednesday", "Friday"]),
			ends_on=tokyo(2024, 3, 18, 9, 0),
		))

		loaded = self.service.get_schedule(
			ALICE, schedule.name, tokyo(2024, 3, 5), tokyo(2024, 3, 12)
		)

		self.assertEqual(
			[o.start.day for o in loaded.occurrences],
			[6, 8, 11]
		)

	def test_get_schedule_with_range_start_only(self):
		"""An open range stops at the end of the month containing its start."""
		schedule = self._create(recurrence=RecurrenceInput(
			frequency=Frequency.WEEKLY,
			weekdays=weekday_mask(["Monday"]),
		))

		loaded = self.service.get_schedule(ALICE, schedule.name, range_start=tokyo(2024, 3, 10))

		self.assertEqual([o.start.day for o in loaded.occurrences], [11, 18, 25])

	def test_get_schedule_with_naive_recurrence_end(self):
		schedule = self._create(recurrence=RecurrenceInput(
			frequency=Frequency.DAILY,
			ends_on=datetime(2024, 3, 6, 9, 0),
		))

		loaded = self.service.get_schedule(ALICE, schedule.name)

		self.assertEqual(
			[o.start for o in loaded.occurrences],
			[tokyo(2024, 3, 4, 9, 0), tokyo(2024, 3, 5, 9, 0), tokyo(2024, 3, 6, 9, 0)]
		)

	def test_get_schedule_visibility(self):
		schedule = self._create(participants=["bob"])

		self.assertEqual(self.service.get_schedule(BOB, schedule.name).name, schedule.name)
		self.assertEqual(self.service.get_schedule(ADMIN, schedule.name).name, schedule.name)
		with self.assertRaises(ScheduleAccessDeniedError):
			self.service.get_schedule(Principal("carol"), schedule.name)

	def test_list_orders_by_start_then_name(self):
		later = self._create(start=tokyo(2024, 3, 5, 9, 0), end=tokyo(2024, 3, 5, 10, 0))
		first = self._create()
		second = self._create()

		schedules, _warnings = self.service.list_schedules(ListSchedulesParams(principal=ALICE))

		self.assertEqual([s.name for s in schedules], [first.name, second.name, later.name])

	def test_list_only_principal_schedules(self):
		self._create(participants=["bob"])
		self._create(principal=BOB, participants=["carol"])

		schedules, _warnings = self.service.list_schedules(ListSchedulesParams(principal=ALICE))

		self.assertEqual([s.creator for s in schedules], ["alice"])

	def test_list_with_period_window(self):
		in_week = self._create(start=tokyo(2024, 3, 6, 9, 0), end=tokyo(2024, 3, 6, 10, 0))
		self._create(start=tokyo(2024, 3, 12, 9, 0), end=tokyo(2024, 3, 12, 10, 0))

		schedules, _warnings = self.service.list_schedules(ListSchedulesParams(
			principal=ALICE,
			period=PeriodType.WEEK,
			period_reference=tokyo(2024, 3, 7, 15, 0),
		))

		self.assertEqual([s.name for s in schedules], [in_week.name])

	def test_list_expands_recurrences_in_window(self):
		self._create(recurrence=RecurrenceInput(
			frequency=Frequency.WEEKLY,
			weekdays=weekday_mask(["Monday", "Thursday"]),
		))

		schedules, _warnings = self.service.list_schedules(ListSchedulesParams(
			principal=ALICE,
			period=PeriodType.WEEK,
			period_reference=tokyo(2024, 3, 4, 12, 0),
		))

		self.assertEqual(
			[o.start for o in schedules[0].occurrences],
			[tokyo(2024, 3, 4, 9, 0), tokyo(2024, 3, 7, 9, 0)]
		)

	def test_list_without_window_expands_current_month(self):
		"""Open-ended recurrences in an unbounded listing stop at the end of this month."""
		self._create(recurrence=RecurrenceInput(
			frequency=Frequency.WEEKLY,
			weekdays=weekday_mask(["Monday"]),
		))

		schedules, _warnings = self.service.list_schedules(ListSchedulesParams(principal=ALICE))

		self.assertEqual([o.start.day for o in schedules[0].occurrences], [4, 11, 18, 25])

	def test_list_with_starts_after_only(self):
		self._create(
			start=tokyo(2024, 4, 1, 9, 0),
			end=tokyo(2024, 4, 1, 10, 0),
			recurrence=RecurrenceInput(
				frequency=Frequency.WEEKLY,
				weekdays=weekday_mask(["Monday"]),
			),
		)

		schedules, _warnings = self.service.list_schedules(ListSchedulesParams(
			principal=ALICE,
			starts_after=tokyo(2024, 4, 1),
		))

		self.assertEqual(
			[o.start.day for o in schedules[0].occurrences],
			[1, 8, 15, 22, 29]
		)
		self.assertEqual(schedules[0].occurrences[-1].start.month, 4)

	def test_list_warnings_cached_until_write(self):
		self._create(participants=["bob"])
		self._create(
			start=tokyo(2024, 3, 4, 9, 30),
			end=tokyo(2024, 3, 4, 10, 30),
			participants=["bob"],
		)
		params = ListSchedulesParams(principal=ALICE)

		_schedules, warnings = self.service.list_schedules(params)
		self.assertEqual([w.participant for w in warnings], ["bob"])
		self.assertEqual(len(self.cache), 1)

		_schedules, cached = self.service.list_schedules(params)
		self.assertEqual(cached, warnings)

		self._create(start=tokyo(2024, 3, 20, 9, 0), end=tokyo(2024, 3, 20, 10, 0))
		self.assertEqual(len(self.cache), 0)


class TestBuildListFilter(ScheduleServiceTestCase):

	def test_principal_always_included(self):
		schedule_filter = self.service.build_list_filter(
			ListSchedulesParams(principal=ALICE, participants=["carol", "bob", "carol"])
		)
		self.assertEqual(schedule_filter.participants, ["alice", "bob", "carol"])
		self.assertIsNone(schedule_filter.starts_after)
		self.assertIsNone(schedule_filter.ends_before)

	def test_period_fills_missing_bound_only(self):
		explicit_start = tokyo(2024, 4, 2, 12, 0)

		schedule_filter = self.service.build_list_filter(ListSchedulesParams(
			principal=ALICE,
			starts_after=explicit_start,
			period=PeriodType.WEEK,
			period_reference=tokyo(2024, 4, 3, 15, 30),
		))

		self.assertEqual(schedule_filter.starts_after, explicit_start)
		self.assertEqual(schedule_filter.ends_before, tokyo(2024, 4, 8))

	def test_period_defaults_to_now(self):
		# clock: 2024-03-01 00:00 UTC == 09:00 UTC+9, a Friday
		schedule_filter = self.service.build_list_filter(
			ListSchedulesParams(principal=ALICE, period=PeriodType.DAY)
		)

		self.assertEqual(schedule_filter.starts_after, tokyo(2024, 3, 1))
		self.assertEqual(schedule_filter.ends_before, tokyo(2024, 3, 2))


class TestUniqueSorted(unittest.TestCase):

	def test_unique_sorted(self):
		self.assertEqual(unique_sorted(["b", "a", "", "b", None]), ["a", "b"])
		self.assertEqual(unique_sorted(None), [])


if __name__ == "__main__":
	unittest.main()
