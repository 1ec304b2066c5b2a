"""
Time Window Helpers

Calendar boundary math (day, week, month) in a fixed-offset timezone.

Every boundary is computed by first converting the reference instant into the
fixed-offset zone and then truncating, so a reference of 2024-04-03T20:00Z is
already 2024-04-04 in UTC+9.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Tuple
import pytz

DEFAULT_UTC_OFFSET_MINUTES = 9 * 60

# pytz.FixedOffset rejects anything at or beyond a full day
_MAX_OFFSET_MINUTES = 14 * 60


class PeriodType(str, Enum):
	"""Listing period presets."""

	DAY = "day"
	WEEK = "week"
	MONTH = "month"


def get_fixed_timezone(offset_minutes: int = DEFAULT_UTC_OFFSET_MINUTES) -> pytz.tzinfo.BaseTzInfo:
	"""
	Build a timezone with a constant UTC offset.

	Args:
		offset_minutes: offset from UTC in minutes (540 = UTC+9)

	Returns:
		pytz fixed-offset tzinfo (pytz.UTC when the offset is 0)

	Raises:
		ValueError: if the offset is outside ±14h
	"""
	if abs(offset_minutes) > _MAX_OFFSET_MINUTES:
		raise ValueError(f"UTC offset out of range: {offset_minutes} minutes")

	if offset_minutes == 0:
		return pytz.UTC

	return pytz.FixedOffset(offset_minutes)


def to_timezone(value: datetime, tz: pytz.tzinfo.BaseTzInfo) -> datetime:
	"""
	Express a datetime in the given zone.

	Naive datetimes are taken to be wall-clock times in `tz` (Frappe stores
	Datetime fields naive, in the site timezone). Aware datetimes are
	converted, keeping the same instant.
	"""
	if value.tzinfo is None:
		return tz.localize(value)
	return value.astimezone(tz)


def start_of_day(reference: datetime, tz: pytz.tzinfo.BaseTzInfo) -> datetime:
	"""Midnight of the reference's calendar day in `tz`."""
	local = to_timezone(reference, tz)
	return tz.localize(datetime(local.year, local.month, local.day))


def start_of_week(reference: datetime, tz: pytz.tzinfo.BaseTzInfo) -> datetime:
	"""Monday 00:00 of the week containing the reference, in `tz`."""
	day_start = start_of_day(reference, tz)
	# date.weekday(): Monday == 0
	return day_start - timedelta(days=day_start.weekday())


def start_of_month(reference: datetime, tz: pytz.tzinfo.BaseTzInfo) -> datetime:
	"""First day of the reference's month at 00:00 in `tz`."""
	local = to_timezone(reference, tz)
	return tz.localize(datetime(local.year, local.month, 1))


def _start_of_next_month(month_start: datetime, tz: pytz.tzinfo.BaseTzInfo) -> datetime:
	if month_start.month == 12:
		return tz.localize(datetime(month_start.year + 1, 1, 1))
	return tz.localize(datetime(month_start.year, month_start.month + 1, 1))


def get_period_range(
	period: PeriodType,
	reference: datetime,
	tz: pytz.tzinfo.BaseTzInfo
) -> Tuple[datetime, datetime]:
	"""
	Compute the half-open window [start, end) for a listing period.

	Args:
		period: PeriodType (or its string value: "day", "week", "month")
		reference: any instant inside the wanted period
		tz: fixed-offset timezone used for the calendar math

	Returns:
		tuple: (start, end), both aware datetimes in `tz`

	Rules:
		- Day: [midnight, midnight + 24h)
		- Week: [Monday 00:00, Monday 00:00 + 7d)
		- Month: [first-of-month 00:00, first-of-next-month 00:00)

	Raises:
		ValueError: if period is not a known PeriodType
	"""
	period = PeriodType(period)

	if period == PeriodType.DAY:
		start = start_of_day(reference, tz)
		return start, start + timedelta(days=1)

	if period == PeriodType.WEEK:
		start = start_of_week(reference, tz)
		return start, start + timedelta(days=7)

	start = start_of_month(reference, tz)
	return start, _start_of_next_month(start, tz)


def parse_period(value: Optional[str]) -> Optional[PeriodType]:
	"""
	Parse a user supplied period name.

	Returns None for empty values (no preset). Raises ValueError otherwise
	when the value is not day/week/month.
	"""
	if value is None:
		return None

	value = str(value).strip().lower()
	if not value:
		return None

	return PeriodType(value)
