"""
Warning Cache

Bounded, TTL based memo of conflict warnings for schedule listings.

The cache lives in process memory and is shared by every request served by
the worker, so it is guarded by a reader/writer lock: lookups run
concurrently, while store, eviction and invalidation are exclusive.

Values are deep-copied on the way in and on the way out; callers can never
mutate cached state through a list they passed to store() or got from get().
"""

import copy
import json
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple, Union
import pytz

from .conflicts import Conflict

DEFAULT_TTL_SECONDS = 30
DEFAULT_MAX_ENTRIES = 128


def _utc_now() -> datetime:
	return datetime.now(pytz.UTC)


class ReadWriteLock:
	"""
	Many readers or one writer.

	Writers wait for active readers to drain; new readers wait while a writer
	is active or waiting, so a steady stream of reads cannot starve writes.
	"""

	def __init__(self):
		self._cond = threading.Condition(threading.Lock())
		self._readers = 0
		self._writer = False
		self._writers_waiting = 0

	def acquire_read(self) -> None:
		with self._cond:
			while self._writer or self._writers_waiting:
				self._cond.wait()
			self._readers += 1

	def release_read(self) -> None:
		with self._cond:
			self._readers -= 1
			if self._readers == 0:
				self._cond.notify_all()

	def acquire_write(self) -> None:
		with self._cond:
			self._writers_waiting += 1
			try:
				while self._writer or self._readers:
					self._cond.wait()
			finally:
				self._writers_waiting -= 1
			self._writer = True

	def release_write(self) -> None:
		with self._cond:
			self._writer = False
			self._cond.notify_all()


class _CacheEntry:
	__slots__ = ("warnings", "expires_at")

	def __init__(self, warnings: List[Conflict], expires_at: datetime):
		self.warnings = warnings
		self.expires_at = expires_at


class WarningCache:
	"""
	In-memory cache of conflict warnings keyed by query shape.

	Args:
		ttl: lifetime of each entry (timedelta or seconds)
		max_entries: capacity; storing beyond it evicts one arbitrary entry
		clock: callable returning the current aware datetime (injectable for tests)
	"""

	def __init__(
		self,
		ttl: Union[timedelta, int, float] = DEFAULT_TTL_SECONDS,
		max_entries: int = DEFAULT_MAX_ENTRIES,
		clock: Optional[Callable[[], datetime]] = None
	):
		if not isinstance(ttl, timedelta):
			ttl = timedelta(seconds=ttl)
		if ttl <= timedelta(0):
			raise ValueError("WarningCache ttl must be positive")
		if max_entries <= 0:
			raise ValueError("WarningCache max_entries must be positive")

		self.ttl = ttl
		self.max_entries = max_entries
		self._clock = clock or _utc_now
		self._lock = ReadWriteLock()
		self._entries: Dict[str, _CacheEntry] = {}

	def __len__(self) -> int:
		self._lock.acquire_read()
		try:
			return len(self._entries)
		finally:
			self._lock.release_read()

	def get(self, key: str) -> Tuple[Optional[List[Conflict]], bool]:
		"""
		Look up warnings for `key`.

		Returns:
			tuple: (warnings copy, True) on a hit, (None, False) on a miss.
			Expired entries are evicted here and reported as misses.
		"""
		self._lock.acquire_read()
		try:
			entry = self._entries.get(key)
		finally:
			self._lock.release_read()

		if entry is None:
			return None, False

		if self._clock() > entry.expires_at:
			self._lock.acquire_write()
			try:
				# Another writer may have refreshed the key in between
				current = self._entries.get(key)
				if current is entry:
					del self._entries[key]
			finally:
				self._lock.release_write()
			return None, False

		return copy.deepcopy(entry.warnings), True

	def store(self, key: str, warnings: Optional[List[Conflict]]) -> None:
		"""Store a copy of `warnings` under `key`, expiring after the TTL."""
		cloned = copy.deepcopy(list(warnings or []))
		expires_at = self._clock() + self.ttl

		self._lock.acquire_write()
		try:
			self._purge_expired_locked()
			if key not in self._entries and len(self._entries) >= self.max_entries:
				self._evict_one_locked()
			self._entries[key] = _CacheEntry(cloned, expires_at)
		finally:
			self._lock.release_write()

	def invalidate(self) -> None:
		"""Drop every entry. Call after any mutation that can change conflicts."""
		self._lock.acquire_write()
		try:
			self._entries = {}
		finally:
			self._lock.release_write()

	def purge_expired(self) -> int:
		"""Evict expired entries now; returns how many were removed."""
		self._lock.acquire_write()
		try:
			return self._purge_expired_locked()
		finally:
			self._lock.release_write()

	def _purge_expired_locked(self) -> int:
		now = self._clock()
		expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
		for key in expired:
			del self._entries[key]
		return len(expired)

	def _evict_one_locked(self) -> None:
		for key in self._entries:
			del self._entries[key]
			return


def _format_instant(value: Optional[datetime]) -> str:
	if value is None:
		return ""
	if value.tzinfo is None:
		return value.isoformat()
	return value.astimezone(pytz.UTC).isoformat()


def build_cache_key(params, schedule_filter) -> str:
	"""
	Derive the cache key for a listing from its full query shape.

	Args:
		params: ListSchedulesParams as received from the caller
		schedule_filter: ScheduleFilter resolved from params (window bounds)

	Returns:
		str: JSON array of every component, so values containing separators
		can never make two distinct queries collide
	"""
	period = params.period.value if params.period is not None else ""
	parts = [
		params.principal.user_id or "",
		bool(params.principal.is_admin),
		sorted(params.participants or []),
		period,
		_format_instant(params.period_reference),
		list(schedule_filter.participants or []),
		_format_instant(schedule_filter.starts_after),
		_format_instant(schedule_filter.ends_before),
	]
	return json.dumps(parts, separators=(",", ":"))
