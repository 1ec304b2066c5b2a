"""
Schedule Service Factory

Wires ScheduleService to the Frappe repositories using the site settings.
This is the only place where the default timezone and cache sizing are
resolved.

Warning caches are kept per site for the lifetime of the worker process.
Each worker holds its own; the TTL bounds how long a worker can serve
warnings computed before a write handled by another worker.
"""

import threading
from typing import Dict

import frappe

from .config import SchedulerSettings, load_settings
from .frappe_repository import (
	FrappeRecurrenceRepository,
	FrappeRoomCatalog,
	FrappeScheduleRepository,
	FrappeUserDirectory,
)
from .service import ScheduleService
from .warning_cache import WarningCache

_caches: Dict[str, WarningCache] = {}
_caches_lock = threading.Lock()


def get_settings() -> SchedulerSettings:
	return load_settings(frappe.conf)


def get_warning_cache(settings: SchedulerSettings = None) -> WarningCache:
	"""Return the warning cache of the current site, creating it on first use."""
	site = getattr(frappe.local, "site", None) or ""

	with _caches_lock:
		cache = _caches.get(site)
		if cache is None:
			settings = settings or get_settings()
			cache = WarningCache(
				ttl=settings.warning_cache_ttl_seconds,
				max_entries=settings.warning_cache_max_entries,
			)
			_caches[site] = cache
		return cache


def invalidate_warning_cache(doc=None, method=None) -> None:
	"""
	Clear the current site's warning cache.

	Signature matches Frappe doc_events handlers (doc, method).
	"""
	site = getattr(frappe.local, "site", None) or ""

	with _caches_lock:
		cache = _caches.get(site)

	if cache is not None:
		cache.invalidate()


def get_schedule_service() -> ScheduleService:
	"""Build a ScheduleService bound to the current site."""
	settings = get_settings()
	tz = settings.timezone

	return ScheduleService(
		schedules=FrappeScheduleRepository(tz),
		tz=tz,
		recurrences=FrappeRecurrenceRepository(tz),
		users=FrappeUserDirectory(),
		rooms=FrappeRoomCatalog(),
		warning_cache=get_warning_cache(settings),
		logger=frappe.logger("team_scheduler"),
	)
