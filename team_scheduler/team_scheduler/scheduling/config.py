"""
Scheduler Settings

Reads team_scheduler settings from the Frappe site config
(site_config.json / common_site_config.json):

	{
		"team_scheduler_utc_offset_minutes": 540,
		"team_scheduler_warning_cache_ttl_seconds": 30,
		"team_scheduler_warning_cache_max_entries": 128,
		"team_scheduler_max_room_capacity": 0
	}

Every key is optional. Invalid values are collected and reported together.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Tuple

from .errors import ConfigurationError
from .time_window import DEFAULT_UTC_OFFSET_MINUTES, get_fixed_timezone
from .warning_cache import DEFAULT_MAX_ENTRIES, DEFAULT_TTL_SECONDS

KEY_UTC_OFFSET = "team_scheduler_utc_offset_minutes"
KEY_CACHE_TTL = "team_scheduler_warning_cache_ttl_seconds"
KEY_CACHE_MAX_ENTRIES = "team_scheduler_warning_cache_max_entries"
KEY_MAX_ROOM_CAPACITY = "team_scheduler_max_room_capacity"


@dataclass(frozen=True)
class SchedulerSettings:
	utc_offset_minutes: int = DEFAULT_UTC_OFFSET_MINUTES
	warning_cache_ttl_seconds: int = DEFAULT_TTL_SECONDS
	warning_cache_max_entries: int = DEFAULT_MAX_ENTRIES
	# 0 = no limit
	max_room_capacity: int = 0

	@property
	def timezone(self):
		return get_fixed_timezone(self.utc_offset_minutes)


def _parse_int(value: Any) -> Optional[int]:
	if isinstance(value, bool):
		return None
	if isinstance(value, int):
		return value
	if isinstance(value, str) and value.strip():
		try:
			return int(value.strip())
		except ValueError:
			return None
	return None


# (key, attribute, validity check)
_FIELDS: Tuple[Tuple[str, str, Callable[[int], bool]], ...] = (
	(KEY_UTC_OFFSET, "utc_offset_minutes", lambda v: abs(v) <= 14 * 60),
	(KEY_CACHE_TTL, "warning_cache_ttl_seconds", lambda v: v > 0),
	(KEY_CACHE_MAX_ENTRIES, "warning_cache_max_entries", lambda v: v > 0),
	(KEY_MAX_ROOM_CAPACITY, "max_room_capacity", lambda v: v >= 0),
)


def load_settings(conf: Optional[Mapping[str, Any]] = None) -> SchedulerSettings:
	"""
	Build SchedulerSettings from a site config mapping.

	Args:
		conf: mapping of config keys; defaults to frappe.conf of the current site

	Returns:
		SchedulerSettings with defaults applied for absent keys

	Raises:
		ConfigurationError: naming every key with an invalid value
	"""
	if conf is None:
		import frappe
		conf = frappe.conf or {}

	values = {}
	invalid: List[str] = []

	for key, attribute, is_valid in _FIELDS:
		raw = conf.get(key)
		if raw is None or raw == "":
			continue

		parsed = _parse_int(raw)
		if parsed is None or not is_valid(parsed):
			invalid.append(key)
			continue

		values[attribute] = parsed

	if invalid:
		raise ConfigurationError(f"Invalid team_scheduler settings: {', '.join(invalid)}")

	return SchedulerSettings(**values)
