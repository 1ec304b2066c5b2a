"""
Request Validators

Parse and validate raw request arguments before they reach the schedule
service. Every failure raises frappe.ValidationError with a translated
message naming the offending field.
"""

import json
import re
import frappe
from frappe import _
from datetime import datetime
from typing import Any, List, Optional

from team_scheduler.team_scheduler.scheduling.recurrence import Weekday, weekday_mask
from team_scheduler.team_scheduler.scheduling.errors import InvalidRecurrenceRuleError
from team_scheduler.team_scheduler.scheduling.time_window import PeriodType, parse_period

# YYYY-MM-DD HH:MM[:SS[.fff|.ffffff]] with optional "T" separator and Z or +HH:MM offset
_DATETIME_RE = re.compile(
	r"^\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}(:\d{2}(\.(\d{3}|\d{6}))?)?(Z|[+-]\d{2}:\d{2})?$"
)


def validate_datetime_string(datetime_str: str, field_name: str = "datetime") -> datetime:
	"""
	Validate and parse an ISO 8601 datetime.

	Accepts "2024-03-04 09:00:00", "2024-03-04T09:00+09:00" or a "Z" suffix.
	Values without offset are wall-clock times in the scheduler timezone.

	Args:
		datetime_str: Datetime string to validate
		field_name: Name of field for error messages

	Returns:
		datetime: naive or aware, as given

	Raises:
		frappe.ValidationError: If datetime format is invalid
	"""
	if not datetime_str:
		frappe.throw(_("{0} is required").format(field_name), frappe.ValidationError)

	datetime_str = str(datetime_str).strip()

	if not _DATETIME_RE.match(datetime_str):
		frappe.throw(
			_("Invalid {0} format. Use YYYY-MM-DD HH:MM:SS with an optional UTC offset").format(field_name),
			frappe.ValidationError,
		)

	if datetime_str.endswith("Z"):
		datetime_str = datetime_str[:-1] + "+00:00"

	try:
		return datetime.fromisoformat(datetime_str)
	except ValueError:
		frappe.throw(_("Invalid {0}").format(field_name), frappe.ValidationError)


def validate_optional_datetime(datetime_str: Optional[str], field_name: str) -> Optional[datetime]:
	if not datetime_str:
		return None
	return validate_datetime_string(datetime_str, field_name)


def validate_docname(name: str, field_name: str = "name") -> str:
	"""
	Validate a document name (ID).

	Ensures the name is not too long and doesn't contain injection patterns.

	Raises:
		frappe.ValidationError: If name is invalid
	"""
	if not name:
		frappe.throw(_("{0} is required").format(field_name), frappe.ValidationError)

	name = str(name).strip()

	if len(name) > 140:
		frappe.throw(_("{0} is too long").format(field_name), frappe.ValidationError)

	# Block obvious injection attempts
	dangerous_patterns = [
		r"<script",
		r"javascript:",
		r"SELECT\s+",
		r"DROP\s+",
		r"UNION\s+",
		r"--",
		r";",
	]

	for pattern in dangerous_patterns:
		if re.search(pattern, name, re.IGNORECASE):
			frappe.throw(_("Invalid {0}").format(field_name), frappe.ValidationError)

	return name


def validate_period(period: Optional[str]) -> Optional[PeriodType]:
	"""Parse day/week/month; empty means no period preset."""
	try:
		return parse_period(period)
	except ValueError:
		frappe.throw(_("Invalid period. Use day, week or month"), frappe.ValidationError)


def parse_string_list(value: Any, field_name: str) -> List[str]:
	"""
	Accept a JSON array, a comma separated string or a list.

	Returns:
		list[str]: stripped, non-empty values in the given order
	"""
	if value is None or value == "":
		return []

	if isinstance(value, str):
		text = value.strip()
		if text.startswith("["):
			try:
				value = json.loads(text)
			except ValueError:
				frappe.throw(_("Invalid {0}: malformed JSON list").format(field_name), frappe.ValidationError)
		else:
			value = text.split(",")

	if not isinstance(value, (list, tuple)):
		frappe.throw(_("Invalid {0}: expected a list").format(field_name), frappe.ValidationError)

	return [str(item).strip() for item in value if str(item).strip()]


def validate_weekdays(value: Any) -> Weekday:
	"""Parse weekday names ("Monday", "mon") into a Weekday mask."""
	try:
		return weekday_mask(parse_string_list(value, "weekdays"))
	except InvalidRecurrenceRuleError as e:
		frappe.throw(_("Invalid weekdays: {0}").format(str(e)), frappe.ValidationError)
