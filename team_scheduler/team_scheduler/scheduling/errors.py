"""
Scheduling Errors

Typed exceptions raised by the scheduling core and the schedule service.

All of them derive from Frappe exception classes so that, when they escape a
whitelisted endpoint, Frappe renders them with the matching HTTP status
(417 for validation, 404 for missing documents, 403 for permissions).
"""

import frappe
from typing import Dict, Optional


class SchedulingError(frappe.ValidationError):
	"""Base class for every error raised by the scheduling core."""
	pass


class InvalidDurationError(SchedulingError):
	"""Base end is not strictly after base start."""
	pass


class UnboundedWindowError(SchedulingError):
	"""Neither the rule nor the caller supplied an upper bound for expansion."""
	pass


class InvalidFrequencyError(SchedulingError):
	"""The recurrence frequency is missing or not supported."""
	pass


class InvalidRecurrenceRuleError(SchedulingError):
	"""The recurrence rule itself is malformed (e.g. ends_on < starts_on)."""
	pass


class ConfigurationError(SchedulingError):
	"""Site configuration for team_scheduler holds invalid values."""
	pass


class ScheduleValidationError(SchedulingError):
	"""
	Field level validation failure for a schedule write.

	Attributes:
		field_errors: {field_name: message}
	"""

	def __init__(self, field_errors: Optional[Dict[str, str]] = None):
		self.field_errors: Dict[str, str] = dict(field_errors or {})
		super().__init__(self._build_message())

	def add(self, field: str, message: str) -> None:
		self.field_errors[field] = message
		self.args = (self._build_message(),)

	def has_errors(self) -> bool:
		return bool(self.field_errors)

	def _build_message(self) -> str:
		if not self.field_errors:
			return "validation failed"
		details = "; ".join(f"{field}: {msg}" for field, msg in sorted(self.field_errors.items()))
		return f"validation failed ({details})"


class ScheduleNotFoundError(frappe.DoesNotExistError):
	"""The requested schedule does not exist."""
	pass


class ScheduleAccessDeniedError(frappe.PermissionError):
	"""The acting principal may not read or modify the schedule."""
	pass


def error_kind(exc: Optional[BaseException]) -> str:
	"""
	Map an exception to a stable label for log records.

	Args:
		exc: exception raised by the core or the service (may be None)

	Returns:
		str: label such as "validation", "not_found" or "internal"
	"""
	if exc is None:
		return ""

	# Order matters: specific subclasses before their parents
	labels = (
		(InvalidDurationError, "invalid_duration"),
		(UnboundedWindowError, "unbounded_window"),
		(InvalidFrequencyError, "invalid_frequency"),
		(InvalidRecurrenceRuleError, "invalid_recurrence"),
		(ConfigurationError, "configuration"),
		(ScheduleValidationError, "validation"),
		(ScheduleNotFoundError, "not_found"),
		(ScheduleAccessDeniedError, "unauthorized"),
		(SchedulingError, "scheduling"),
	)
	for exc_class, label in labels:
		if isinstance(exc, exc_class):
			return label
	return "internal"
