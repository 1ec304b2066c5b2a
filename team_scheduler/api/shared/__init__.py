"""
Shared utilities for Team Scheduler API.

Request parsing and validation helpers used by every endpoint module.
"""

from .validators import (
	parse_string_list,
	validate_datetime_string,
	validate_docname,
	validate_optional_datetime,
	validate_period,
	validate_weekdays,
)

__all__ = [
	"parse_string_list",
	"validate_datetime_string",
	"validate_docname",
	"validate_optional_datetime",
	"validate_period",
	"validate_weekdays",
]
