"""Input validation and normalization for monitoring tool arguments."""
import re
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from .errors import ValidationError

DEFAULT_SERVICES_LIMIT = 200
MAX_SERVICES_LIMIT = 1000
DEFAULT_LOG_LIMIT = 200
MAX_LOG_LIMIT = 1000
MAX_LOG_WINDOW = timedelta(days=7)

VALID_SERVICE_STATES = (
    "active",
    "inactive",
    "failed",
    "activating",
    "deactivating",
    "reloading",
)

PRIORITY_ALIASES = {
    "emerg": 0,
    "panic": 0,
    "alert": 1,
    "crit": 2,
    "critical": 2,
    "err": 3,
    "error": 3,
    "warning": 4,
    "warn": 4,
    "notice": 5,
    "info": 6,
    "informational": 6,
    "debug": 7,
}

VALID_UNIT_NAME = re.compile(r"^[A-Za-z0-9.\-_@:]+$")
RFC3339_UTC = re.compile(
    r"^([0-9]{4})-([0-9]{2})-([0-9]{2})T([0-9]{2}):([0-9]{2}):([0-9]{2})(?:\.([0-9]{1,9}))?Z$"
)
CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")


def normalize_limit(limit: Optional[int], default: int, maximum: int) -> int:
    """Apply the default and enforce the ``[1, maximum]`` range."""
    if limit is None:
        return default
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= maximum:
        raise ValidationError(
            f"limit must be between 1 and {maximum}",
            code="invalid_limit",
            details={"limit": limit},
        )
    return limit


def normalize_service_state(state: Optional[str]) -> Optional[str]:
    if state is None:
        return None
    normalized = state.strip().lower()
    if normalized not in VALID_SERVICE_STATES:
        raise ValidationError(
            "state must be one of: " + ", ".join(VALID_SERVICE_STATES),
            code="invalid_state",
            details={"state": state},
        )
    return normalized


def normalize_name_contains(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def normalize_priority(priority: Optional[Union[int, str]]) -> Optional[int]:
    """Map 0-7, a digit string or a syslog alias to a numeric threshold."""
    if priority is None:
        return None
    if isinstance(priority, int) and not isinstance(priority, bool):
        if 0 <= priority <= 7:
            return priority
    elif isinstance(priority, str):
        normalized = priority.strip().lower()
        if len(normalized) == 1 and normalized in "01234567":
            return int(normalized)
        if normalized in PRIORITY_ALIASES:
            return PRIORITY_ALIASES[normalized]
    raise ValidationError(
        "priority must be one of 0-7 or: emerg, alert, crit, err, warning, notice, info, debug",
        code="invalid_priority",
        details={"priority": priority},
    )


def normalize_unit(unit: Optional[str]) -> Optional[str]:
    if unit is None:
        return None
    normalized = unit.strip()
    if not VALID_UNIT_NAME.match(normalized):
        raise ValidationError(
            "unit must contain only alphanumeric characters, dashes, underscores, dots, @, and :",
            code="invalid_unit",
            details={"unit": unit},
        )
    return normalized


def normalize_order(order: Optional[str]) -> str:
    if order is None or not order.strip():
        return "desc"
    normalized = order.strip().lower()
    if normalized not in ("asc", "desc"):
        raise ValidationError(
            "order must be one of: asc, desc",
            code="invalid_order",
            details={"order": order},
        )
    return normalized


def parse_utc(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC3339 timestamp that must carry the ``Z`` suffix.

    Returns None for a missing or blank value so the caller can report
    ``missing_time_range`` separately.
    """
    if value is None or not value.strip():
        return None
    match = RFC3339_UTC.match(value.strip())
    if not match:
        raise ValidationError(
            "timestamps must be RFC3339 UTC format ending with Z",
            code="invalid_utc_time",
            details={"value": value},
        )
    year, month, day, hour, minute, second, fraction = match.groups()
    microsecond = int((fraction or "0")[:6].ljust(6, "0"))
    try:
        return datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second),
            microsecond, tzinfo=timezone.utc,
        )
    except ValueError:
        raise ValidationError(
            "timestamps must be RFC3339 UTC format ending with Z",
            code="invalid_utc_time",
            details={"value": value},
        )


def validate_time_window(
    start_utc: Optional[str], end_utc: Optional[str], allow_large_window: bool = False
) -> tuple[datetime, datetime]:
    start = parse_utc(start_utc)
    end = parse_utc(end_utc)
    if start is None or end is None:
        raise ValidationError(
            "start_utc and end_utc are required", code="missing_time_range"
        )
    if start >= end:
        raise ValidationError(
            "start_utc must be strictly less than end_utc",
            code="invalid_time_range",
            details={"start_utc": start_utc, "end_utc": end_utc},
        )
    if not allow_large_window and end - start > MAX_LOG_WINDOW:
        raise ValidationError(
            "time window must not exceed 7 days unless allow_large_window is true",
            code="window_too_large",
            details={"max_days": MAX_LOG_WINDOW.days},
        )
    return start, end


def build_grep_matcher(grep: Optional[str]) -> Optional[Callable[[str], bool]]:
    """``/pattern/`` is a regular expression, anything else a plain substring."""
    if grep is None or not grep.strip():
        return None
    needle = grep.strip()
    if len(needle) >= 2 and needle.startswith("/") and needle.endswith("/"):
        try:
            pattern = re.compile(needle[1:-1])
        except re.error:
            raise ValidationError(
                "grep regex pattern is invalid",
                code="invalid_grep",
                details={"grep": grep},
            )
        return lambda message: pattern.search(message) is not None
    return lambda message: needle in message


def sanitize_log_message(message: Optional[str]) -> Optional[str]:
    """Replace control characters (except newline, CR, tab) and trim."""
    if message is None:
        return None
    sanitized = CONTROL_CHARS.sub(" ", message).strip()
    return sanitized or None


def format_utc(value: datetime) -> str:
    """RFC3339 UTC with millisecond precision, e.g. ``2026-02-27T00:00:00.000Z``."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
