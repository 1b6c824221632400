"""Tool argument models and the JSON schemas published by tools/list."""
from typing import Any, ClassVar, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, StrictBool, StrictInt, StrictStr

from ..utils.validation import (
    DEFAULT_LOG_LIMIT,
    DEFAULT_SERVICES_LIMIT,
    MAX_LOG_LIMIT,
    MAX_SERVICES_LIMIT,
    VALID_SERVICE_STATES,
)


class ToolArguments(BaseModel):
    """Base for tool arguments; unknown keys are rejected.

    ``field_error_codes`` maps a field to the stable error code reported when
    its value has the wrong type.
    """

    model_config = ConfigDict(extra="forbid")

    field_error_codes: ClassVar[Dict[str, str]] = {}


class ListServicesArguments(ToolArguments):
    state: Optional[StrictStr] = None
    name_contains: Optional[StrictStr] = None
    limit: Optional[StrictInt] = None

    field_error_codes: ClassVar[Dict[str, str]] = {
        "state": "invalid_state",
        "limit": "invalid_limit",
    }


class ListLogsArguments(ToolArguments):
    priority: Optional[Union[StrictInt, StrictStr]] = None
    unit: Optional[StrictStr] = None
    start_utc: Optional[StrictStr] = None
    end_utc: Optional[StrictStr] = None
    grep: Optional[StrictStr] = None
    exclude_units: Optional[List[StrictStr]] = None
    order: Optional[StrictStr] = None
    allow_large_window: Optional[StrictBool] = None
    limit: Optional[StrictInt] = None

    field_error_codes: ClassVar[Dict[str, str]] = {
        "priority": "invalid_priority",
        "unit": "invalid_unit",
        "exclude_units": "invalid_unit",
        "start_utc": "invalid_utc_time",
        "end_utc": "invalid_utc_time",
        "order": "invalid_order",
        "grep": "invalid_grep",
        "limit": "invalid_limit",
    }


UNIT_PATTERN = r"^[A-Za-z0-9.\-_@:]+$"
UTC_PATTERN = r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{1,9})?Z$"
NULLABLE_STRING = {"type": ["string", "null"]}
NULLABLE_INTEGER = {"type": ["integer", "null"]}

LIST_SERVICES_INPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "state": {
            "type": "string",
            "description": "Filter by active state (case-insensitive)",
            "enum": list(VALID_SERVICE_STATES),
        },
        "name_contains": {
            "type": "string",
            "description": "Plain substring the unit name must contain",
        },
        "limit": {
            "type": "integer",
            "minimum": 1,
            "maximum": MAX_SERVICES_LIMIT,
            "default": DEFAULT_SERVICES_LIMIT,
            "description": "Maximum number of services to return",
        },
    },
    "required": [],
    "additionalProperties": False,
}

SERVICE_RECORD_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "unit": {"type": "string"},
        "description": {"type": "string"},
        "load_state": {"type": "string"},
        "active_state": {"type": "string"},
        "sub_state": {"type": "string"},
        "unit_file_state": NULLABLE_STRING,
        "since_utc": NULLABLE_STRING,
        "main_pid": NULLABLE_INTEGER,
        "exec_main_status": NULLABLE_INTEGER,
        "result": NULLABLE_STRING,
    },
    "required": ["unit", "description", "load_state", "active_state", "sub_state"],
    "additionalProperties": False,
}

LIST_SERVICES_OUTPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "services": {"type": "array", "items": SERVICE_RECORD_SCHEMA},
        "total": {"type": "integer", "minimum": 0},
        "returned": {"type": "integer", "minimum": 0},
        "truncated": {"type": "boolean"},
        "generated_at_utc": {"type": "string", "format": "date-time"},
    },
    "required": ["services", "total", "returned", "truncated", "generated_at_utc"],
    "additionalProperties": False,
}

LIST_LOGS_INPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "priority": {
            "description": "Minimum severity: 0-7 or emerg, alert, crit, err, warning, notice, info, debug",
            "oneOf": [
                {"type": "integer", "minimum": 0, "maximum": 7},
                {"type": "string"},
            ],
        },
        "unit": {
            "type": "string",
            "pattern": UNIT_PATTERN,
            "description": "Only entries logged by this unit",
        },
        "start_utc": {
            "type": "string",
            "pattern": UTC_PATTERN,
            "description": "Window start, RFC3339 UTC ending with Z",
        },
        "end_utc": {
            "type": "string",
            "pattern": UTC_PATTERN,
            "description": "Window end, RFC3339 UTC ending with Z",
        },
        "grep": {
            "type": "string",
            "description": "Substring to match in messages, or /regex/",
        },
        "exclude_units": {
            "type": "array",
            "items": {"type": "string", "pattern": UNIT_PATTERN},
            "description": "Units whose entries are dropped",
        },
        "order": {
            "type": "string",
            "enum": ["asc", "desc"],
            "default": "desc",
            "description": "Sort by timestamp",
        },
        "allow_large_window": {
            "type": "boolean",
            "default": False,
            "description": "Permit windows wider than 7 days",
        },
        "limit": {
            "type": "integer",
            "minimum": 1,
            "maximum": MAX_LOG_LIMIT,
            "default": DEFAULT_LOG_LIMIT,
            "description": "Maximum number of entries to return",
        },
    },
    "required": ["start_utc", "end_utc"],
    "additionalProperties": False,
}

LOG_ENTRY_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "timestamp_utc": {"type": "string", "format": "date-time"},
        "unit": NULLABLE_STRING,
        "priority": {"type": ["integer", "null"], "minimum": 0, "maximum": 7},
        "hostname": NULLABLE_STRING,
        "pid": NULLABLE_INTEGER,
        "message": NULLABLE_STRING,
        "cursor": NULLABLE_STRING,
    },
    "required": ["timestamp_utc"],
    "additionalProperties": False,
}

LIST_LOGS_OUTPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "entries": {"type": "array", "items": LOG_ENTRY_SCHEMA},
        "total_scanned": {"type": "integer", "minimum": 0},
        "returned": {"type": "integer", "minimum": 0},
        "truncated": {"type": "boolean"},
        "generated_at_utc": {"type": "string", "format": "date-time"},
        "window": {
            "type": "object",
            "properties": {
                "start_utc": {"type": "string", "format": "date-time"},
                "end_utc": {"type": "string", "format": "date-time"},
            },
            "required": ["start_utc", "end_utc"],
            "additionalProperties": False,
        },
    },
    "required": ["entries", "returned", "truncated", "generated_at_utc", "window"],
    "additionalProperties": False,
}
