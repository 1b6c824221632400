"""Service unit and journal entry models."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_serializer

from ..utils.validation import format_utc


class ServiceRecord(BaseModel):
    unit: str
    description: str = ""
    load_state: str
    active_state: str
    sub_state: str
    unit_file_state: Optional[str] = None
    since_utc: Optional[str] = None
    main_pid: Optional[int] = None
    exec_main_status: Optional[int] = None
    result: Optional[str] = None


class LogEntry(BaseModel):
    timestamp_utc: datetime
    unit: Optional[str] = None
    priority: Optional[int] = None
    hostname: Optional[str] = None
    pid: Optional[int] = None
    message: Optional[str] = None
    cursor: Optional[str] = None

    @field_serializer("timestamp_utc")
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_utc(value)


@dataclass(frozen=True)
class LogWindow:
    """Closed query window; both ends are aware UTC datetimes."""

    start: datetime
    end: datetime

    def contains(self, timestamp: datetime) -> bool:
        return self.start <= timestamp <= self.end
