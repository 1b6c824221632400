"""Log reader backed by ``journalctl --output=json``."""
import json
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from .adapters import LogReader
from .models import LogEntry, LogWindow
from .process import run_command

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def decode_field(value: Any) -> Optional[str]:
    """Journal fields are strings, or byte arrays when not valid UTF-8."""
    if value is None:
        return None
    if isinstance(value, list):
        try:
            return bytes(value).decode("utf-8", errors="replace")
        except (TypeError, ValueError):
            return None
    return str(value)


def parse_journal_record(record: Dict[str, Any]) -> Optional[LogEntry]:
    """Map one journalctl JSON object to a LogEntry, or None if unusable."""
    try:
        timestamp = EPOCH + timedelta(microseconds=int(record["__REALTIME_TIMESTAMP"]))
    except (KeyError, TypeError, ValueError):
        return None

    priority = decode_field(record.get("PRIORITY"))
    pid = decode_field(record.get("_PID"))
    return LogEntry(
        timestamp_utc=timestamp,
        unit=decode_field(record.get("_SYSTEMD_UNIT")),
        priority=int(priority) if priority and priority.isdigit() else None,
        hostname=decode_field(record.get("_HOSTNAME")),
        pid=int(pid) if pid and pid.isdigit() else None,
        message=decode_field(record.get("MESSAGE")),
        cursor=decode_field(record.get("__CURSOR")),
    )


def parse_journal_output(output: str) -> List[LogEntry]:
    entries = []
    for line in output.splitlines():
        if not line.strip():
            continue
        try:
            record = json.loads(line)
        except ValueError:
            logger.debug("Skipping malformed journalctl line")
            continue
        if not isinstance(record, dict):
            continue
        entry = parse_journal_record(record)
        if entry is not None:
            entries.append(entry)
    return entries


class JournalctlLogReader(LogReader):
    """Reads the journal through ``journalctl``.

    At most ``max_entries`` records (the newest in the window) are scanned per
    call so a wide window cannot exhaust memory.
    """

    def __init__(self, timeout: float = 10.0, max_entries: int = 10000):
        self.timeout = timeout
        self.max_entries = max_entries

    @property
    def scan_limit(self) -> int:
        return self.max_entries

    def build_command(
        self,
        window: LogWindow,
        priority_threshold: Optional[int] = None,
        unit_filter: Optional[str] = None,
    ) -> List[str]:
        command = [
            "journalctl",
            "--output=json",
            "--no-pager",
            "--utc",
            f"--since=@{math.floor(window.start.timestamp())}",
            f"--until=@{math.ceil(window.end.timestamp())}",
            f"--lines={self.max_entries}",
        ]
        if priority_threshold is not None:
            command.append(f"--priority={priority_threshold}")
        if unit_filter is not None:
            command.append(f"_SYSTEMD_UNIT={unit_filter}")
        return command

    async def read(
        self,
        window: LogWindow,
        priority_threshold: Optional[int] = None,
        unit_filter: Optional[str] = None,
    ) -> List[LogEntry]:
        output = await run_command(
            self.build_command(window, priority_threshold, unit_filter), self.timeout
        )
        return parse_journal_output(output)
