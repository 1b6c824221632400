"""Shared fixtures: in-memory adapters and a configured application."""
from datetime import datetime
from typing import List, Optional

import pytest

from systemd_monitoring_mcp.config import Settings
from systemd_monitoring_mcp.server import create_app
from systemd_monitoring_mcp.systemd.adapters import LogReader, UnitLister
from systemd_monitoring_mcp.systemd.models import LogEntry, LogWindow, ServiceRecord
from systemd_monitoring_mcp.utils.errors import AdapterError

TEST_TOKEN = "test-token-0123456789abcdef"


class FakeUnitLister(UnitLister):
    def __init__(self, records: Optional[List[ServiceRecord]] = None, error: bool = False):
        self.records = records or []
        self.error = error
        self.calls = 0

    async def list_units(self) -> List[ServiceRecord]:
        self.calls += 1
        if self.error:
            raise AdapterError("systemctl exploded with secret detail")
        return list(self.records)


class FakeLogReader(LogReader):
    """Returns its entries unfiltered so engine-side filtering is exercised."""

    def __init__(
        self,
        entries: Optional[List[LogEntry]] = None,
        error: bool = False,
        scan_limit: Optional[int] = None,
    ):
        self.entries = entries or []
        self.error = error
        self.scan_limit = scan_limit
        self.calls = []

    async def read(self, window: LogWindow, priority_threshold=None, unit_filter=None):
        self.calls.append((window, priority_threshold, unit_filter))
        if self.error:
            raise AdapterError("journalctl timed out")
        return list(self.entries)


def service(unit: str, active_state: str = "active", sub_state: str = "running") -> ServiceRecord:
    return ServiceRecord(
        unit=unit,
        description=f"{unit} description",
        load_state="loaded",
        active_state=active_state,
        sub_state=sub_state,
    )


def log_entry(
    timestamp: str,
    message: Optional[str] = "hello",
    unit: Optional[str] = "nginx.service",
    priority: Optional[int] = 6,
) -> LogEntry:
    return LogEntry(
        timestamp_utc=datetime.fromisoformat(timestamp.replace("Z", "+00:00")),
        unit=unit,
        priority=priority,
        hostname="host1",
        pid=42,
        message=message,
        cursor=f"cursor-{timestamp}",
    )


@pytest.fixture
def settings():
    return Settings(api_token=TEST_TOKEN)


@pytest.fixture
def unit_lister():
    return FakeUnitLister(
        [
            service("sshd.service"),
            service("nginx.service"),
            service("backup.service", active_state="failed", sub_state="failed"),
        ]
    )


@pytest.fixture
def log_reader():
    return FakeLogReader(
        [
            log_entry("2026-02-27T00:10:00Z", "nginx started", priority=6),
            log_entry("2026-02-27T00:20:00Z", "disk almost full", unit="backup.service", priority=3),
            log_entry("2026-02-27T00:30:00Z", "worker\x07crashed", priority=2),
            log_entry("2026-02-28T12:00:00Z", "outside window", priority=0),
        ]
    )


@pytest.fixture
def app(settings, unit_lister, log_reader):
    return create_app(settings, unit_lister=unit_lister, log_reader=log_reader)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {TEST_TOKEN}"}
