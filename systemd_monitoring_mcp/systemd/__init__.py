"""Host service manager and journal access."""
from .adapters import LogReader, UnitLister
from .journal import JournalctlLogReader
from .models import LogEntry, LogWindow, ServiceRecord
from .systemctl import SystemctlUnitLister

__all__ = [
    "LogReader",
    "UnitLister",
    "JournalctlLogReader",
    "SystemctlUnitLister",
    "LogEntry",
    "LogWindow",
    "ServiceRecord",
]
