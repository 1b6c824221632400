"""Collaborator interfaces for reading host service and journal state."""
from abc import ABC, abstractmethod
from typing import List, Optional

from .models import LogEntry, LogWindow, ServiceRecord


class UnitLister(ABC):
    """Enumerates ``*.service`` units of the host service manager."""

    @abstractmethod
    async def list_units(self) -> List[ServiceRecord]:
        """Return every service unit.

        Raises:
            AdapterError: when the service manager cannot be queried.
        """


class LogReader(ABC):
    """Reads structured records from the system journal.

    ``scan_limit`` is the most rows one read returns, or None when unbounded.
    A read that returns that many rows may have skipped entries in the window.
    """

    scan_limit: Optional[int] = None

    @abstractmethod
    async def read(
        self,
        window: LogWindow,
        priority_threshold: Optional[int] = None,
        unit_filter: Optional[str] = None,
    ) -> List[LogEntry]:
        """Return entries inside ``window``, optionally pre-filtered.

        Raises:
            AdapterError: when the journal cannot be read.
        """
