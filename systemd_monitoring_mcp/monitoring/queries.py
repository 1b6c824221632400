"""Service and journal queries behind the monitoring tools and resources."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from ..systemd.adapters import LogReader, UnitLister
from ..systemd.models import LogEntry, LogWindow
from ..utils.validation import (
    DEFAULT_LOG_LIMIT,
    DEFAULT_SERVICES_LIMIT,
    MAX_LOG_LIMIT,
    MAX_SERVICES_LIMIT,
    build_grep_matcher,
    format_utc,
    normalize_limit,
    normalize_name_contains,
    normalize_order,
    normalize_priority,
    normalize_service_state,
    normalize_unit,
    sanitize_log_message,
    validate_time_window,
)

logger = logging.getLogger(__name__)

RECENT_LOGS_WINDOW = timedelta(hours=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ServiceQueries:
    def __init__(
        self,
        unit_lister: UnitLister,
        log_reader: LogReader,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.unit_lister = unit_lister
        self.log_reader = log_reader
        self.clock = clock

    async def list_services(
        self,
        state: Optional[str] = None,
        name_contains: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """List service units, optionally filtered by state and name."""
        state = normalize_service_state(state)
        name_contains = normalize_name_contains(name_contains)
        limit = normalize_limit(limit, DEFAULT_SERVICES_LIMIT, MAX_SERVICES_LIMIT)

        records = await self.unit_lister.list_units()

        if state is not None:
            records = [r for r in records if r.active_state.lower() == state]
        if name_contains is not None:
            records = [r for r in records if name_contains in r.unit]

        if state == "failed":
            records = sorted(records, key=lambda r: (r.active_state.lower() != "failed", r.unit))
        else:
            records = sorted(records, key=lambda r: r.unit)

        total = len(records)
        services = records[:limit]
        logger.debug(f"list_services matched {total} units, returning {len(services)}")

        return {
            "services": [r.model_dump() for r in services],
            "total": total,
            "returned": len(services),
            "truncated": total > len(services),
            "generated_at_utc": format_utc(self.clock()),
        }

    async def list_logs(
        self,
        start_utc: Optional[str] = None,
        end_utc: Optional[str] = None,
        priority: Optional[Union[int, str]] = None,
        unit: Optional[str] = None,
        grep: Optional[str] = None,
        exclude_units: Optional[List[str]] = None,
        order: Optional[str] = None,
        allow_large_window: Optional[bool] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Read journal entries inside a bounded UTC window."""
        start, end = validate_time_window(start_utc, end_utc, bool(allow_large_window))
        threshold = normalize_priority(priority)
        unit = normalize_unit(unit)
        excluded = {normalize_unit(u).lower() for u in exclude_units or []}
        order = normalize_order(order)
        matcher = build_grep_matcher(grep)
        limit = normalize_limit(limit, DEFAULT_LOG_LIMIT, MAX_LOG_LIMIT)

        window = LogWindow(start=start, end=end)
        rows = await self.log_reader.read(window, threshold, unit)

        matched: List[LogEntry] = []
        for entry in rows:
            if not window.contains(entry.timestamp_utc):
                continue
            if threshold is not None and (entry.priority is None or entry.priority > threshold):
                continue
            if unit is not None and entry.unit != unit:
                continue
            if excluded and entry.unit is not None and entry.unit.lower() in excluded:
                continue
            message = sanitize_log_message(entry.message)
            if matcher is not None and (message is None or not matcher(message)):
                continue
            matched.append(entry.model_copy(update={"message": message}))

        matched.sort(key=lambda e: e.timestamp_utc, reverse=order == "desc")
        entries = matched[:limit]
        scan_limit = self.log_reader.scan_limit
        scan_capped = scan_limit is not None and len(rows) >= scan_limit
        if scan_capped:
            logger.warning(
                f"list_logs reached the journal scan limit of {scan_limit} rows; "
                "older entries in the window were not scanned"
            )
        logger.debug(
            f"list_logs scanned {len(rows)} rows, matched {len(matched)}, returning {len(entries)}"
        )

        return {
            "entries": [e.model_dump() for e in entries],
            "total_scanned": len(rows),
            "returned": len(entries),
            "truncated": scan_capped or len(matched) > len(entries),
            "generated_at_utc": format_utc(self.clock()),
            "window": {"start_utc": format_utc(start), "end_utc": format_utc(end)},
        }

    async def services_snapshot(self) -> Dict[str, Any]:
        return await self.list_services()

    async def failed_services(self) -> Dict[str, Any]:
        return await self.list_services(state="failed")

    async def recent_logs(self) -> Dict[str, Any]:
        """Entries from the last hour, newest first."""
        end = self.clock()
        start = end - RECENT_LOGS_WINDOW
        return await self.list_logs(start_utc=format_utc(start), end_utc=format_utc(end))
