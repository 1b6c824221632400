"""Unit tests for service and journal queries."""
from datetime import datetime, timezone

import pytest

from systemd_monitoring_mcp.monitoring.queries import ServiceQueries
from systemd_monitoring_mcp.utils.errors import AdapterError, ValidationError

from conftest import FakeLogReader, FakeUnitLister, log_entry, service

WINDOW = {"start_utc": "2026-02-27T00:00:00Z", "end_utc": "2026-02-27T01:00:00Z"}
FIXED_NOW = datetime(2026, 2, 27, 1, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def queries(unit_lister, log_reader):
    return ServiceQueries(unit_lister, log_reader, clock=lambda: FIXED_NOW)


class TestListServices:
    """Test list_services."""

    @pytest.mark.asyncio
    async def test_all_services_sorted(self, queries):
        """Test that services are returned sorted by unit."""
        result = await queries.list_services()

        assert [s["unit"] for s in result["services"]] == [
            "backup.service",
            "nginx.service",
            "sshd.service",
        ]
        assert result["total"] == 3
        assert result["returned"] == 3
        assert result["truncated"] is False
        assert result["generated_at_utc"] == "2026-02-27T01:00:00.000Z"

    @pytest.mark.asyncio
    async def test_failed_filter(self, queries):
        """Test that state=failed returns only the failed unit."""
        result = await queries.list_services(state="failed")

        assert [s["unit"] for s in result["services"]] == ["backup.service"]
        assert result["total"] == 1
        assert result["returned"] == 1
        assert result["truncated"] is False

    @pytest.mark.asyncio
    async def test_state_filter_is_case_insensitive(self):
        """Test that active_state is compared case-insensitively."""
        lister = FakeUnitLister([service("a.service", active_state="Failed")])
        queries = ServiceQueries(lister, FakeLogReader())

        result = await queries.list_services(state="FAILED")

        assert result["total"] == 1

    @pytest.mark.asyncio
    async def test_name_contains_and_limit(self, queries):
        """Test substring filtering and truncation."""
        result = await queries.list_services(name_contains="s", limit=2)

        assert result["total"] == 3
        assert result["returned"] == 2
        assert result["truncated"] is True

        result = await queries.list_services(name_contains="ssh")
        assert [s["unit"] for s in result["services"]] == ["sshd.service"]

    @pytest.mark.asyncio
    async def test_invalid_arguments_do_not_reach_adapter(self, queries, unit_lister):
        """Test that validation runs before the unit lister is called."""
        with pytest.raises(ValidationError) as exc_info:
            await queries.list_services(limit=0)

        assert exc_info.value.code == "invalid_limit"
        assert unit_lister.calls == 0

    @pytest.mark.asyncio
    async def test_adapter_error_propagates(self):
        """Test that adapter failures are not swallowed."""
        queries = ServiceQueries(FakeUnitLister(error=True), FakeLogReader())

        with pytest.raises(AdapterError):
            await queries.list_services()

    @pytest.mark.asyncio
    async def test_tuple_from_lister(self):
        """Test that any sequence from the lister is accepted and left untouched."""
        records = (service("b.service"), service("a.service", active_state="failed"))

        class TupleUnitLister(FakeUnitLister):
            async def list_units(self):
                return records

        queries = ServiceQueries(TupleUnitLister(), FakeLogReader())

        result = await queries.list_services()
        assert [s["unit"] for s in result["services"]] == ["a.service", "b.service"]

        result = await queries.list_services(state="failed")
        assert [s["unit"] for s in result["services"]] == ["a.service"]

    @pytest.mark.asyncio
    async def test_shared_record_list_not_reordered(self):
        """Test that a list held by the lister keeps its order across calls."""
        records = [service("b.service"), service("a.service")]

        class SharedListUnitLister(FakeUnitLister):
            async def list_units(self):
                return records

        queries = ServiceQueries(SharedListUnitLister(), FakeLogReader())

        await queries.list_services()

        assert [r.unit for r in records] == ["b.service", "a.service"]


class TestListLogs:
    """Test list_logs."""

    @pytest.mark.asyncio
    async def test_window_filter_and_default_order(self, queries, log_reader):
        """Test entries outside the window are dropped and newest comes first."""
        result = await queries.list_logs(**WINDOW)

        timestamps = [e["timestamp_utc"] for e in result["entries"]]
        assert timestamps == [
            "2026-02-27T00:30:00.000Z",
            "2026-02-27T00:20:00.000Z",
            "2026-02-27T00:10:00.000Z",
        ]
        assert result["total_scanned"] == 4
        assert result["returned"] == 3
        assert result["truncated"] is False
        assert result["window"] == {
            "start_utc": "2026-02-27T00:00:00.000Z",
            "end_utc": "2026-02-27T01:00:00.000Z",
        }
        window, threshold, unit = log_reader.calls[0]
        assert threshold is None and unit is None

    @pytest.mark.asyncio
    async def test_messages_are_sanitized(self, queries):
        """Test that control characters are replaced in messages."""
        result = await queries.list_logs(**WINDOW, grep="worker crashed")

        assert [e["message"] for e in result["entries"]] == ["worker crashed"]

    @pytest.mark.asyncio
    async def test_priority_threshold(self, queries, log_reader):
        """Test that only entries at or above the severity are kept."""
        result = await queries.list_logs(**WINDOW, priority="err", order="asc")

        assert [e["priority"] for e in result["entries"]] == [3, 2]
        assert log_reader.calls[0][1] == 3

    @pytest.mark.asyncio
    async def test_entries_without_priority_dropped_with_threshold(self):
        """Test that a priority filter never keeps unknown-priority entries."""
        reader = FakeLogReader([log_entry("2026-02-27T00:10:00Z", priority=None)])
        queries = ServiceQueries(FakeUnitLister(), reader)

        assert (await queries.list_logs(**WINDOW))["returned"] == 1
        assert (await queries.list_logs(**WINDOW, priority=7))["returned"] == 0

    @pytest.mark.asyncio
    async def test_unit_and_exclude_units(self, queries, log_reader):
        """Test unit filtering and case-insensitive exclusion."""
        result = await queries.list_logs(**WINDOW, unit="backup.service")
        assert [e["unit"] for e in result["entries"]] == ["backup.service"]
        assert log_reader.calls[0][2] == "backup.service"

        result = await queries.list_logs(**WINDOW, exclude_units=["NGINX.service"])
        assert [e["unit"] for e in result["entries"]] == ["backup.service"]

    @pytest.mark.asyncio
    async def test_regex_grep_skips_empty_messages(self):
        """Test that entries without a message never match a grep."""
        reader = FakeLogReader(
            [
                log_entry("2026-02-27T00:10:00Z", message=None),
                log_entry("2026-02-27T00:11:00Z", message="Out of memory"),
            ]
        )
        queries = ServiceQueries(FakeUnitLister(), reader)

        result = await queries.list_logs(**WINDOW, grep="/[Mm]emory$/")

        assert [e["message"] for e in result["entries"]] == ["Out of memory"]

    @pytest.mark.asyncio
    async def test_limit_truncates(self, queries):
        """Test that truncated reflects matches beyond the limit."""
        result = await queries.list_logs(**WINDOW, limit=1)

        assert result["returned"] == 1
        assert result["truncated"] is True
        assert result["entries"][0]["timestamp_utc"] == "2026-02-27T00:30:00.000Z"

    @pytest.mark.asyncio
    async def test_scan_limit_reached_marks_truncated(self, log_reader):
        """Test that hitting the reader's row cap reports a truncated result."""
        log_reader.scan_limit = 4
        queries = ServiceQueries(FakeUnitLister(), log_reader, clock=lambda: FIXED_NOW)

        result = await queries.list_logs(**WINDOW, order="asc")

        assert result["total_scanned"] == 4
        assert result["returned"] == 3
        assert result["truncated"] is True

    @pytest.mark.asyncio
    async def test_scan_limit_not_reached(self, log_reader):
        """Test that a read below the row cap is not marked truncated."""
        log_reader.scan_limit = 5
        queries = ServiceQueries(FakeUnitLister(), log_reader, clock=lambda: FIXED_NOW)

        result = await queries.list_logs(**WINDOW)

        assert result["truncated"] is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "arguments,code",
        [
            ({}, "missing_time_range"),
            ({"start_utc": "2026-02-27T00:00:00Z"}, "missing_time_range"),
            ({"start_utc": "2026-02-27 00:00:00", "end_utc": "2026-02-27T01:00:00Z"}, "invalid_utc_time"),
            ({"start_utc": "2026-02-27T01:00:00Z", "end_utc": "2026-02-27T00:00:00Z"}, "invalid_time_range"),
            ({"start_utc": "2026-02-01T00:00:00Z", "end_utc": "2026-02-27T00:00:00Z"}, "window_too_large"),
            ({**WINDOW, "priority": "loud"}, "invalid_priority"),
            ({**WINDOW, "unit": "bad unit"}, "invalid_unit"),
            ({**WINDOW, "exclude_units": ["ok.service", "../x"]}, "invalid_unit"),
            ({**WINDOW, "order": "up"}, "invalid_order"),
            ({**WINDOW, "grep": "/(/"}, "invalid_grep"),
            ({**WINDOW, "limit": 1001}, "invalid_limit"),
        ],
    )
    async def test_validation_codes(self, queries, log_reader, arguments, code):
        """Test each stable validation code."""
        with pytest.raises(ValidationError) as exc_info:
            await queries.list_logs(**arguments)

        assert exc_info.value.code == code
        assert log_reader.calls == []

    @pytest.mark.asyncio
    async def test_large_window_allowed_when_requested(self, queries):
        """Test the explicit override for wide windows."""
        result = await queries.list_logs(
            start_utc="2026-02-01T00:00:00Z",
            end_utc="2026-02-28T23:59:59Z",
            allow_large_window=True,
        )

        assert result["returned"] == 4


class TestResources:
    """Test resource readers."""

    @pytest.mark.asyncio
    async def test_failed_services(self, queries):
        result = await queries.failed_services()
        assert [s["active_state"] for s in result["services"]] == ["failed"]

    @pytest.mark.asyncio
    async def test_recent_logs_covers_last_hour(self, queries, log_reader):
        """Test that recent logs read the hour before now, newest first."""
        result = await queries.recent_logs()

        window = log_reader.calls[0][0]
        assert window.end == FIXED_NOW
        assert (window.end - window.start).total_seconds() == 3600
        assert result["returned"] == 3
        assert result["entries"][0]["timestamp_utc"] == "2026-02-27T00:30:00.000Z"
