"""Unit lister backed by the ``systemctl`` command line."""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..utils.errors import AdapterError
from ..utils.validation import format_utc
from .adapters import UnitLister
from .models import ServiceRecord
from .process import run_command

logger = logging.getLogger(__name__)

LIST_UNITS_COMMAND = [
    "systemctl",
    "list-units",
    "--type=service",
    "--all",
    "--no-legend",
    "--no-pager",
    "--plain",
    "--full",
]
DETAIL_PROPERTIES = (
    "Id",
    "UnitFileState",
    "ActiveEnterTimestamp",
    "MainPID",
    "ExecMainStatus",
    "Result",
)


def parse_list_units(output: str) -> List[ServiceRecord]:
    """Parse ``UNIT LOAD ACTIVE SUB DESCRIPTION`` rows into sorted records."""
    records = []
    for line in output.splitlines():
        line = line.strip().lstrip("●*").strip()
        if not line:
            continue
        columns = line.split(None, 4)
        if len(columns) < 4 or not columns[0].endswith(".service"):
            continue
        records.append(
            ServiceRecord(
                unit=columns[0],
                load_state=columns[1],
                active_state=columns[2],
                sub_state=columns[3],
                description=columns[4] if len(columns) == 5 else "",
            )
        )
    records.sort(key=lambda record: record.unit)
    return records


def parse_show_output(output: str) -> List[Dict[str, str]]:
    """Split ``systemctl show`` output into one property dict per unit."""
    blocks: List[Dict[str, str]] = []
    current: Dict[str, str] = {}
    for line in output.splitlines():
        if not line.strip():
            if current:
                blocks.append(current)
                current = {}
            continue
        key, sep, value = line.partition("=")
        if sep:
            current[key] = value
    if current:
        blocks.append(current)
    return blocks


def parse_unix_timestamp(value: Optional[str]) -> Optional[str]:
    """``@1700000000`` (``--timestamp=unix``) to RFC3339; empty or zero to None."""
    if not value:
        return None
    try:
        seconds = float(value.strip().lstrip("@"))
    except ValueError:
        return None
    if seconds <= 0:
        return None
    return format_utc(datetime.fromtimestamp(seconds, tz=timezone.utc))


def parse_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value else None
    except ValueError:
        return None


def apply_details(record: ServiceRecord, properties: Dict[str, str]) -> ServiceRecord:
    main_pid = parse_int(properties.get("MainPID"))
    return record.model_copy(
        update={
            "unit_file_state": properties.get("UnitFileState") or None,
            "since_utc": parse_unix_timestamp(properties.get("ActiveEnterTimestamp")),
            "main_pid": main_pid if main_pid else None,
            "exec_main_status": parse_int(properties.get("ExecMainStatus")),
            "result": properties.get("Result") or None,
        }
    )


class SystemctlUnitLister(UnitLister):
    """Lists service units and enriches them with ``systemctl show`` details."""

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout

    async def list_units(self) -> List[ServiceRecord]:
        output = await run_command(LIST_UNITS_COMMAND, self.timeout)
        records = parse_list_units(output)
        if not records:
            return records

        try:
            details = await run_command(
                [
                    "systemctl",
                    "show",
                    "--no-pager",
                    "--timestamp=unix",
                    "--property=" + ",".join(DETAIL_PROPERTIES),
                    "--",
                    *(record.unit for record in records),
                ],
                self.timeout,
            )
        except AdapterError as e:
            logger.warning(f"Failed to enrich service details from systemctl: {e}")
            return records

        by_id = {block.get("Id"): block for block in parse_show_output(details)}
        return [
            apply_details(record, by_id[record.unit]) if record.unit in by_id else record
            for record in records
        ]
