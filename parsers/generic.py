"""Generic operator-activity parser for simple CSV and JSON exports."""

import json
import logging
import re
from datetime import datetime
from typing import Any, Iterable

from pydantic import ValidationError

from models.log_entry import Level, LogEntry, Result
from parsers.common import iter_csv_records, parse_timestamp
from parsers.telecom import parse_details
from rules.tables import OPERATIONS, detect_device

logger = logging.getLogger(__name__)

# Canonical field -> accepted keys after normalization (lowercase, no separators).
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "operator": ("operator", "operatorusername", "employeeid", "username", "user"),
    "timestamp": ("timestamp", "time"),
    "operation": ("operation", "action"),
    "result": ("result",),
    "level": ("level",),
    "source": ("source",),
    "terminal_ip": ("terminalip", "terminalipaddress", "ip"),
    "operation_object": ("operationobject", "object"),
    "details": ("details",),
}


def _normalize_key(key: str) -> str:
    return re.sub(r"[^a-z0-9]", "", key.lower())


def _pick(record: dict[str, Any], field: str) -> str:
    for alias in FIELD_ALIASES[field]:
        value = record.get(alias)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def record_to_entry(record: dict[str, Any], now: datetime | None = None) -> LogEntry | None:
    """Map one loosely keyed record (snake_case or camelCase) to a LogEntry."""
    normalized = {_normalize_key(str(k)): v for k, v in record.items()}
    operator = _pick(normalized, "operator")
    operation = _pick(normalized, "operation")
    if not operator or not operation:
        return None

    details = _pick(normalized, "details")
    operation_object = _pick(normalized, "operation_object")
    device = detect_device(operation_object)
    op_info = OPERATIONS.get(operation)
    try:
        return LogEntry(
            operator=operator,
            timestamp=parse_timestamp(_pick(normalized, "timestamp"), now=now),
            operation=operation,
            result=Result.from_text(_pick(normalized, "result")),
            level=Level.from_text(_pick(normalized, "level")),
            source=_pick(normalized, "source"),
            terminal_ip=_pick(normalized, "terminal_ip") or None,
            operation_object=operation_object or None,
            details=details or None,
            device_type=device.type if device else None,
            device_category=device.category if device else None,
            command_type=op_info.category if op_info else None,
            parsed=parse_details(details),
        )
    except ValidationError as e:
        logger.debug("Skipping unusable record for %s: %s", operator, e)
        return None


def _collect(records: Iterable[dict[str, Any]], now: datetime | None) -> list[LogEntry]:
    entries = []
    for record in records:
        if not isinstance(record, dict):
            continue
        entry = record_to_entry(record, now=now)
        if entry is not None:
            entries.append(entry)
    return entries


def parse_csv(text: str, now: datetime | None = None) -> list[LogEntry]:
    """Parse header-first CSV (employeeId/employee_id, timestamp, source, action, details)."""
    records = iter_csv_records(text)
    header = next(records, None)
    if header is None:
        return []
    rows = (dict(zip(header, fields)) for fields in records)
    return _collect(rows, now)


def parse_json(text: str, now: datetime | None = None) -> list[LogEntry]:
    """Parse a JSON array of records (a single object is accepted too)."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("Invalid JSON log input: %s", e)
        return []
    records = data if isinstance(data, list) else [data]
    return _collect(records, now)
