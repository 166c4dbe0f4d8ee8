"""Huawei NMS operation-log parser (CSV export and forwarded records)."""

import logging
import re
from datetime import datetime
from typing import Any, Callable, Sequence

from pydantic import ValidationError

from models.log_entry import Level, LogEntry, ParsedDetails, Result
from parsers.common import iter_csv_records, parse_timestamp, split_csv_line
from rules.tables import ERROR_CODES, OPERATIONS, detect_device

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = [
    "Operation",
    "Level",
    "Operator",
    "Time",
    "Source",
    "Terminal IP Address",
    "Operation Object",
    "Result",
    "Details",
]

HEADER_TOKENS = ("operation", "operator", "result")

# Canonical field -> header substrings tried in order.
_FIELD_KEYS: dict[str, tuple[str, ...]] = {
    "operation": ("operation",),
    "level": ("level",),
    "operator": ("operator",),
    "time": ("time",),
    "source": ("source",),
    "terminal_ip": ("terminal", "ip"),
    "operation_object": ("object",),
    "result": ("result",),
    "details": ("details",),
}

# (pattern, ParsedDetails field, converter); each tag is optional.
DETAIL_FIELDS: list[tuple[re.Pattern, str, Callable[[str], Any]]] = [
    (re.compile(r"Call Chain ID:(\d+)"), "call_chain_id", str),
    (re.compile(r"ProcessID:(\S+)"), "process_id", str),
    (re.compile(r"\bEN=(\d+)"), "error_code", str),
    (re.compile(r"\bENDESC=([^\n;]+)"), "error_description", str.strip),
    (re.compile(r"\bDEV=([^,:\s]+)"), "device", str),
    (re.compile(r"\bFN=(\d+)"), "frame_number", int),
    (re.compile(r"\bSN=(\d+)"), "slot_number", int),
    (re.compile(r"\bPN=(\d+)"), "port_number", int),
    (re.compile(r"\bONTID=(\d+)"), "ont_id", int),
    (re.compile(r"\bVLANID=(\d+)"), "vlan_id", int),
    (re.compile(r"\bGEMPORTID=(\d+)"), "gemport_id", int),
    (re.compile(r"\bblkcount=(\d+)"), "block_count", int),
    (re.compile(r"\bblktotal=(\d+)"), "block_total", int),
]


def parse_details(details: str | None) -> ParsedDetails:
    """Extract the tagged sub-fields of a vendor details block."""
    if not details:
        return ParsedDetails()

    values: dict[str, Any] = {}
    for pattern, field, convert in DETAIL_FIELDS:
        match = pattern.search(details)
        if match:
            values[field] = convert(match.group(1))

    code = values.get("error_code")
    info = ERROR_CODES.get(code) if code else None
    if info:
        values["error_severity"] = info.severity
        # An explicit ENDESC wins over the table description.
        values.setdefault("error_description", info.description)
    return ParsedDetails(**values)


def looks_like_header(fields: Sequence[str]) -> bool:
    return any(token in field.lower() for field in fields for token in HEADER_TOKENS)


def _column_map(headers: Sequence[str]) -> dict[str, int]:
    lowered = [h.strip().lower() for h in headers]
    mapping: dict[str, int] = {}
    for field, keys in _FIELD_KEYS.items():
        for key in keys:
            index = next((i for i, h in enumerate(lowered) if key in h), -1)
            if index >= 0:
                mapping[field] = index
                break
    return mapping


def build_entry(
    fields: Sequence[str],
    headers: Sequence[str] | None = None,
    now: datetime | None = None,
) -> LogEntry | None:
    """Build a LogEntry from one record, or None when it cannot be used."""
    if headers is None and len(fields) < len(DEFAULT_HEADERS):
        return None

    columns = _column_map(headers or DEFAULT_HEADERS)

    def get(field: str) -> str:
        index = columns.get(field, -1)
        return fields[index] if 0 <= index < len(fields) else ""

    operation = get("operation")
    if not operation:
        return None

    operation_object = get("operation_object")
    details = get("details")
    device = detect_device(operation_object)
    op_info = OPERATIONS.get(operation)

    try:
        return LogEntry(
            operator=get("operator") or "Unknown",
            timestamp=parse_timestamp(get("time"), now=now),
            operation=operation,
            result=Result.from_text(get("result")),
            level=Level.from_text(get("level")),
            source=get("source"),
            terminal_ip=get("terminal_ip") or None,
            operation_object=operation_object or None,
            details=details or None,
            device_type=device.type if device else None,
            device_category=device.category if device else None,
            command_type=op_info.category if op_info else "Unknown",
            parsed=parse_details(details),
        )
    except ValidationError as e:
        logger.debug("Skipping unusable NMS record %r: %s", operation, e)
        return None


def parse_line(line: str, headers: Sequence[str] | None = None, now: datetime | None = None) -> LogEntry | None:
    """Parse a single CSV line using ``headers`` or the default column order."""
    return build_entry(split_csv_line(line), headers, now=now)


def parse_nms_csv(
    text: str,
    headers: Sequence[str] | None = None,
    now: datetime | None = None,
) -> list[LogEntry]:
    """Parse a full NMS CSV export. A header row is detected automatically."""
    records = list(iter_csv_records(text))
    if not records:
        return []

    if headers is None and looks_like_header(records[0]):
        headers = records[0]
        records = records[1:]

    entries: list[LogEntry] = []
    skipped = 0
    for fields in records:
        entry = build_entry(fields, headers, now=now)
        if entry is None:
            skipped += 1
            continue
        entries.append(entry)

    if skipped:
        logger.debug("Skipped %d unusable NMS records", skipped)
    return entries
