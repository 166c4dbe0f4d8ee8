"""Shared parsing helpers: CSV splitting, timestamp resolution, first-match cascades."""

import csv
import logging
import re
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Callable, Iterator, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DAY_FIRST = re.compile(r"(\d{2})/(\d{2})/(\d{4})\s+(\d{2}):(\d{2}):(\d{2})")
_ISO_SPACE = re.compile(r"(\d{4})-(\d{2})-(\d{2})\s+(\d{2}):(\d{2}):(\d{2})")
_MONTH_FIRST = re.compile(r"(\d{2})-(\d{2})-(\d{4})\s+(\d{2}):(\d{2}):(\d{2})")


def first_match(
    rules: Sequence[tuple[re.Pattern, Callable[[re.Match], T]]],
    text: str,
) -> T | None:
    """Apply the extractor of the first pattern that matches ``text``."""
    for pattern, extract in rules:
        match = pattern.search(text)
        if match:
            return extract(match)
    return None


def split_csv_line(line: str) -> list[str]:
    """Split one RFC4180 record; quoted commas and doubled quotes are honoured."""
    try:
        row = next(csv.reader([line]), [])
    except csv.Error:
        return []
    return [field.strip() for field in row]


def _ends_inside_quotes(record: str) -> bool:
    """True when ``record`` leaves a quoted field open (a quote only opens at field start)."""
    inside = False
    field_start = True
    just_closed = False
    for char in record:
        if inside:
            if char == '"':
                inside = False
                just_closed = True
            continue
        if char == '"' and (field_start or just_closed):
            inside = True
        field_start = char == ","
        just_closed = False
    return inside


def _is_complete_record(line: str, width: int) -> bool:
    return not _ends_inside_quotes(line) and len(split_csv_line(line)) >= width


def iter_csv_records(text: str) -> Iterator[list[str]]:
    """Yield trimmed records from CSV text, allowing multi-line quoted fields.

    A quoted field may span lines, but a continuation line that is a complete
    record on its own (at least as wide as the first record) ends the join: the
    unterminated record is dropped and parsing resumes at that line. Blank
    records are dropped.
    """
    lines = [line.rstrip("\r") for line in text.split("\n")]
    width = 0
    index = 0
    while index < len(lines):
        start = index
        record: str | None = lines[index]
        index += 1
        while _ends_inside_quotes(record) and index < len(lines):
            if width and _is_complete_record(lines[index], width):
                logger.debug("Dropping unterminated CSV record at line %d", start + 1)
                record = None
                break
            record += "\n" + lines[index]
            index += 1
        if record is None:
            continue
        fields = split_csv_line(record)
        if any(fields):
            width = width or max(2, len(fields))
            yield fields


def _to_local_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def _from_groups(order: tuple[int, int, int], match: re.Match) -> datetime:
    groups = [int(g) for g in match.groups()]
    year, month, day = (groups[i] for i in order)
    return datetime(year, month, day, groups[3], groups[4], groups[5])


# (pattern, (year index, month index, day index)) tried in this order.
_TIMESTAMP_FORMATS: list[tuple[re.Pattern, tuple[int, int, int]]] = [
    (_DAY_FIRST, (2, 1, 0)),
    (_ISO_SPACE, (0, 1, 2)),
    (_MONTH_FIRST, (2, 0, 1)),
]


def parse_timestamp(text: str | None, now: datetime | None = None) -> datetime:
    """Resolve a vendor timestamp to a naive local datetime.

    Unparseable or missing input resolves to ``now``. This keeps every record
    but shifts it into the current hour and day bucket; callers that need strict
    time series should validate timestamps upstream.
    """
    clean = (text or "").replace("\t", "").strip()
    if clean:
        for pattern, order in _TIMESTAMP_FORMATS:
            match = pattern.search(clean)
            if not match:
                continue
            try:
                return _from_groups(order, match)
            except ValueError:
                continue

        iso = clean[:-1] + "+00:00" if clean.endswith("Z") else clean
        try:
            return _to_local_naive(datetime.fromisoformat(iso))
        except (ValueError, OverflowError):
            pass
        try:
            return _to_local_naive(parsedate_to_datetime(clean))
        except (TypeError, ValueError, IndexError, OverflowError):
            pass

    logger.debug("Unparseable timestamp %r, substituting current time", text)
    return now or datetime.now()
