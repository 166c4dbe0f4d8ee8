"""Format parsers: raw log text in, LogEntry list out."""

import logging
from datetime import datetime
from enum import Enum
from typing import Sequence

from models.log_entry import LogEntry
from parsers.generic import parse_csv, parse_json
from parsers.syslog import parse_syslog, syslog_to_entry
from parsers.telecom import parse_nms_csv

logger = logging.getLogger(__name__)


class LogFormat(str, Enum):
    NMS_CSV = "nms_csv"
    CSV = "csv"
    JSON = "json"
    SYSLOG = "syslog"


def parse(
    raw: str | bytes,
    fmt: LogFormat | str,
    headers: Sequence[str] | None = None,
    sender_ip: str | None = None,
    now: datetime | None = None,
) -> list[LogEntry]:
    """Parse ``raw`` in the given format. Bad records are skipped, never fatal.

    Syslog input is treated as one datagram per non-blank line.
    """
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    fmt = LogFormat(fmt)

    if fmt == LogFormat.NMS_CSV:
        entries = parse_nms_csv(text, headers=headers, now=now)
    elif fmt == LogFormat.CSV:
        entries = parse_csv(text, now=now)
    elif fmt == LogFormat.JSON:
        entries = parse_json(text, now=now)
    else:
        entries = [
            syslog_to_entry(parse_syslog(line, sender_ip=sender_ip, now=now), now=now)
            for line in text.splitlines()
            if line.strip()
        ]

    logger.debug("Parsed %d entries from %s input", len(entries), fmt.value)
    return entries
