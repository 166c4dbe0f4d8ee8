"""Syslog datagram parsing (RFC5424, RFC3164 and bare PRI-tagged messages)."""

import logging
import re
import socket
from datetime import datetime
from typing import Any, Callable

from pydantic import BaseModel, Field

from models.log_entry import Level, LogEntry, Result
from parsers.common import first_match, parse_timestamp, split_csv_line
from parsers.telecom import DEFAULT_HEADERS, build_entry, parse_details

logger = logging.getLogger(__name__)

DEFAULT_FACILITY = 1
DEFAULT_SEVERITY = 6

SEVERITY_NAMES = [
    "Emergency",
    "Alert",
    "Critical",
    "Error",
    "Warning",
    "Notice",
    "Informational",
    "Debug",
]

FACILITY_NAMES = [
    "kern", "user", "mail", "daemon", "auth", "syslog", "lpr", "news",
    "uucp", "cron", "authpriv", "ftp", "ntp", "audit", "alert", "clock",
    "local0", "local1", "local2", "local3", "local4", "local5", "local6", "local7",
]

SEVERITY_LEVELS: dict[str, Level] = {
    "Emergency": Level.CRITICAL,
    "Alert": Level.CRITICAL,
    "Critical": Level.CRITICAL,
    "Error": Level.MAJOR,
    "Warning": Level.WARNING,
    "Notice": Level.MINOR,
    "Informational": Level.MINOR,
    "Debug": Level.MINOR,
}

_PRI = re.compile(r"^<(\d{1,3})>")
_RFC5424 = re.compile(r"^(\d)\s+(\S+)\s+(\S+)\s+(\S+)\s+(\S+)\s+(\S+)\s+(.*)", re.DOTALL)
_RFC3164 = re.compile(r"^([A-Za-z]{3}\s+\d{1,2}\s+\d{2}:\d{2}:\d{2})\s+(\S+)\s+(.*)", re.DOTALL)
_STRUCTURED_DATA = re.compile(r"^(?:-|(?:\[(?:[^\]\\]|\\.)*\])+)\s?", re.DOTALL)

Resolver = Callable[[str], str | None]


class SyslogMessage(BaseModel):
    """One decoded syslog datagram."""

    facility: int = DEFAULT_FACILITY
    severity: int = DEFAULT_SEVERITY
    timestamp: datetime
    hostname: str = "unknown"
    app_name: str | None = None
    message: str = ""
    raw: str = ""
    sender_ip: str | None = Field(default=None, description="Address the datagram came from")

    @property
    def facility_name(self) -> str:
        return FACILITY_NAMES[self.facility] if self.facility < len(FACILITY_NAMES) else "unknown"

    @property
    def severity_name(self) -> str:
        return SEVERITY_NAMES[self.severity]

    @property
    def level(self) -> Level:
        return SEVERITY_LEVELS[self.severity_name]


def reverse_lookup(ip: str) -> str | None:
    """Resolve ``ip`` to a hostname, or None when it has no PTR record."""
    try:
        return socket.gethostbyaddr(ip)[0]
    except OSError:
        return None


def _rfc5424(match: re.Match, now: datetime | None) -> dict[str, Any]:
    stamp = match.group(2)
    app_name = None if match.group(4) == "-" else match.group(4)
    body = _STRUCTURED_DATA.sub("", match.group(7), count=1).strip()
    if app_name:
        body = f"[{app_name}] {body}"
    return {
        "timestamp": parse_timestamp(None if stamp == "-" else stamp, now=now),
        "hostname": match.group(3),
        "app_name": app_name,
        "message": body,
    }


def _rfc3164(match: re.Match, now: datetime | None) -> dict[str, Any]:
    current = now or datetime.now()
    stamp = " ".join(match.group(1).split())
    try:
        timestamp = datetime.strptime(f"{stamp} {current.year}", "%b %d %H:%M:%S %Y")
    except ValueError:
        timestamp = current
    return {"timestamp": timestamp, "hostname": match.group(2), "message": match.group(3).strip()}


def parse_syslog(
    datagram: str,
    sender_ip: str | None = None,
    now: datetime | None = None,
    resolver: Resolver = reverse_lookup,
) -> SyslogMessage:
    """Decode a syslog datagram.

    The PRI header is split into facility and severity; the remainder is tried
    as RFC5424, then RFC3164, then kept as an opaque message attributed to the
    sender's reverse-resolved hostname.
    """
    raw = datagram.strip()
    facility, severity = DEFAULT_FACILITY, DEFAULT_SEVERITY
    rest = raw

    pri = _PRI.match(raw)
    if pri:
        value = int(pri.group(1))
        if value <= 191:
            facility, severity = divmod(value, 8)
        rest = raw[pri.end():]

    formats = [
        (_RFC5424, lambda m: _rfc5424(m, now)),
        (_RFC3164, lambda m: _rfc3164(m, now)),
    ]
    fields = first_match(formats, rest)
    if fields is None:
        hostname = (resolver(sender_ip) if sender_ip else None) or sender_ip or "unknown"
        fields = {"timestamp": now or datetime.now(), "hostname": hostname, "message": rest.strip()}

    return SyslogMessage(
        facility=facility,
        severity=severity,
        raw=raw,
        sender_ip=sender_ip,
        **fields,
    )


def _forwarded_record(message: SyslogMessage, now: datetime | None) -> LogEntry | None:
    body = message.message
    if body.startswith("[") and "] " in body:
        body = body.split("] ", 1)[1]
    fields = split_csv_line(body)
    if len(fields) < len(DEFAULT_HEADERS):
        return None
    return build_entry(fields, now=now)


def syslog_to_entry(
    message: SyslogMessage,
    system: str | None = None,
    now: datetime | None = None,
) -> LogEntry:
    """Convert a decoded datagram into a LogEntry.

    An NMS that forwards its operation log over syslog sends one CSV record per
    datagram; such bodies are parsed as vendor records. Anything else becomes a
    generic entry attributed to the sending host.
    """
    entry = _forwarded_record(message, now)
    if entry is not None:
        updates: dict[str, Any] = {}
        if not entry.terminal_ip and message.sender_ip:
            updates["terminal_ip"] = message.sender_ip
        if not entry.source and system:
            updates["source"] = system
        return entry.model_copy(update=updates) if updates else entry

    return LogEntry(
        operator=message.hostname,
        timestamp=message.timestamp,
        operation=message.severity_name,
        result=Result.UNKNOWN,
        level=message.level,
        source=system or f"syslog-{message.facility_name}",
        terminal_ip=message.sender_ip,
        details=message.message or None,
        parsed=parse_details(message.message),
    )
