"""Rule-based violation classification. Deterministic, no API calls."""

from typing import Iterable, NamedTuple

from models.log_entry import Level, LogEntry, Result
from rules.tables import ERROR_CODES, OPERATIONS, RISK_SEVERITY, VIOLATION_PATTERNS

FAILED_OPERATION = "Failed Operation"

_VIOLATION_LEVELS = (Level.MAJOR, Level.CRITICAL)


class Classification(NamedTuple):
    is_violation: bool
    violation_type: str | None
    severity: Level


def classify(entry: LogEntry) -> Classification:
    """Classify one entry. Failure outranks patterns, patterns outrank the risk table."""
    if entry.result == Result.FAILED:
        info = ERROR_CODES.get(entry.parsed.error_code or "")
        severity = info.severity if info else Level.WARNING
        return Classification(severity in _VIOLATION_LEVELS, FAILED_OPERATION, severity)

    full_text = f"{entry.operation} {entry.details or ''}"
    for rule in VIOLATION_PATTERNS:
        if rule.pattern.search(full_text):
            return Classification(rule.severity in _VIOLATION_LEVELS, rule.type, rule.severity)

    op_info = OPERATIONS.get(entry.operation)
    if op_info and op_info.risk in ("high", "critical"):
        return Classification(True, f"High Risk: {op_info.description}", RISK_SEVERITY[op_info.risk])

    return Classification(False, None, Level.MINOR)


def annotate(entry: LogEntry, extra_types: Iterable[str] = ()) -> LogEntry:
    """Return a classified copy of ``entry``.

    ``extra_types`` are additional violation tags (group policy findings) that
    force the violation flag. Entries that were already classified are
    returned unchanged.
    """
    if entry.classified:
        return entry

    result = classify(entry)
    types = [result.violation_type] if result.violation_type else []
    extras = [t for t in extra_types if t not in types]
    types.extend(extras)

    level = entry.level
    if result.severity.rank > level.rank:
        level = result.severity

    return entry.model_copy(
        update={
            "classified": True,
            "is_violation": result.is_violation or bool(extras),
            "violation_type": ",".join(types) if types else None,
            "level": level,
        }
    )
