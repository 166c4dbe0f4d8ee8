"""Group access-policy checks: restricted operations, allow-lists and working hours."""

from models.context import GroupContext
from models.log_entry import LogEntry

RESTRICTED_OPERATION = "RESTRICTED_OPERATION"
UNAUTHORIZED_OPERATION = "UNAUTHORIZED_OPERATION"
OUTSIDE_WORKING_DAYS = "OUTSIDE_WORKING_DAYS"
OUTSIDE_WORKING_HOURS = "OUTSIDE_WORKING_HOURS"


def _matches_any(operation: str, patterns: list[str]) -> bool:
    op = operation.lower()
    return any(p.strip().lower() in op for p in patterns if p.strip())


def check_policy(entry: LogEntry, group: GroupContext | None) -> list[str]:
    """Return the policy violation tags ``entry`` triggers under ``group``."""
    if group is None:
        return []

    findings: list[str] = []
    if group.restricted_operations and _matches_any(entry.operation, group.restricted_operations):
        findings.append(RESTRICTED_OPERATION)

    if group.allowed_operations and not _matches_any(entry.operation, group.allowed_operations):
        findings.append(UNAUTHORIZED_OPERATION)

    hours = group.working_hours
    if hours is not None:
        day_name = entry.timestamp.strftime("%A")
        if hours.days and day_name not in hours.days:
            findings.append(OUTSIDE_WORKING_DAYS)
        else:
            clock = entry.timestamp.strftime("%H:%M")
            if clock < hours.start or clock > hours.end:
                findings.append(OUTSIDE_WORKING_HOURS)

    return findings
