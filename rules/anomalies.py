"""Per-operator behavioral anomaly detection."""

from collections import defaultdict
from typing import Iterable

from models.anomaly import (
    Anomaly,
    AnomalySeverity,
    AnomalyType,
    HighFailureRateDetails,
    RapidOperationsDetails,
    RepeatedFailuresDetails,
    UnusualHoursDetails,
)
from models.log_entry import LogEntry

FAILURE_RATE_MIN_OPERATIONS = 10
FAILURE_RATE_THRESHOLD = 30.0
FAILURE_RATE_CRITICAL = 50.0
OFF_HOURS_START = 0
OFF_HOURS_END = 6
OFF_HOURS_MIN_COUNT = 5
RAPID_WINDOW = 10
RAPID_WINDOW_SECONDS = 60.0
REPEATED_FAILURE_THRESHOLD = 5
REPEATED_FAILURE_HIGH = 10


def group_by_operator(entries: Iterable[LogEntry]) -> dict[str, list[LogEntry]]:
    """Group entries by operator, preserving first-seen operator order."""
    groups: dict[str, list[LogEntry]] = defaultdict(list)
    for entry in entries:
        groups[entry.operator].append(entry)
    return dict(groups)


def detect_high_failure_rate(operator: str, entries: list[LogEntry]) -> list[Anomaly]:
    """Flag operators with 10+ operations and more than 30% failures."""
    if len(entries) < FAILURE_RATE_MIN_OPERATIONS:
        return []
    failed = sum(1 for e in entries if e.is_failure)
    rate = failed / len(entries) * 100
    if rate <= FAILURE_RATE_THRESHOLD:
        return []
    return [
        Anomaly(
            type=AnomalyType.HIGH_FAILURE_RATE,
            severity=AnomalySeverity.CRITICAL if rate > FAILURE_RATE_CRITICAL else AnomalySeverity.HIGH,
            description=(
                f"Operator {operator} has {rate:.1f}% failure rate "
                f"({failed}/{len(entries)} operations)"
            ),
            operator=operator,
            timestamp=max(e.timestamp for e in entries),
            details=HighFailureRateDetails(
                failure_rate=round(rate, 2),
                total_operations=len(entries),
                failed_operations=failed,
            ),
        )
    ]


def detect_unusual_hours(operator: str, entries: list[LogEntry]) -> list[Anomaly]:
    """Flag operators with more than 5 operations between midnight and 6 AM."""
    off_hours = [e for e in entries if OFF_HOURS_START <= e.timestamp.hour < OFF_HOURS_END]
    if len(off_hours) <= OFF_HOURS_MIN_COUNT:
        return []
    return [
        Anomaly(
            type=AnomalyType.UNUSUAL_HOURS,
            severity=AnomalySeverity.MEDIUM,
            description=(
                f"Operator {operator} performed {len(off_hours)} operations "
                f"between midnight and 6 AM"
            ),
            operator=operator,
            timestamp=off_hours[0].timestamp,
            details=UnusualHoursDetails(count=len(off_hours)),
        )
    ]


def detect_rapid_operations(operator: str, entries: list[LogEntry]) -> list[Anomaly]:
    """Flag the first run of 11 consecutive operations spanning under a minute."""
    ordered = sorted(entries, key=lambda e: e.timestamp)
    for i in range(len(ordered) - RAPID_WINDOW):
        elapsed = (ordered[i + RAPID_WINDOW].timestamp - ordered[i].timestamp).total_seconds()
        if 0 < elapsed < RAPID_WINDOW_SECONDS:
            return [
                Anomaly(
                    type=AnomalyType.RAPID_OPERATIONS,
                    severity=AnomalySeverity.MEDIUM,
                    description=(
                        f"Operator {operator} performed {RAPID_WINDOW}+ operations "
                        f"in less than 1 minute"
                    ),
                    operator=operator,
                    timestamp=ordered[i].timestamp,
                    details=RapidOperationsDetails(
                        operations_per_minute=round(RAPID_WINDOW / (elapsed / 60)),
                        window_seconds=elapsed,
                    ),
                )
            ]
    return []


def detect_repeated_failures(operator: str, entries: list[LogEntry]) -> list[Anomaly]:
    """Flag operations the operator failed 5+ times."""
    failures: dict[str, list[LogEntry]] = defaultdict(list)
    for entry in entries:
        if entry.is_failure:
            failures[entry.operation].append(entry)

    anomalies = []
    for operation, failed in failures.items():
        count = len(failed)
        if count < REPEATED_FAILURE_THRESHOLD:
            continue
        anomalies.append(
            Anomaly(
                type=AnomalyType.REPEATED_FAILURES,
                severity=AnomalySeverity.HIGH if count >= REPEATED_FAILURE_HIGH else AnomalySeverity.MEDIUM,
                description=f'Operator {operator} failed operation "{operation}" {count} times',
                operator=operator,
                timestamp=max(e.timestamp for e in failed),
                details=RepeatedFailuresDetails(operation=operation, failure_count=count),
            )
        )
    return anomalies


def detect_operator_anomalies(operator: str, entries: list[LogEntry]) -> list[Anomaly]:
    """Run every rule for one operator, in rule order."""
    anomalies: list[Anomaly] = []
    anomalies.extend(detect_high_failure_rate(operator, entries))
    anomalies.extend(detect_unusual_hours(operator, entries))
    anomalies.extend(detect_rapid_operations(operator, entries))
    anomalies.extend(detect_repeated_failures(operator, entries))
    return anomalies


def sort_anomalies(anomalies: list[Anomaly]) -> list[Anomaly]:
    """Most severe first; equal severities keep detection order."""
    return sorted(anomalies, key=lambda a: a.severity.rank, reverse=True)


def detect_anomalies(entries: list[LogEntry]) -> list[Anomaly]:
    """Detect anomalies for every operator and return them sorted by severity."""
    anomalies: list[Anomaly] = []
    for operator, operator_entries in group_by_operator(entries).items():
        anomalies.extend(detect_operator_anomalies(operator, operator_entries))
    return sort_anomalies(anomalies)
