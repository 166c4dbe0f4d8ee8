"""Aggregate Agent: rollups over operators, operations, time, errors, sources and devices.

Every function here is pure and deterministic: it reads classified entries and
returns pydantic rows. Ties in top-N lists keep first-seen order because the
counters are insertion-ordered and the sorts are stable.
"""

import re
from collections import Counter, defaultdict
from typing import Iterable

from models.analysis import (
    Aggregates,
    DailyActivity,
    DateRange,
    DeviceStat,
    EntryDigest,
    ErrorStat,
    HourlyActivity,
    IpStat,
    OperationCount,
    OperationStats,
    OperatorStats,
    Overview,
    PerformanceMetrics,
    SourceStat,
)
from models.context import OperatorContext
from models.log_entry import Level, LogEntry
from pipeline.agents.detect import merge_anomalies
from pipeline.state import AnalysisState
from rules.anomalies import group_by_operator

TOP_OPERATIONS_PER_OPERATOR = 10
TOP_OPERATIONS = 50
TOP_ERRORS = 20
TOP_SOURCES = 20
TOP_IPS = 20
OPERATIONS_PER_ERROR = 5
RECENT_DETAIL_LIMIT = 10
UNKNOWN_ERROR = "Unknown error"

_ENDESC = re.compile(r"ENDESC=([^\n;]+)")


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _distinct(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


def _digest(entry: LogEntry) -> EntryDigest:
    return EntryDigest(
        timestamp=entry.timestamp,
        operation=entry.operation,
        result=entry.result.value,
        violation_type=entry.violation_type,
        details=entry.details,
    )


def _recent(entries: list[LogEntry]) -> list[EntryDigest]:
    newest = sorted(entries, key=lambda e: e.timestamp, reverse=True)
    return [_digest(e) for e in newest[:RECENT_DETAIL_LIMIT]]


def date_range(entries: list[LogEntry]) -> DateRange | None:
    if not entries:
        return None
    stamps = [e.timestamp for e in entries]
    return DateRange(start=min(stamps), end=max(stamps))


def build_overview(entries: list[LogEntry]) -> Overview:
    total = len(entries)
    success = sum(1 for e in entries if e.is_success)
    failed = sum(1 for e in entries if e.is_failure)
    return Overview(
        total_logs=total,
        date_range=date_range(entries),
        unique_operators=len({e.operator for e in entries}),
        unique_operations=len({e.operation for e in entries}),
        successful_operations=success,
        failed_operations=failed,
        unknown_operations=total - success - failed,
        success_rate=success / total * 100 if total else 0.0,
        failure_rate=failed / total * 100 if total else 0.0,
        total_violations=sum(1 for e in entries if e.is_violation),
    )


def operator_stats(
    entries: list[LogEntry],
    directory: dict[str, OperatorContext] | None = None,
    include_details: bool = False,
) -> list[OperatorStats]:
    """Per-operator totals, sorted by total operations (ties keep first-seen order)."""
    directory = directory or {}
    stats = []
    for username, ops in group_by_operator(entries).items():
        known = directory.get(username)
        counts = Counter(e.operation for e in ops)
        violations = [e for e in ops if e.is_violation]
        failures = [e for e in ops if e.is_failure]
        success = sum(1 for e in ops if e.is_success)
        stats.append(
            OperatorStats(
                operator_id=(known.operator_id if known and known.operator_id else username),
                username=username,
                full_name=known.full_name if known else None,
                total_operations=len(ops),
                successful_operations=success,
                failed_operations=len(failures),
                success_rate=_percent(success, len(ops)),
                violations=len(violations),
                most_used_operations=[
                    OperationCount(operation=op, count=n)
                    for op, n in counts.most_common(TOP_OPERATIONS_PER_OPERATOR)
                ],
                active_hours=sorted({e.timestamp.hour for e in ops}),
                last_activity=max(e.timestamp for e in ops),
                recent_violations=_recent(violations) if include_details else [],
                recent_failures=_recent(failures) if include_details else [],
            )
        )
    return sorted(stats, key=lambda s: s.total_operations, reverse=True)


def operation_stats(entries: list[LogEntry], day_span: int = 1) -> list[OperationStats]:
    """Top operations by count with average occurrences per day."""
    by_operation: dict[str, list[LogEntry]] = defaultdict(list)
    for entry in entries:
        by_operation[entry.operation].append(entry)

    days = max(1, day_span)
    stats = []
    for operation, ops in by_operation.items():
        success = sum(1 for e in ops if e.is_success)
        stats.append(
            OperationStats(
                operation=operation,
                count=len(ops),
                success_count=success,
                fail_count=sum(1 for e in ops if e.is_failure),
                success_rate=_percent(success, len(ops)),
                avg_per_day=round(len(ops) / days, 2),
                operators=_distinct(e.operator for e in ops),
            )
        )
    stats.sort(key=lambda s: s.count, reverse=True)
    return stats[:TOP_OPERATIONS]


def hourly_activity(entries: list[LogEntry]) -> list[HourlyActivity]:
    buckets = [HourlyActivity(hour=h) for h in range(24)]
    for entry in entries:
        bucket = buckets[entry.timestamp.hour]
        bucket.count += 1
        if entry.is_success:
            bucket.success_count += 1
        elif entry.is_failure:
            bucket.fail_count += 1
    return buckets


def daily_activity(entries: list[LogEntry]) -> list[DailyActivity]:
    by_day: dict[str, list[LogEntry]] = defaultdict(list)
    for entry in entries:
        by_day[entry.timestamp.date().isoformat()].append(entry)

    return [
        DailyActivity(
            date=day,
            count=len(ops),
            success_count=sum(1 for e in ops if e.is_success),
            fail_count=sum(1 for e in ops if e.is_failure),
            unique_operators=len({e.operator for e in ops}),
        )
        for day, ops in sorted(by_day.items())
    ]


def error_description(entry: LogEntry) -> str:
    match = _ENDESC.search(entry.details or "")
    return match.group(1).strip() if match else UNKNOWN_ERROR


def top_errors(entries: list[LogEntry]) -> list[ErrorStat]:
    """Most frequent error descriptions among failed entries."""
    counts: Counter = Counter()
    operations: dict[str, list[str]] = defaultdict(list)
    for entry in entries:
        if not entry.is_failure:
            continue
        error = error_description(entry)
        counts[error] += 1
        if entry.operation not in operations[error]:
            operations[error].append(entry.operation)

    return [
        ErrorStat(error=error, count=n, operations=operations[error][:OPERATIONS_PER_ERROR])
        for error, n in counts.most_common(TOP_ERRORS)
    ]


def source_stats(entries: list[LogEntry]) -> list[SourceStat]:
    counts = Counter(e.source or "Unknown" for e in entries)
    return [SourceStat(source=s, count=n) for s, n in counts.most_common(TOP_SOURCES)]


def ip_stats(entries: list[LogEntry]) -> list[IpStat]:
    counts: Counter = Counter()
    operators: dict[str, list[str]] = defaultdict(list)
    for entry in entries:
        ip = entry.terminal_ip or "Unknown"
        counts[ip] += 1
        if entry.operator not in operators[ip]:
            operators[ip].append(entry.operator)
    return [IpStat(ip=ip, count=n, operators=operators[ip]) for ip, n in counts.most_common(TOP_IPS)]


def device_stats(entries: list[LogEntry]) -> list[DeviceStat]:
    counts: Counter = Counter()
    categories: dict[str, str | None] = {}
    for entry in entries:
        if not entry.device_type:
            continue
        counts[entry.device_type] += 1
        categories.setdefault(entry.device_type, entry.device_category)
    return [
        DeviceStat(device_type=device, category=categories[device], count=n)
        for device, n in counts.most_common()
    ]


def level_counts(entries: list[LogEntry]) -> dict[str, int]:
    counts = Counter(e.level for e in entries)
    return {level.value: counts.get(level, 0) for level in Level}


def performance_metrics(
    entries: list[LogEntry],
    hourly: list[HourlyActivity],
    daily: list[DailyActivity],
    day_span: int = 1,
) -> PerformanceMetrics:
    total = len(entries)
    if not total:
        return PerformanceMetrics()

    # max() returns the first maximal element, so ties go to the earliest bucket.
    peak_hour = max(hourly, key=lambda h: h.count)
    peak_day = max(daily, key=lambda d: d.count)
    operators = len({e.operator for e in entries})
    success = sum(1 for e in entries if e.is_success)
    return PerformanceMetrics(
        peak_hour=peak_hour.hour,
        peak_day=peak_day.date,
        avg_operations_per_day=round(total / max(1, day_span), 2),
        avg_operations_per_operator=round(total / max(1, operators), 2),
        operator_efficiency=_percent(success, total),
    )


def aggregate(
    entries: list[LogEntry],
    directory: dict[str, OperatorContext] | None = None,
    include_details: bool = False,
) -> Aggregates:
    """Compute every rollup for a non-empty list of classified entries."""
    overview = build_overview(entries)
    day_span = overview.date_range.day_span if overview.date_range else 1
    hourly = hourly_activity(entries)
    daily = daily_activity(entries)
    return Aggregates(
        overview=overview,
        operator_stats=operator_stats(entries, directory, include_details),
        operation_stats=operation_stats(entries, day_span),
        hourly_activity=hourly,
        daily_activity=daily,
        top_errors=top_errors(entries),
        source_stats=source_stats(entries),
        ip_stats=ip_stats(entries),
        device_stats=device_stats(entries),
        level_counts=level_counts(entries),
        performance_metrics=performance_metrics(entries, hourly, daily, day_span),
    )


def run_aggregate(state: AnalysisState) -> dict:
    """Merge detection partitions and compute the rollups."""
    entries = state.get("classified", [])
    return {
        "anomalies": merge_anomalies(state.get("anomaly_partitions", {})),
        "aggregates": aggregate(
            entries,
            directory=state.get("directory"),
            include_details=state.get("include_details", False),
        ),
    }
