from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from models.anomaly import Anomaly


class OperationCount(BaseModel):
    operation: str
    count: int


class EntryDigest(BaseModel):
    """Compact view of one entry for operator drill-down lists."""

    timestamp: datetime
    operation: str
    result: str
    violation_type: str | None = None
    details: str | None = None


class OperatorStats(BaseModel):
    operator_id: str
    username: str
    full_name: str | None = None
    total_operations: int
    successful_operations: int
    failed_operations: int
    success_rate: float = Field(description="Percentage of operations that succeeded")
    violations: int
    most_used_operations: list[OperationCount] = Field(default_factory=list)
    active_hours: list[int] = Field(default_factory=list)
    last_activity: datetime | None = None
    recent_violations: list[EntryDigest] = Field(default_factory=list)
    recent_failures: list[EntryDigest] = Field(default_factory=list)


class OperationStats(BaseModel):
    operation: str
    count: int
    success_count: int
    fail_count: int
    success_rate: float
    avg_per_day: float
    operators: list[str] = Field(default_factory=list)


class HourlyActivity(BaseModel):
    hour: int = Field(ge=0, le=23)
    count: int = 0
    success_count: int = 0
    fail_count: int = 0


class DailyActivity(BaseModel):
    date: str = Field(description="Calendar date, YYYY-MM-DD")
    count: int = 0
    success_count: int = 0
    fail_count: int = 0
    unique_operators: int = 0


class ErrorStat(BaseModel):
    error: str
    count: int
    operations: list[str] = Field(default_factory=list)


class SourceStat(BaseModel):
    source: str
    count: int


class IpStat(BaseModel):
    ip: str
    count: int
    operators: list[str] = Field(default_factory=list)


class DeviceStat(BaseModel):
    device_type: str
    category: str | None = None
    count: int


class PerformanceMetrics(BaseModel):
    peak_hour: int = 0
    peak_day: str = ""
    avg_operations_per_day: float = 0.0
    avg_operations_per_operator: float = 0.0
    operator_efficiency: float = 0.0


class DateRange(BaseModel):
    start: datetime
    end: datetime

    @property
    def day_span(self) -> int:
        """Inclusive number of calendar days covered, at least 1."""
        return max(1, (self.end.date() - self.start.date()).days + 1)


class Overview(BaseModel):
    total_logs: int = 0
    date_range: DateRange | None = None
    unique_operators: int = 0
    unique_operations: int = 0
    successful_operations: int = 0
    failed_operations: int = 0
    unknown_operations: int = 0
    success_rate: float = 0.0
    failure_rate: float = 0.0
    total_violations: int = 0


class ViolationSummary(BaseModel):
    type: str
    count: int
    details: list[str] = Field(default_factory=list, description="Up to 5 examples")


class Risk(BaseModel):
    level: Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
    description: str


class Aggregates(BaseModel):
    """Rollups produced by the aggregation stage."""

    overview: Overview
    operator_stats: list[OperatorStats] = Field(default_factory=list)
    operation_stats: list[OperationStats] = Field(default_factory=list)
    hourly_activity: list[HourlyActivity] = Field(default_factory=list)
    daily_activity: list[DailyActivity] = Field(default_factory=list)
    top_errors: list[ErrorStat] = Field(default_factory=list)
    source_stats: list[SourceStat] = Field(default_factory=list)
    ip_stats: list[IpStat] = Field(default_factory=list)
    device_stats: list[DeviceStat] = Field(default_factory=list)
    level_counts: dict[str, int] = Field(default_factory=dict)
    performance_metrics: PerformanceMetrics = Field(default_factory=PerformanceMetrics)


class ComprehensiveAnalysis(Aggregates):
    """Root result of one analysis run."""

    anomalies: list[Anomaly] = Field(default_factory=list)
    violations: list[ViolationSummary] = Field(default_factory=list)
    risks: list[Risk] = Field(default_factory=list)
    compliance_score: int = Field(default=100, ge=0, le=100)
    recommendations: list[str] = Field(default_factory=list)
    executive_summary: str = ""
    date_range_label: str = ""
    operator: str | None = None
    group: str | None = None
    generated_at: datetime = Field(default_factory=datetime.now)
    ai_enriched: bool = False
