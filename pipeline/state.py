from datetime import datetime
from typing import Annotated, Any

from typing_extensions import TypedDict

from models.analysis import Aggregates, ComprehensiveAnalysis
from models.anomaly import Anomaly
from models.context import GroupContext, OperatorContext
from models.log_entry import LogEntry


def merge_partitions(
    left: dict[int, list[Anomaly]] | None,
    right: dict[int, list[Anomaly]] | None,
) -> dict[int, list[Anomaly]]:
    """Reducer for burst-mode fan-in: partition results keyed by partition index."""
    merged = dict(left or {})
    merged.update(right or {})
    return merged


class AnalysisState(TypedDict, total=False):
    """Shared state passed between all agents in the LangGraph analysis graph."""

    # Input
    entries: list[LogEntry]
    operator: OperatorContext | None
    group: GroupContext | None
    directory: dict[str, OperatorContext]
    date_range_label: str
    include_details: bool
    enable_ai: bool
    generated_at: datetime

    # Classify Agent writes
    classified: list[LogEntry]

    # Detect Agent writes (Annotated reducer for burst mode fan-in)
    anomaly_partitions: Annotated[dict[int, list[Anomaly]], merge_partitions]
    anomalies: list[Anomaly]

    # Aggregate Agent writes
    aggregates: Aggregates | None

    # Report Agent writes
    analysis: ComprehensiveAnalysis | None

    # Pipeline metadata
    agent_metrics: dict[str, dict[str, Any]]
    burst_mode: bool
