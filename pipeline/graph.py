"""LangGraph analysis graph: Classify → Detect → Aggregate → Report,
with an empty-input short circuit and burst-mode operator partitioning."""

import logging
import os
import time
from datetime import datetime
from typing import Literal

from langgraph.graph import END, START, StateGraph
from langgraph.types import Send

from models.analysis import ComprehensiveAnalysis
from models.context import GroupContext, OperatorContext
from models.log_entry import LogEntry
from pipeline.agents.aggregate import run_aggregate
from pipeline.agents.classify import run_classify
from pipeline.agents.detect import run_detect, run_detect_partition
from pipeline.agents.report import empty_analysis, run_report
from pipeline.state import AnalysisState
from rules.anomalies import group_by_operator

logger = logging.getLogger(__name__)


# ── Constants ──

BURST_THRESHOLD = int(os.getenv("NMS_BURST_THRESHOLD", "5000"))
PARTITION_SIZE = int(os.getenv("NMS_PARTITION_SIZE", "25"))


# ── Conditional routing functions ──


def should_analyze(state: AnalysisState) -> Literal["classify", "empty_analysis"]:
    """Short-circuit to the empty analysis when there is nothing to analyze."""
    if state.get("entries"):
        return "classify"
    return "empty_analysis"


def should_burst(state: AnalysisState) -> list[Send] | str:
    """Fan anomaly detection out over operator partitions for large batches."""
    classified = state.get("classified", [])
    if len(classified) <= BURST_THRESHOLD:
        return "detect"

    groups = list(group_by_operator(classified).items())
    sends = []
    for i in range(0, len(groups), PARTITION_SIZE):
        sends.append(
            Send(
                "detect_partition",
                {"groups": dict(groups[i : i + PARTITION_SIZE]), "partition_index": i // PARTITION_SIZE},
            )
        )
    return sends


# ── Short-circuit nodes ──


def empty_analysis_node(state: AnalysisState) -> dict:
    """Well-defined result for an empty batch: zeroed metrics, one recommendation."""
    return {
        "analysis": empty_analysis(
            date_range_label=state.get("date_range_label", ""),
            operator=state.get("operator"),
            group=state.get("group"),
            generated_at=state.get("generated_at"),
        )
    }


# ── Build the graph ──


def build_graph():
    """Build and compile the LangGraph analysis graph."""
    workflow = StateGraph(AnalysisState)

    workflow.add_node("classify", run_classify)
    workflow.add_node("detect", run_detect)
    workflow.add_node("detect_partition", run_detect_partition)
    workflow.add_node("aggregate", run_aggregate)
    workflow.add_node("report", run_report)
    workflow.add_node("empty_analysis", empty_analysis_node)

    # Entry: empty input check
    workflow.add_conditional_edges(
        START,
        should_analyze,
        {"classify": "classify", "empty_analysis": "empty_analysis"},
    )

    # Classify → single detect, or burst fan-out over operator partitions
    workflow.add_conditional_edges("classify", should_burst, ["detect", "detect_partition"])

    # Both detection paths join at aggregate
    workflow.add_edge("detect", "aggregate")
    workflow.add_edge("detect_partition", "aggregate")
    workflow.add_edge("aggregate", "report")

    # Terminal edges
    workflow.add_edge("report", END)
    workflow.add_edge("empty_analysis", END)

    return workflow.compile()


def analyze(
    entries: list[LogEntry],
    operator: OperatorContext | None = None,
    group: GroupContext | None = None,
    date_range_label: str = "",
    directory: dict[str, OperatorContext] | None = None,
    include_details: bool = False,
    enable_ai: bool = False,
    generated_at: datetime | None = None,
) -> ComprehensiveAnalysis:
    """Analyze parsed log entries and return the comprehensive result.

    Args:
        entries: Parsed entries; already-classified entries are not re-classified.
        operator: Operator the batch belongs to, for context lines in the summary.
        group: Operator group whose access policy is checked per entry.
        date_range_label: Period label shown in the summary instead of the data span.
        directory: Known operators by username, for ids and full names.
        include_details: Attach recent violations and failures to each operator.
        enable_ai: Rewrite the executive summary with Claude when a key is configured.
        generated_at: Report timestamp; defaults to now.
    """
    graph = build_graph()

    initial_state: dict = {
        "entries": list(entries),
        "operator": operator,
        "group": group,
        "directory": directory or {},
        "date_range_label": date_range_label,
        "include_details": include_details,
        "enable_ai": enable_ai,
        "generated_at": generated_at or datetime.now(),
        "classified": [],
        "anomaly_partitions": {},
        "anomalies": [],
        "aggregates": None,
        "analysis": None,
        "agent_metrics": {},
        "burst_mode": len(entries) > BURST_THRESHOLD,
    }

    start_time = time.time()
    result = graph.invoke(initial_state)
    logger.debug(
        "Analyzed %d entries in %.1f ms (burst=%s)",
        len(entries),
        (time.time() - start_time) * 1000,
        initial_state["burst_mode"],
    )
    return result["analysis"]
