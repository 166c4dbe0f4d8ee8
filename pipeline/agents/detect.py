"""Detect Agent: per-operator anomaly rules, single pass or one operator partition."""

from models.anomaly import Anomaly
from pipeline.state import AnalysisState
from rules.anomalies import detect_operator_anomalies, group_by_operator, sort_anomalies


def detect_for_operators(groups: dict[str, list]) -> list[Anomaly]:
    anomalies: list[Anomaly] = []
    for operator, entries in groups.items():
        anomalies.extend(detect_operator_anomalies(operator, entries))
    return anomalies


def run_detect(state: AnalysisState) -> dict:
    """Run every anomaly rule over all operators as partition 0."""
    groups = group_by_operator(state.get("classified", []))
    return {"anomaly_partitions": {0: detect_for_operators(groups)}}


def run_detect_partition(state: dict) -> dict:
    """Detect anomalies for one operator partition.

    Called via LangGraph's Send API during burst mode.
    The state dict has: partition_index (int), groups (operator -> entries).
    """
    index = state.get("partition_index", 0)
    groups = state.get("groups", {})
    return {"anomaly_partitions": {index: detect_for_operators(groups)}}


def merge_anomalies(partitions: dict[int, list[Anomaly]]) -> list[Anomaly]:
    """Concatenate partition results in partition order, then sort by severity."""
    merged: list[Anomaly] = []
    for index in sorted(partitions):
        merged.extend(partitions[index])
    return sort_anomalies(merged)
