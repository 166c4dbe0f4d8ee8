"""Tests for burst mode routing and partitioned anomaly detection."""

from datetime import datetime, timedelta

from langgraph.types import Send

import pipeline.graph as graph_module
from models.log_entry import LogEntry, Result
from pipeline.graph import analyze, should_burst
from pipeline.state import merge_partitions

GENERATED_AT = datetime(2024, 3, 10, 8, 0, 0)
BASE = datetime(2024, 3, 4, 10, 0, 0)


def _make_entries(operators: int, per_operator: int = 12) -> list[LogEntry]:
    """Even operators fail one in three operations; odd operators fail two in three."""
    entries = []
    for n in range(operators):
        for i in range(per_operator):
            failed = i % 3 != 0 if n % 2 else i % 3 == 0
            entries.append(
                LogEntry(
                    operator=f"op{n}",
                    operation="ADD-ONT",
                    result=Result.FAILED if failed else Result.SUCCESSFUL,
                    timestamp=BASE + timedelta(minutes=5 * i + n),
                )
            )
    return entries


class TestBurstRouting:
    def test_below_threshold_routes_to_detect(self, monkeypatch):
        monkeypatch.setattr(graph_module, "BURST_THRESHOLD", 100)
        assert should_burst({"classified": _make_entries(2)}) == "detect"

    def test_at_threshold_routes_to_detect(self, monkeypatch):
        entries = _make_entries(2)
        monkeypatch.setattr(graph_module, "BURST_THRESHOLD", len(entries))
        assert should_burst({"classified": entries}) == "detect"

    def test_above_threshold_returns_sends(self, monkeypatch):
        monkeypatch.setattr(graph_module, "BURST_THRESHOLD", 10)
        monkeypatch.setattr(graph_module, "PARTITION_SIZE", 2)
        result = should_burst({"classified": _make_entries(5)})
        assert isinstance(result, list)
        assert all(isinstance(s, Send) for s in result)
        assert all(s.node == "detect_partition" for s in result)

    def test_partitions_are_operator_groups(self, monkeypatch):
        monkeypatch.setattr(graph_module, "BURST_THRESHOLD", 10)
        monkeypatch.setattr(graph_module, "PARTITION_SIZE", 2)
        result = should_burst({"classified": _make_entries(5)})
        assert len(result) == 3
        assert [s.arg["partition_index"] for s in result] == [0, 1, 2]
        assert [list(s.arg["groups"]) for s in result] == [["op0", "op1"], ["op2", "op3"], ["op4"]]
        assert all(len(entries) == 12 for s in result for entries in s.arg["groups"].values())


class TestMergePartitions:
    def test_reducer_merges_by_index(self):
        assert merge_partitions({0: ["a"]}, {2: ["c"]}) == {0: ["a"], 2: ["c"]}

    def test_reducer_handles_none(self):
        assert merge_partitions(None, {1: ["b"]}) == {1: ["b"]}
        assert merge_partitions({1: ["b"]}, None) == {1: ["b"]}


class TestBurstEquivalence:
    def test_burst_result_matches_single_pass(self, monkeypatch):
        entries = _make_entries(7)
        single = analyze(entries, generated_at=GENERATED_AT)

        monkeypatch.setattr(graph_module, "BURST_THRESHOLD", 10)
        monkeypatch.setattr(graph_module, "PARTITION_SIZE", 2)
        burst = analyze(entries, generated_at=GENERATED_AT)

        assert burst.anomalies
        assert [a.operator for a in burst.anomalies] == [a.operator for a in single.anomalies]
        assert burst.model_dump() == single.model_dump()

    def test_critical_operators_sort_first(self, monkeypatch):
        monkeypatch.setattr(graph_module, "BURST_THRESHOLD", 10)
        monkeypatch.setattr(graph_module, "PARTITION_SIZE", 1)
        analysis = analyze(_make_entries(4), generated_at=GENERATED_AT)
        assert [a.operator for a in analysis.anomalies if a.type.value == "HIGH_FAILURE_RATE"] == [
            "op1",
            "op3",
            "op0",
            "op2",
        ]
