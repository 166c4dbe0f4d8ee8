"""Classify Agent: rule-based violation tagging plus group access policy."""

from models.log_entry import LogEntry
from pipeline.state import AnalysisState
from rules.policy import check_policy
from rules.violations import annotate


def classify_entries(entries: list[LogEntry], group=None) -> list[LogEntry]:
    """Annotate every entry once; entries classified upstream are kept as-is."""
    return [annotate(entry, check_policy(entry, group)) for entry in entries]


def run_classify(state: AnalysisState) -> dict:
    """Classify all input entries. Deterministic, no API calls."""
    entries = state.get("entries", [])
    return {"classified": classify_entries(entries, state.get("group"))}
