"""Report Agent: compliance score, risks, recommendations and the executive summary.

Everything except the optional narrative enrichment is deterministic. The
enrichment only rewrites ``executive_summary`` and degrades to the synthesized
text on any failure.
"""

import json
import logging
import os
from datetime import datetime

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage, SystemMessage

from models.analysis import (
    Aggregates,
    ComprehensiveAnalysis,
    HourlyActivity,
    OperatorStats,
    Overview,
    Risk,
    ViolationSummary,
)
from models.anomaly import Anomaly, AnomalySeverity, AnomalyType
from models.context import GroupContext, OperatorContext
from models.log_entry import LogEntry
from pipeline.metrics import AgentTimer
from pipeline.security import extract_json, sanitize_log_line, validate_summary_output, wrap_user_data
from pipeline.state import AnalysisState
from rules.policy import OUTSIDE_WORKING_HOURS, RESTRICTED_OPERATION, UNAUTHORIZED_OPERATION

logger = logging.getLogger(__name__)

MODEL = os.getenv("NMS_AI_MODEL", "claude-haiku-4-5-20251001")

REPORT_TITLE = "NMS Operations Analysis Report"
VIOLATION_EXAMPLES = 5
HIGH_ANOMALIES_LISTED = 5
PROMPT_SAMPLE_SIZE = 20
NORMAL_OPERATION = "System operating within normal parameters. Continue monitoring."
EMPTY_RECOMMENDATION = "No log entries available. Upload logs to generate analysis."
EMPTY_SUMMARY = "No data available for analysis."

# Compliance deductions per distinct violation type.
VIOLATION_PENALTIES = {RESTRICTED_OPERATION: 30, UNAUTHORIZED_OPERATION: 20}
DEFAULT_VIOLATION_PENALTY = 10
MAX_FAILURE_PENALTY = 20.0

STATUS_MESSAGES = {
    "CRITICAL": "Immediate action required",
    "WARNING": "Review required",
    "ATTENTION": "Monitor closely",
    "NORMAL": "Operations within normal parameters",
}

SYSTEM_PROMPT = """You are an operations compliance analyst writing for telecom network management. Given the metrics, anomalies and violations from an NMS operation-log analysis, write a concise executive summary for management.

Respond with a JSON object:
{"summary": "Executive summary text, 2-4 short paragraphs"}

Guidelines:
- Lead with the overall status and the most severe findings
- Name operators and operations when they drive a finding
- Keep every number exactly as given; do not invent figures

IMPORTANT: Only output the JSON object, nothing else."""


def _plural(count: int, singular: str, plural: str | None = None) -> str:
    return singular if count == 1 else (plural or singular + "s")


def summarize_violations(entries: list[LogEntry]) -> list[ViolationSummary]:
    """Group violating entries by type; an entry with several types counts once per type."""
    summaries: dict[str, ViolationSummary] = {}
    for entry in entries:
        if not entry.is_violation:
            continue
        for vtype in entry.violation_types:
            summary = summaries.setdefault(vtype, ViolationSummary(type=vtype, count=0))
            summary.count += 1
            if len(summary.details) < VIOLATION_EXAMPLES:
                summary.details.append(f"{entry.operation} at {entry.timestamp:%Y-%m-%d %H:%M:%S}")
    return list(summaries.values())


def assess_risks(overview: Overview, violations: list[ViolationSummary]) -> list[Risk]:
    risks: list[Risk] = []
    rate = overview.failure_rate
    if rate > 20:
        risks.append(Risk(level="HIGH", description=f"High failure rate: {rate:.1f}% of operations failed"))
    elif rate > 10:
        risks.append(Risk(level="MEDIUM", description=f"Elevated failure rate: {rate:.1f}% of operations failed"))

    if overview.total_logs and overview.total_violations:
        violation_rate = overview.total_violations / overview.total_logs * 100
        if violation_rate > 5:
            risks.append(
                Risk(
                    level="HIGH",
                    description=f"High violation rate: {violation_rate:.1f}% of operations are violations",
                )
            )

    for v in violations:
        if v.type == RESTRICTED_OPERATION:
            risks.append(Risk(level="CRITICAL", description=f"{v.count} restricted operations were attempted"))
        elif v.type == OUTSIDE_WORKING_HOURS:
            risks.append(Risk(level="MEDIUM", description=f"{v.count} operations performed outside working hours"))
    return risks


def compliance_score(failure_rate: float, violations: list[ViolationSummary]) -> int:
    """100, minus the failure rate (at most 20 points), minus a weight per violation type."""
    score = 100.0 - min(MAX_FAILURE_PENALTY, failure_rate)
    for v in violations:
        score -= VIOLATION_PENALTIES.get(v.type, DEFAULT_VIOLATION_PENALTY)
    return round(max(0.0, min(100.0, score)))


def _operator_names(stats: list[OperatorStats], limit: int = 5) -> str:
    names = [s.username for s in stats[:limit]]
    if len(stats) > limit:
        names.append(f"+{len(stats) - limit} more")
    return ", ".join(names)


def _operators_with(anomalies: list[Anomaly], anomaly_type: AnomalyType) -> list[str]:
    return list(dict.fromkeys(a.operator for a in anomalies if a.type == anomaly_type))


def build_recommendations(
    overview: Overview,
    anomalies: list[Anomaly],
    operator_stats: list[OperatorStats],
) -> list[str]:
    """Rule-based recommendations, most severe first."""
    recommendations: list[str] = []

    critical = [a for a in anomalies if a.severity == AnomalySeverity.CRITICAL]
    if critical:
        recommendations.append(
            f"{len(critical)} critical {_plural(len(critical), 'anomaly', 'anomalies')} detected. "
            "Immediate investigation required."
        )
    high = [a for a in anomalies if a.severity == AnomalySeverity.HIGH]
    if high:
        recommendations.append(
            f"{len(high)} high-severity {_plural(len(high), 'anomaly', 'anomalies')} detected. "
            "Review the affected operators within 24 hours."
        )

    rate = overview.failure_rate
    if rate > 30:
        recommendations.append(
            f"Critical failure rate ({rate:.1f}%). Suspend non-essential changes and investigate "
            "system configuration immediately."
        )
    elif rate > 20:
        recommendations.append(f"High failure rate ({rate:.1f}%). Review operator training and system configuration.")
    elif rate > 10:
        recommendations.append(f"Elevated failure rate ({rate:.1f}%). Monitor the most frequent errors closely.")
    elif rate > 5:
        recommendations.append(f"Failure rate of {rate:.1f}% is above baseline. Review the top errors.")

    violations = overview.total_violations
    if violations > 10:
        recommendations.append(
            f"{violations} policy violations detected. Conduct a full audit of operator permissions."
        )
    elif violations > 3:
        recommendations.append(
            f"{violations} policy violations detected. Review access policies with the operators involved."
        )
    elif violations > 0:
        recommendations.append(
            f"{violations} policy {_plural(violations, 'violation')} detected. Verify that each was authorized."
        )

    low_performers = [s for s in operator_stats if s.success_rate < 70 and s.total_operations >= 10]
    if low_performers:
        recommendations.append(
            f"{len(low_performers)} {_plural(len(low_performers), 'operator')} below 70% success rate "
            f"({_operator_names(low_performers)}). Consider additional training."
        )

    violators = [s for s in operator_stats if s.violations > 3]
    if violators:
        recommendations.append(
            f"{len(violators)} {_plural(len(violators), 'operator')} with more than 3 violations "
            f"({_operator_names(violators)}). Review their permissions."
        )

    off_hours = _operators_with(anomalies, AnomalyType.UNUSUAL_HOURS)
    if off_hours:
        recommendations.append(
            f"After-hours activity detected for {len(off_hours)} {_plural(len(off_hours), 'operator')}. "
            "Verify authorization."
        )
    rapid = _operators_with(anomalies, AnomalyType.RAPID_OPERATIONS)
    if rapid:
        recommendations.append(
            f"Rapid operation bursts detected for {len(rapid)} {_plural(len(rapid), 'operator')}. "
            "Check for scripted or shared-account access."
        )

    repeated = _operators_with(anomalies, AnomalyType.REPEATED_FAILURES)
    if repeated:
        recommendations.append(
            f"Repeated failures of the same operation by {len(repeated)} {_plural(len(repeated), 'operator')}. "
            "Investigate the failing operations and their error codes."
        )

    if not recommendations:
        message = NORMAL_OPERATION
        top = top_performer(operator_stats)
        if top is not None:
            message += (
                f" Top performer: {top.full_name or top.username} "
                f"({top.success_rate:.1f}% success over {top.total_operations} operations)."
            )
        recommendations.append(message)

    return recommendations


def top_performer(operator_stats: list[OperatorStats]) -> OperatorStats | None:
    candidates = [s for s in operator_stats if s.success_rate >= 95 and s.total_operations >= 10]
    if not candidates:
        return None
    return max(candidates, key=lambda s: s.success_rate)


def overall_status(anomalies: list[Anomaly], total_violations: int, failure_rate: float) -> str:
    if any(a.severity == AnomalySeverity.CRITICAL for a in anomalies):
        return "CRITICAL"
    if any(a.severity == AnomalySeverity.HIGH for a in anomalies) or total_violations > 3:
        return "WARNING"
    if failure_rate > 10:
        return "ATTENTION"
    return "NORMAL"


def build_executive_summary(
    aggregates: Aggregates,
    anomalies: list[Anomaly],
    violations: list[ViolationSummary],
    score: int,
    generated_at: datetime,
    date_range_label: str = "",
    operator: OperatorContext | None = None,
    group: GroupContext | None = None,
) -> str:
    overview = aggregates.overview
    if date_range_label:
        period = date_range_label
    elif overview.date_range:
        period = f"{overview.date_range.start:%Y-%m-%d} - {overview.date_range.end:%Y-%m-%d}"
    else:
        period = "N/A"

    lines = [
        REPORT_TITLE,
        f"Period: {period}",
        f"Generated: {generated_at:%Y-%m-%d %H:%M:%S}",
        "",
        "KEY METRICS",
        f"Total Operations: {overview.total_logs:,}",
        f"Active Operators: {overview.unique_operators}",
        f"Unique Operations: {overview.unique_operations}",
        f"Success Rate: {overview.success_rate:.1f}%",
        f"Failure Rate: {overview.failure_rate:.1f}%",
        f"Violations Detected: {overview.total_violations}",
        f"Compliance Score: {score}%",
        "",
        "ANOMALIES",
        " | ".join(
            f"{severity.value.title()}: {sum(1 for a in anomalies if a.severity == severity)}"
            for severity in (
                AnomalySeverity.CRITICAL,
                AnomalySeverity.HIGH,
                AnomalySeverity.MEDIUM,
                AnomalySeverity.LOW,
            )
        ),
    ]

    critical = [a for a in anomalies if a.severity == AnomalySeverity.CRITICAL]
    if critical:
        lines += ["", "CRITICAL ANOMALIES"]
        lines += [f"- {a.description}" for a in critical]

    high = [a for a in anomalies if a.severity == AnomalySeverity.HIGH]
    if high:
        lines += ["", "HIGH ANOMALIES"]
        lines += [f"- {a.description}" for a in high[:HIGH_ANOMALIES_LISTED]]
        if len(high) > HIGH_ANOMALIES_LISTED:
            lines.append(f"... and {len(high) - HIGH_ANOMALIES_LISTED} more")

    if violations:
        lines += ["", "VIOLATIONS"]
        lines += [f"- {v.type}: {v.count}" for v in violations]

    context = []
    if operator is not None:
        context.append(f"Operator: {operator.display_name}")
    if group is not None:
        context.append(f"Group: {group.name}")
        if group.job_description:
            context.append(f"Job Description: {group.job_description}")
    if context:
        lines += [""] + context

    status = overall_status(anomalies, overview.total_violations, overview.failure_rate)
    lines += ["", f"OVERALL STATUS: {status} - {STATUS_MESSAGES[status]}"]
    return "\n".join(lines)


def empty_analysis(
    date_range_label: str = "",
    operator: OperatorContext | None = None,
    group: GroupContext | None = None,
    generated_at: datetime | None = None,
) -> ComprehensiveAnalysis:
    """The well-defined result for zero entries."""
    return ComprehensiveAnalysis(
        overview=Overview(),
        hourly_activity=[HourlyActivity(hour=h) for h in range(24)],
        compliance_score=100,
        recommendations=[EMPTY_RECOMMENDATION],
        executive_summary=EMPTY_SUMMARY,
        date_range_label=date_range_label,
        operator=operator.username if operator else None,
        group=group.name if group else None,
        generated_at=generated_at or datetime.now(),
    )


def _format_entries_for_prompt(entries: list[LogEntry]) -> str:
    samples = []
    for entry in [e for e in entries if e.is_violation or e.is_failure][:PROMPT_SAMPLE_SIZE]:
        details = sanitize_log_line((entry.details or "")[:150])
        samples.append(
            f"{entry.timestamp:%Y-%m-%d %H:%M:%S} | {sanitize_log_line(entry.operator)} | "
            f"{sanitize_log_line(entry.operation)} | {entry.result.value} | {details}"
        )
    return "\n".join(samples)


def enrich_summary(analysis: ComprehensiveAnalysis, entries: list[LogEntry]) -> tuple[str, dict] | None:
    """Ask Claude for a narrative summary. Returns (summary, metrics) or None on failure."""
    facts = {
        "overview": analysis.overview.model_dump(mode="json"),
        "compliance_score": analysis.compliance_score,
        "anomalies": [a.description for a in analysis.anomalies[:20]],
        "violations": [{"type": v.type, "count": v.count} for v in analysis.violations],
        "risks": [r.model_dump() for r in analysis.risks],
        "recommendations": analysis.recommendations,
    }
    try:
        llm = ChatAnthropic(
            model=MODEL,
            temperature=0.3,
            max_tokens=1024,
        )

        with AgentTimer("report", MODEL) as timer:
            response = llm.invoke([
                SystemMessage(content=SYSTEM_PROMPT),
                HumanMessage(
                    content=(
                        f"Write the executive summary for this NMS operation-log analysis.\n\n"
                        f"## Deterministic Summary\n{analysis.executive_summary}\n\n"
                        f"## Findings\n{json.dumps(facts, indent=2, default=str)}\n\n"
                        f"## Sample Violations and Failures\n"
                        f"{wrap_user_data(_format_entries_for_prompt(entries))}"
                    )
                ),
            ])
            timer.record_usage(response)

        raw_content = response.content if isinstance(response.content, str) else str(response.content)
        summary = validate_summary_output(json.loads(extract_json(raw_content)))
        if summary is None:
            logger.warning("AI summary response had no usable summary, keeping synthesized text")
            return None
        return summary, timer.metrics
    except Exception as e:
        logger.warning("AI summary generation failed, keeping synthesized text: %s", e)
        return None


def run_report(state: AnalysisState) -> dict:
    """Synthesize the ComprehensiveAnalysis from aggregates and anomalies."""
    entries = state.get("classified", [])
    aggregates = state["aggregates"]
    anomalies = state.get("anomalies", [])
    operator = state.get("operator")
    group = state.get("group")
    generated_at = state.get("generated_at") or datetime.now()
    label = state.get("date_range_label", "")

    violations = summarize_violations(entries)
    score = compliance_score(aggregates.overview.failure_rate, violations)
    analysis = ComprehensiveAnalysis(
        **dict(aggregates),
        anomalies=anomalies,
        violations=violations,
        risks=assess_risks(aggregates.overview, violations),
        compliance_score=score,
        recommendations=build_recommendations(aggregates.overview, anomalies, aggregates.operator_stats),
        executive_summary=build_executive_summary(
            aggregates, anomalies, violations, score, generated_at, label, operator, group
        ),
        date_range_label=label,
        operator=operator.username if operator else None,
        group=group.name if group else None,
        generated_at=generated_at,
    )

    agent_metrics = dict(state.get("agent_metrics") or {})
    if state.get("enable_ai") and os.getenv("ANTHROPIC_API_KEY"):
        enriched = enrich_summary(analysis, entries)
        if enriched is not None:
            summary, metrics = enriched
            analysis = analysis.model_copy(update={"executive_summary": summary, "ai_enriched": True})
            agent_metrics["report"] = metrics

    return {"analysis": analysis, "agent_metrics": agent_metrics}
