"""Render a ComprehensiveAnalysis as a self-contained HTML document."""

from html import escape

from models.analysis import ComprehensiveAnalysis

MAX_OPERATORS = 10
MAX_ANOMALIES = 20
MAX_ERRORS = 10

_STYLE = """
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; margin: 0; padding: 20px; background: #f5f5f5; }
    .container { max-width: 1200px; margin: 0 auto; }
    .card { background: white; border-radius: 8px; padding: 20px; margin-bottom: 20px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
    h1 { color: #1a1a2e; margin-bottom: 10px; }
    h2 { color: #16213e; border-bottom: 2px solid #0f3460; padding-bottom: 10px; }
    .summary { white-space: pre-line; background: #f8f9fa; padding: 15px; border-radius: 4px; }
    .stats-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 15px; margin-bottom: 20px; }
    .stat-card { background: #3f51b5; color: white; padding: 20px; border-radius: 8px; text-align: center; }
    .stat-value { font-size: 2em; font-weight: bold; }
    .stat-label { opacity: 0.9; margin-top: 5px; }
    .success { background: #2e7d32; }
    .danger { background: #c62828; }
    .warning { background: #ef6c00; }
    .recommendation { padding: 10px; margin: 5px 0; background: #e3f2fd; border-left: 4px solid #2196f3; }
    table { width: 100%; border-collapse: collapse; margin-top: 15px; }
    th, td { padding: 12px; text-align: left; border-bottom: 1px solid #ddd; }
    th { background: #f8f9fa; font-weight: 600; }
    .badge { padding: 4px 8px; border-radius: 4px; font-size: 0.85em; font-weight: 500; }
    .badge-critical { background: #fee2e2; color: #991b1b; }
    .badge-high { background: #fed7aa; color: #9a3412; }
    .badge-medium { background: #fef3c7; color: #92400e; }
    .badge-low { background: #d1fae5; color: #065f46; }
"""


def _stat_card(value: str, label: str, css_class: str = "") -> str:
    classes = f"stat-card {css_class}".strip()
    return (
        f'<div class="{classes}"><div class="stat-value">{escape(value)}</div>'
        f'<div class="stat-label">{escape(label)}</div></div>'
    )


def _table(headers: list[str], rows: list[list[str]]) -> str:
    """Build a table; cells are escaped here unless already marked up by the caller."""
    head = "".join(f"<th>{escape(h)}</th>" for h in headers)
    if not rows:
        body = f'<tr><td colspan="{len(headers)}">None</td></tr>'
    else:
        body = "".join("<tr>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>" for row in rows)
    return f"<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"


def _card(title: str, content: str) -> str:
    return f'<div class="card"><h2>{escape(title)}</h2>{content}</div>'


def render_html(analysis: ComprehensiveAnalysis, system_name: str | None = None) -> str:
    """Render ``analysis`` to a standalone HTML string.

    Every piece of dynamic text is HTML-escaped. The total-operation and
    violation counts are printed as plain decimal numbers.
    """
    title = f"{system_name} - Log Analysis Report" if system_name else "NMS Log Analysis Report"
    overview = analysis.overview
    perf = analysis.performance_metrics

    stats = "".join([
        _stat_card(str(overview.total_logs), "Total Operations"),
        _stat_card(f"{overview.success_rate:.1f}%", "Success Rate", "success"),
        _stat_card(f"{overview.failure_rate:.1f}%", "Failure Rate", "danger"),
        _stat_card(str(overview.total_violations), "Violations", "warning"),
        _stat_card(f"{analysis.compliance_score}%", "Compliance Score"),
    ])

    performance = (
        '<div class="stats-grid">'
        f"<div><strong>Peak Hour:</strong> {perf.peak_hour}:00</div>"
        f"<div><strong>Peak Day:</strong> {escape(perf.peak_day or 'N/A')}</div>"
        f"<div><strong>Avg Operations/Day:</strong> {perf.avg_operations_per_day:g}</div>"
        f"<div><strong>Avg Operations/Operator:</strong> {perf.avg_operations_per_operator:g}</div>"
        f"<div><strong>Operator Efficiency:</strong> {perf.operator_efficiency:g}%</div>"
        "</div>"
    )

    recommendations = "".join(
        f'<div class="recommendation">{escape(r)}</div>' for r in analysis.recommendations
    )

    operators = _table(
        ["Operator", "Total Ops", "Success Rate", "Violations"],
        [
            [
                escape(op.full_name or op.username),
                str(op.total_operations),
                f"{op.success_rate:.1f}%",
                str(op.violations),
            ]
            for op in analysis.operator_stats[:MAX_OPERATORS]
        ],
    )

    anomalies = _table(
        ["Severity", "Type", "Description", "Operator"],
        [
            [
                f'<span class="badge badge-{a.severity.value.lower()}">{escape(a.severity.value)}</span>',
                escape(a.type.value),
                escape(a.description),
                escape(a.operator),
            ]
            for a in analysis.anomalies[:MAX_ANOMALIES]
        ],
    )

    violations = _table(
        ["Type", "Count", "Examples"],
        [
            [escape(v.type), str(v.count), escape("; ".join(v.details))]
            for v in analysis.violations
        ],
    )

    errors = _table(
        ["Error", "Count", "Affected Operations"],
        [
            [escape(e.error), str(e.count), escape(", ".join(e.operations))]
            for e in analysis.top_errors[:MAX_ERRORS]
        ],
    )

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape(title)}</title>
  <style>{_STYLE}</style>
</head>
<body>
  <div class="container">
    <div class="card">
      <h1>{escape(title)}</h1>
      <p>Generated: {analysis.generated_at:%Y-%m-%d %H:%M:%S}</p>
    </div>
    {_card("Executive Summary", f'<div class="summary">{escape(analysis.executive_summary)}</div>')}
    <div class="stats-grid">{stats}</div>
    {_card("Performance Metrics", performance)}
    {_card("Recommendations", recommendations)}
    {_card("Top Operators", operators)}
    {_card("Anomalies Detected", anomalies)}
    {_card("Violations", violations)}
    {_card("Top Errors", errors)}
  </div>
</body>
</html>
"""
