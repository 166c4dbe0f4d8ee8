"""CLI entry point for the NMS operation-log auditor."""

import argparse
import logging
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

from models.analysis import ComprehensiveAnalysis
from models.log_entry import LogEntry
from parsers import LogFormat, parse
from pipeline.graph import analyze
from pipeline.html_report import render_html
from pipeline.syslog_receiver import SyslogReceiver
from pipeline.watcher import LogWatcher

logger = logging.getLogger("nms_auditor")


def detect_format(path: Path, text: str) -> LogFormat:
    """Guess the input format from the extension and, for CSV, the header row."""
    suffix = path.suffix.lower()
    if suffix == ".json":
        return LogFormat.JSON
    if suffix == ".csv":
        header = text.lstrip("\ufeff").split("\n", 1)[0].lower()
        return LogFormat.NMS_CSV if "operation" in header else LogFormat.CSV
    return LogFormat.SYSLOG


def format_report(analysis: ComprehensiveAnalysis) -> str:
    """Format a ComprehensiveAnalysis as readable text."""
    lines = []
    lines.append("=" * 70)
    lines.append("  NMS OPERATIONS ANALYSIS")
    lines.append("=" * 70)
    lines.append("")

    lines.append("EXECUTIVE SUMMARY")
    lines.append("-" * 40)
    lines.append(analysis.executive_summary)
    lines.append("")

    # Risks
    if analysis.risks:
        lines.append("RISKS")
        lines.append("-" * 40)
        for risk in analysis.risks:
            lines.append(f"  [{risk.level}] {risk.description}")
        lines.append("")

    # Operators
    if analysis.operator_stats:
        lines.append("TOP OPERATORS")
        lines.append("-" * 40)
        for op in analysis.operator_stats[:10]:
            lines.append(
                f"  {op.username:20s} {op.total_operations:6d} ops  "
                f"{op.success_rate:5.1f}% ok  {op.violations} violations"
            )
        lines.append("")

    # Anomalies
    if analysis.anomalies:
        lines.append("ANOMALIES")
        lines.append("-" * 40)
        for anomaly in analysis.anomalies:
            lines.append(f"  [{anomaly.severity.value}] {anomaly.description}")
        lines.append("")

    # Errors
    if analysis.top_errors:
        lines.append("TOP ERRORS")
        lines.append("-" * 40)
        for error in analysis.top_errors[:10]:
            lines.append(f"  {error.count:5d}  {error.error}  ({', '.join(error.operations)})")
        lines.append("")

    lines.append("RECOMMENDATIONS")
    lines.append("-" * 40)
    for i, rec in enumerate(analysis.recommendations, 1):
        lines.append(f"  {i}. {rec}")
    lines.append("")

    lines.append("=" * 70)
    lines.append(f"  Compliance score: {analysis.compliance_score}%")
    lines.append(f"  Generated: {analysis.generated_at.strftime('%Y-%m-%d %H:%M:%S')}")
    if analysis.ai_enriched:
        lines.append("  Summary: AI-enriched")
    lines.append("=" * 70)
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Audit telecom NMS operation logs for violations and anomalies.",
    )
    parser.add_argument("file", nargs="?", help="Log file to analyze (CSV, JSON or syslog lines)")
    parser.add_argument("--format", choices=[f.value for f in LogFormat], help="Input format (default: detect)")
    parser.add_argument("--label", default="", help="Period label shown in the report")
    parser.add_argument("--html", metavar="OUT", help="Also write an HTML report to OUT")
    parser.add_argument("--json", action="store_true", help="Print the analysis as JSON")
    parser.add_argument("--ai", action="store_true", help="Enrich the summary with Claude (needs ANTHROPIC_API_KEY)")
    parser.add_argument("--details", action="store_true", help="Include recent violations and failures per operator")
    parser.add_argument("--watch", metavar="DIR", help="Re-analyze exports as they appear in DIR")
    parser.add_argument("--listen", metavar="PORT", type=int, help="Receive syslog on UDP PORT and print entries")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def run_file(path: Path, args: argparse.Namespace) -> ComprehensiveAnalysis:
    text = path.read_text(encoding="utf-8", errors="replace")
    fmt = LogFormat(args.format) if args.format else detect_format(path, text)
    entries = parse(text, fmt)
    print(f"\nAnalyzing {len(entries)} {fmt.value} entries from {path.name}...\n")

    start = time.time()
    analysis = analyze(
        entries,
        date_range_label=args.label,
        include_details=args.details,
        enable_ai=args.ai,
    )
    print(f"Analysis completed in {time.time() - start:.2f}s\n")

    if args.json:
        print(analysis.model_dump_json(indent=2))
    else:
        print(format_report(analysis))

    if args.html:
        Path(args.html).write_text(render_html(analysis, system_name=args.label or None), encoding="utf-8")
        print(f"\nHTML report written to {args.html}")
    return analysis


def _print_entry(entry: LogEntry) -> None:
    flag = f" VIOLATION[{entry.violation_type}]" if entry.is_violation else ""
    print(
        f"{entry.timestamp:%Y-%m-%d %H:%M:%S} {entry.level.value:8s} {entry.operator} "
        f"{entry.operation} {entry.result.value}{flag}"
    )


def _wait_forever() -> None:
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nStopping...")


def cli():
    """Run the auditor from command line."""
    load_dotenv()
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.listen is not None:
        receiver = SyslogReceiver(sink=_print_entry, port=args.listen)
        receiver.start()
        _wait_forever()
        receiver.stop()
        return

    if args.watch:
        def on_export(path: str) -> None:
            try:
                run_file(Path(path), args)
            except OSError as e:
                logger.warning("Failed to read %s: %s", path, e)

        watcher = LogWatcher(args.watch, on_export)
        watcher.start()
        print(f"Watching {args.watch} for log exports (Ctrl+C to stop)...")
        _wait_forever()
        watcher.stop()
        return

    if not args.file:
        build_parser().print_usage()
        sys.exit(1)

    path = Path(args.file)
    if not path.is_file():
        print(f"Error: File not found: {path}")
        sys.exit(1)

    run_file(path, args)


if __name__ == "__main__":
    cli()
