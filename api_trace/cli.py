"""
Command-line interface for API call tracing.

Provides commands for viewing persisted traces and regenerating reports.
"""

import argparse
import json
import os
import sys
from typing import List, Optional

from api_trace.models import CallRecord
from api_trace.reporter import TraceReporter
from api_trace.storage import TraceStorage


DEFAULT_TRACE_FILE = os.path.join("test-reports", "api-traces.json")
DEFAULT_REPORT_FILE = os.path.join("test-reports", "api-trace-report.html")


def load_records(path: str) -> Optional[List[CallRecord]]:
    """
    Load a trace file for display, reporting problems on stderr.

    Args:
        path: Path to the JSON trace file

    Returns:
        List of records, or None if the file could not be used
    """
    if not os.path.exists(path):
        print(f"Error: File does not exist: {path}", file=sys.stderr)
        return None

    try:
        records = TraceStorage(path, create=False).load()
    except ValueError as e:
        print(f"Error loading trace file: {e}", file=sys.stderr)
        return None
    except OSError as e:
        print(f"Error reading trace file: {e}", file=sys.stderr)
        return None

    return records


def cmd_show(args) -> int:
    """Show traced calls."""
    records = load_records(args.file)
    if records is None:
        return 1

    print(f"Loaded {len(records)} API calls from {args.file}", file=sys.stderr)
    reporter = TraceReporter()

    if args.stats:
        print(reporter.format_statistics(records))
        print("")

    if args.format == "json":
        print(reporter.export_json(records, include_body=args.body))
    elif args.format == "csv":
        print(reporter.export_csv(records, include_body=args.body), end="")
    elif args.body:
        print(reporter.format_details(records))
    else:
        print(reporter.format_table(records))

    return 0


def cmd_stats(args) -> int:
    """Show statistics for a trace file."""
    records = load_records(args.file)
    if records is None:
        return 1

    reporter = TraceReporter()
    if args.json:
        print(json.dumps(reporter.analyzer.summarize(records), indent=2))
    else:
        print(reporter.format_statistics(records))

    return 0


def cmd_report(args) -> int:
    """Regenerate the HTML report from a trace file."""
    storage = TraceStorage(args.file)

    try:
        records = storage.load()
    except ValueError as e:
        print(f"Error loading trace file: {e}", file=sys.stderr)
        return 1

    print(f"Found {len(records)} API traces in {args.file}")
    written = storage.write_html(records, args.output, title=args.title)
    if written is None:
        return 1

    print(f"Report written to: {written}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="api-trace",
        description="View and report on HTTP API call traces captured during tests",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # show command
    show_parser = subparsers.add_parser("show", help="List traced calls")
    show_parser.add_argument(
        "file", nargs="?", default=DEFAULT_TRACE_FILE,
        help=f"Trace file (default: {DEFAULT_TRACE_FILE})",
    )
    show_parser.add_argument("-s", "--stats", action="store_true", help="Show statistics first")
    show_parser.add_argument("-b", "--body", action="store_true", help="Include request and response bodies")
    show_parser.add_argument(
        "-f", "--format", choices=["table", "json", "csv"], default="table",
        help="Output format (default: table)",
    )
    show_parser.set_defaults(func=cmd_show)

    # stats command
    stats_parser = subparsers.add_parser("stats", help="Show trace statistics")
    stats_parser.add_argument("file", nargs="?", default=DEFAULT_TRACE_FILE, help="Trace file")
    stats_parser.add_argument("--json", action="store_true", help="Print the summary as JSON")
    stats_parser.set_defaults(func=cmd_stats)

    # report command
    report_parser = subparsers.add_parser("report", help="Generate an HTML report from a trace file")
    report_parser.add_argument("file", nargs="?", default=DEFAULT_TRACE_FILE, help="Trace file")
    report_parser.add_argument(
        "-o", "--output", default=DEFAULT_REPORT_FILE,
        help=f"HTML output path (default: {DEFAULT_REPORT_FILE})",
    )
    report_parser.add_argument("--title", default="API Trace Report", help="Report title")
    report_parser.set_defaults(func=cmd_report)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
