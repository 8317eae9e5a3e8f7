"""
Report generation for API call tracing.

Renders call records as a standalone HTML report and as text views for
the command line.
"""

import csv
import io
import json
from datetime import datetime
from html import escape
from typing import Any, Dict, List, Optional

from api_trace.analyzer import TraceAnalyzer
from api_trace.models import CallRecord, StatusClass, classify_status
from api_trace.utils import (
    anchor_id,
    format_duration,
    json_default,
    safe_json_dumps,
    truncate_string,
)


NO_CALLS_MESSAGE = "No API calls were traced."

_STYLE = """
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Oxygen, Ubuntu, sans-serif;
            line-height: 1.6;
            color: #333;
            margin: 0;
            padding: 20px;
            background-color: #f5f5f5;
        }
        .container {
            max-width: 1200px;
            margin: 0 auto;
            background-color: #fff;
            padding: 20px;
            border-radius: 5px;
            box-shadow: 0 2px 4px rgba(0,0,0,0.1);
        }
        h1 { color: #2c3e50; border-bottom: 2px solid #3498db; padding-bottom: 10px; }
        h2 { color: #2c3e50; margin-top: 30px; padding-bottom: 8px; border-bottom: 1px solid #ddd; }
        .summary {
            margin-bottom: 20px;
            padding: 15px;
            background-color: #e9ecef;
            border-radius: 4px;
        }
        .stat-grid {
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(130px, 1fr));
            gap: 10px;
            margin-top: 10px;
        }
        .stat-box { background: #f8f9fa; padding: 10px; border-radius: 4px; text-align: center; }
        .stat-value { font-size: 1.3em; font-weight: bold; }
        .stat-label { color: #666; font-size: 0.85em; }
        .two-columns { display: grid; grid-template-columns: 1fr 3fr; gap: 20px; }
        .menu {
            position: sticky;
            top: 10px;
            max-height: calc(100vh - 40px);
            overflow-y: auto;
            padding: 15px;
            border-radius: 4px;
            box-shadow: 0 2px 4px rgba(0,0,0,0.1);
        }
        .menu ul { list-style-type: none; padding: 0; margin: 0; }
        .menu li { margin-bottom: 8px; }
        .menu a { color: #3498db; text-decoration: none; }
        .menu a:hover { text-decoration: underline; }
        .test-name {
            background-color: #f8f9fa;
            padding: 10px;
            border-radius: 4px;
            border-left: 4px solid #3498db;
        }
        .api-call { border: 1px solid #ddd; border-radius: 4px; margin-bottom: 15px; }
        .api-call-header {
            display: flex;
            justify-content: space-between;
            background-color: #e9ecef;
            padding: 8px 15px;
            cursor: pointer;
            user-select: none;
        }
        .api-call-method { font-weight: bold; margin-right: 10px; }
        .method-GET { color: #28a745; }
        .method-POST { color: #007bff; }
        .method-PUT, .method-PATCH { color: #fd7e14; }
        .method-DELETE { color: #dc3545; }
        .status-success { color: #28a745; }
        .status-redirect { color: #fd7e14; }
        .status-informational { color: #6c757d; }
        .status-client-error, .status-server-error, .status-no-response { color: #dc3545; }
        .api-call-details { display: none; padding: 15px; border-top: 1px solid #ddd; }
        .api-call.active .api-call-details { display: block; }
        .detail-section h4 { margin-bottom: 5px; color: #555; }
        pre {
            background-color: #f8f9fa;
            padding: 10px;
            border-radius: 4px;
            overflow: auto;
            margin: 0;
        }
        .empty { padding: 40px; text-align: center; color: #666; }
"""

_SCRIPT = """
        document.querySelectorAll('.api-call-header').forEach(function (header) {
            header.addEventListener('click', function () {
                header.parentElement.classList.toggle('active');
            });
        });
"""


class TraceReporter:
    """Generates formatted reports from call records."""

    def __init__(self, analyzer: Optional[TraceAnalyzer] = None):
        """
        Initialize the reporter.

        Args:
            analyzer: Optional TraceAnalyzer instance
        """
        self.analyzer = analyzer or TraceAnalyzer()

    # ------------------------------------------------------------------
    # HTML
    # ------------------------------------------------------------------

    def generate_html_report(
        self,
        records: List[CallRecord],
        title: str = "API Trace Report"
    ) -> str:
        """
        Generate a self-contained HTML report.

        The document has inline CSS and JavaScript only, so it can be opened
        straight from disk. Each call is a collapsible panel; clicking its
        header toggles the details.

        Args:
            records: Records to render
            title: Document title and heading

        Returns:
            HTML string
        """
        generated = datetime.now().strftime('%Y-%m-%d %H:%M:%S')

        if not records:
            body = f"""        <div class="summary">
            <p><strong>Generated:</strong> {generated}</p>
            <p><strong>Total API Calls:</strong> 0</p>
        </div>
        <div class="empty">{NO_CALLS_MESSAGE}</div>
"""
            return self._html_document(title, body)

        groups = self.analyzer.group_by_test(records)
        stats = self.analyzer.compute_stats(records)

        parts = [f"""        <div class="summary">
            <p><strong>Generated:</strong> {generated}</p>
            <p><strong>Total API Calls:</strong> {stats.total_calls}</p>
            <p><strong>Tests:</strong> {len(groups)}</p>
            <p><strong>Average Duration:</strong> {stats.avg_duration_ms}ms</p>
            <p><strong>Success Rate:</strong> {stats.success_rate:.1f}%</p>
            <div class="stat-grid">
"""]

        for method, count in stats.method_counts.items():
            parts.append(self._stat_box(str(count), method, f"method-{method}"))
        for status_class in StatusClass:
            bucket = status_class.bucket
            if bucket in stats.status_counts:
                css = f"status-{status_class.value}"
                parts.append(self._stat_box(str(stats.status_counts[bucket]), bucket, css))

        parts.append("""            </div>
        </div>

        <div class="two-columns">
            <div class="menu">
                <h3>Tests</h3>
                <ul>
""")
        for label in groups:
            parts.append(
                f'                    <li><a href="#{escape(anchor_id(label))}">{escape(label)}</a>'
                f' ({len(groups[label])})</li>\n'
            )
        parts.append("""                </ul>
            </div>

            <div class="content">
""")

        index = 0
        for label, calls in groups.items():
            parts.append(
                f'                <div class="test-group">\n'
                f'                    <h2 id="{escape(anchor_id(label))}" class="test-name">{escape(label)}</h2>\n'
            )
            for record in calls:
                parts.append(self._render_call(record, index))
                index += 1
            parts.append("                </div>\n")

        parts.append("""            </div>
        </div>
""")
        return self._html_document(title, "".join(parts))

    def _html_document(self, title: str, body: str) -> str:
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{escape(title)}</title>
    <style>{_STYLE}    </style>
</head>
<body>
    <div class="container">
        <h1>{escape(title)}</h1>
{body}    </div>
    <script>{_SCRIPT}    </script>
</body>
</html>
"""

    @staticmethod
    def _stat_box(value: str, label: str, css_class: str = "") -> str:
        return f"""                <div class="stat-box">
                    <div class="stat-value {css_class}">{escape(value)}</div>
                    <div class="stat-label">{escape(label)}</div>
                </div>
"""

    def _render_call(self, record: CallRecord, index: int) -> str:
        """Render one collapsible call panel."""
        status_class = classify_status(record.status)
        status_text = "ERROR" if status_class == StatusClass.NO_RESPONSE else str(record.status)
        method = escape(record.request.method)

        sections = [
            ("Request", record.request.to_dict()),
            ("Response", record.response.to_dict() if record.response else None),
        ]
        if record.error is not None:
            sections.append(("Error", record.error.to_dict()))
        sections.append(("Timestamp", record.timestamp))

        details = "".join(
            f"""                            <div class="detail-section">
                                <h4>{name}</h4>
                                <pre>{escape(safe_json_dumps(value))}</pre>
                            </div>
"""
            for name, value in sections
        )

        return f"""                    <div class="api-call" data-call-id="{index}">
                        <div class="api-call-header">
                            <span>
                                <span class="api-call-method method-{method}">{method}</span>
                                <span class="api-call-url">{escape(record.request.url)}</span>
                            </span>
                            <span class="api-call-status status-{status_class.value}">{status_text} ({record.duration_ms}ms)</span>
                        </div>
                        <div class="api-call-details">
{details}                        </div>
                    </div>
"""

    # ------------------------------------------------------------------
    # Text views
    # ------------------------------------------------------------------

    def format_statistics(self, records: List[CallRecord]) -> str:
        """
        Format call statistics for the terminal.

        Args:
            records: Records to summarize

        Returns:
            Formatted statistics string
        """
        if not records:
            return NO_CALLS_MESSAGE

        stats = self.analyzer.compute_stats(records)

        lines = ["API Call Statistics:", "-------------------", "", "HTTP Methods:"]
        for method, count in sorted(stats.method_counts.items(), key=lambda x: x[1], reverse=True):
            lines.append(f"  {method}: {count} calls")

        lines.extend(["", "Status Codes:"])
        for bucket, count in sorted(stats.status_counts.items(), key=lambda x: x[1], reverse=True):
            lines.append(f"  {bucket}: {count} calls")
        lines.append(f"  Success rate: {stats.success_rate:.1f}%")

        lines.extend([
            "",
            "Timing:",
            f"  Total time: {stats.total_duration_ms}ms",
            f"  Average time: {stats.avg_duration_ms}ms",
            f"  Max time: {stats.max_duration_ms}ms",
            f"  Min time: {stats.min_duration_ms}ms",
            "",
            "Top 5 Endpoints by Avg Time:",
        ])
        for ep in self.analyzer.endpoint_stats(records, limit=5):
            lines.append(f"  {ep.endpoint}: {ep.avg_duration_ms}ms avg ({ep.call_count} calls)")

        lines.extend(["", "Test Coverage:"])
        for label, count in self.analyzer.test_call_counts(records).items():
            lines.append(f"  {label}: {count} calls")

        return "\n".join(lines)

    def format_table(self, records: List[CallRecord]) -> str:
        """
        Format records as a fixed-width table.

        Args:
            records: Records to list

        Returns:
            Formatted table string
        """
        if not records:
            return NO_CALLS_MESSAGE

        rule = "-" * 100
        lines = [
            "API Calls:",
            rule,
            f"| {'Method':<7} | {'URL':<30} | {'Status':<6} | {'Time':>9} | Test",
            rule,
        ]
        for record in records:
            status = record.status if record.status is not None else "N/A"
            test = record.test.name if record.test else "unassociated"
            lines.append(
                f"| {record.request.method:<7} | {truncate_string(record.request.url, 30):<30} | "
                f"{str(status):<6} | {format_duration(record.duration_ms):>9} | {test}"
            )
        lines.append(rule)
        return "\n".join(lines)

    def format_details(self, records: List[CallRecord]) -> str:
        """
        Format every record with its request and response bodies.

        Args:
            records: Records to list

        Returns:
            Formatted detail string
        """
        if not records:
            return NO_CALLS_MESSAGE

        blocks = []
        for i, record in enumerate(records, start=1):
            status = record.status if record.status is not None else "N/A"
            request_body = safe_json_dumps(record.request.body).replace("\n", "\n  ")
            response_body = safe_json_dumps(
                record.response.body if record.response else None
            ).replace("\n", "\n  ")
            lines = [
                f"API Call #{i}:",
                f"  Method:   {record.request.method}",
                f"  URL:      {record.request.url}",
                f"  Status:   {status}",
                f"  Duration: {record.duration_ms}ms",
                f"  Test:     {record.test.label if record.test else 'unassociated'}",
                f"  Time:     {record.timestamp or 'unknown'}",
                "",
                "  Request Body:",
                f"  {request_body}",
                "",
                "  Response Body:",
                f"  {response_body}",
            ]
            if record.error is not None:
                lines.extend(["", f"  Error: {record.error.message}"])
            lines.append("-" * 80)
            blocks.append("\n".join(lines))

        return "\n".join(blocks)

    def _flat_row(self, record: CallRecord, include_body: bool) -> Dict[str, Any]:
        row = {
            "method": record.request.method,
            "url": record.request.url,
            "status": record.status,
            "duration_ms": record.duration_ms,
            "test": record.test.label if record.test else None,
            "timestamp": record.timestamp,
        }
        if include_body:
            row["request_body"] = record.request.body
            row["response_body"] = record.response.body if record.response else None
        return row

    def export_json(self, records: List[CallRecord], include_body: bool = False) -> str:
        """
        Export a flattened view of the records as JSON.

        Args:
            records: Records to export
            include_body: Include request and response bodies

        Returns:
            JSON string
        """
        rows = [self._flat_row(record, include_body) for record in records]
        return json.dumps(rows, indent=2, default=json_default, ensure_ascii=False)

    def export_csv(self, records: List[CallRecord], include_body: bool = False) -> str:
        """
        Export a flattened view of the records as CSV.

        Args:
            records: Records to export
            include_body: Include request and response bodies as JSON columns

        Returns:
            CSV string
        """
        fields = ["method", "url", "status", "duration_ms", "test", "timestamp"]
        if include_body:
            fields += ["request_body", "response_body"]

        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=fields, lineterminator="\n")
        writer.writeheader()
        for record in records:
            row = self._flat_row(record, include_body)
            if include_body:
                row["request_body"] = safe_json_dumps(row["request_body"], indent=None)
                row["response_body"] = safe_json_dumps(row["response_body"], indent=None)
            writer.writerow(row)
        return output.getvalue()

