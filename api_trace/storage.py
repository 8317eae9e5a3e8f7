"""
JSON file storage for API call traces.

Persists call records as a pretty-printed JSON array and renders the
matching HTML report next to it.
"""

import json
import os
import sys
from pathlib import Path
from typing import List, Optional

from api_trace.models import CallRecord
from api_trace.reporter import TraceReporter
from api_trace.utils import json_default


class TraceStorage:
    """File-based storage for call records."""

    DEFAULT_FILE_PATH = os.path.join("test-reports", "api-traces.json")

    def __init__(
        self,
        file_path: Optional[str] = None,
        reporter: Optional[TraceReporter] = None,
        create: bool = True
    ):
        """
        Initialize the storage.

        Args:
            file_path: Path to the JSON trace file. Uses default if not specified.
            reporter: TraceReporter used for the HTML counterpart
            create: Create the file as an empty array if it does not exist
        """
        self.file_path = str(file_path or self.DEFAULT_FILE_PATH)
        self.reporter = reporter or TraceReporter()
        if create:
            self._init_file()

    def _ensure_directory(self, file_path: str) -> None:
        """Ensure the directory of a file exists."""
        directory = os.path.dirname(file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def _init_file(self) -> None:
        """Create the trace file as an empty array if it does not exist."""
        try:
            self._ensure_directory(self.file_path)
            if not os.path.exists(self.file_path):
                with open(self.file_path, "w", encoding="utf-8") as f:
                    f.write("[]")
        except OSError as e:
            print(f"[API Trace] Could not initialize {self.file_path}: {e}", file=sys.stderr)

    def save(
        self,
        records: List[CallRecord],
        file_path: Optional[str] = None,
        merge: bool = False,
        html: bool = True,
    ) -> Optional[str]:
        """
        Write records to a JSON file, overwriting it.

        For a .json path the HTML report is written alongside it with the
        same base name. Errors are reported on stderr and never raised.

        Args:
            records: Records to save
            file_path: Target path. Uses the storage's path if not specified.
            merge: Keep previously persisted records ahead of the new ones
            html: Also render the HTML counterpart

        Returns:
            Path written, or None if saving failed
        """
        path = str(file_path or self.file_path)

        try:
            if merge:
                records = self.load(path) + list(records)

            self._ensure_directory(path)
            payload = json.dumps(
                [record.to_dict() for record in records],
                indent=2,
                default=json_default,
                ensure_ascii=False,
            )
            with open(path, "w", encoding="utf-8") as f:
                f.write(payload)
        except Exception as e:
            print(f"[API Trace] Failed to save traces to {path}: {e}", file=sys.stderr)
            return None

        print(f"[API Trace] Traces saved to: {path}")

        if html and path.endswith(".json"):
            self.write_html(records, str(Path(path).with_suffix(".html")))

        return path

    def load(self, file_path: Optional[str] = None) -> List[CallRecord]:
        """
        Load records from a JSON trace file.

        Args:
            file_path: Path to read. Uses the storage's path if not specified.

        Returns:
            List of CallRecords; empty if the file is missing or blank

        Raises:
            ValueError: If the file does not contain a JSON array
        """
        path = str(file_path or self.file_path)
        if not os.path.exists(path):
            return []

        with open(path, "r", encoding="utf-8") as f:
            content = f.read()

        if not content.strip():
            return []

        data = json.loads(content)
        if not isinstance(data, list):
            raise ValueError(f"Trace file does not contain an array of API calls: {path}")

        return [CallRecord.from_dict(item) for item in data]

    def write_html(
        self,
        records: List[CallRecord],
        html_path: str,
        title: str = "API Trace Report"
    ) -> Optional[str]:
        """
        Render records to an HTML report file.

        Args:
            records: Records to render
            html_path: Destination path
            title: Report title

        Returns:
            Path written, or None if writing failed
        """
        try:
            self._ensure_directory(html_path)
            content = self.reporter.generate_html_report(records, title=title)
            with open(html_path, "w", encoding="utf-8") as f:
                f.write(content)
        except Exception as e:
            print(f"[API Trace] Failed to write HTML report {html_path}: {e}", file=sys.stderr)
            return None

        print(f"[API Trace] HTML report generated: {html_path}")
        return html_path
