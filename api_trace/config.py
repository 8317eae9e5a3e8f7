"""
Configuration for API call tracing.

Values come from pytest options and ini settings, with environment
variables as the fallback.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


DEFAULT_OUTPUT_DIR = "test-reports"
DEFAULT_OUTPUT_FILE = "api-traces.json"

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class TraceConfig:
    """Where and how traces are written."""
    enabled: bool = False
    output_dir: str = DEFAULT_OUTPUT_DIR
    output_file: str = DEFAULT_OUTPUT_FILE
    verbose: bool = True
    per_process: bool = True

    @classmethod
    def from_env(cls) -> "TraceConfig":
        """
        Build a config from environment variables.

        Reads API_TRACE_ENABLED, API_TRACE_DIR, API_TRACE_FILE and
        API_TRACE_VERBOSE.
        """
        return cls(
            enabled=_env_flag("API_TRACE_ENABLED", False),
            output_dir=os.environ.get("API_TRACE_DIR") or DEFAULT_OUTPUT_DIR,
            output_file=os.environ.get("API_TRACE_FILE") or DEFAULT_OUTPUT_FILE,
            verbose=_env_flag("API_TRACE_VERBOSE", True),
        )

    def json_path(self, worker_id: Optional[str] = None) -> str:
        """
        Resolve the JSON output path.

        Parallel test workers each get their own file: the worker id is
        appended to the file stem when per_process is set.

        Args:
            worker_id: pytest-xdist worker id (e.g. "gw0"), if any

        Returns:
            Path to the JSON trace file
        """
        name = Path(self.output_file)
        if name.suffix != ".json":
            name = name.with_suffix(".json")
        if worker_id and self.per_process:
            name = name.with_name(f"{name.stem}-{worker_id}{name.suffix}")
        return os.path.join(self.output_dir, str(name))

    def html_path(self, worker_id: Optional[str] = None) -> str:
        """Path of the HTML report written next to the JSON file."""
        return str(Path(self.json_path(worker_id)).with_suffix(".html"))
