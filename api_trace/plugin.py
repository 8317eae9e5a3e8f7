"""
pytest plugin for API call tracing.

Ties the call recorder to the pytest run: the trace is reset when the
session starts, every call is attributed to the test running at the time,
and the trace is written to JSON and HTML when the session finishes.

Enable with ``pytest --api-trace`` or ``api_trace = true`` in the ini file.
"""

import os
from pathlib import Path
from typing import List, Optional, Tuple

import pytest

from api_trace.config import TraceConfig
from api_trace.harness import create_traced_client, get_recorder
from api_trace.models import TestContext
from api_trace.recorder import CallRecorder
from api_trace.storage import TraceStorage


PLUGIN_NAME = "api_trace_plugin"


def pytest_addoption(parser):
    group = parser.getgroup("api-trace", "HTTP API call tracing")
    group.addoption(
        "--api-trace",
        action="store_true",
        default=False,
        dest="api_trace",
        help="Record HTTP calls made through traced clients and write a report",
    )
    group.addoption(
        "--api-trace-dir",
        default=None,
        dest="api_trace_dir",
        help="Directory for the trace files (default: test-reports)",
    )
    group.addoption(
        "--api-trace-file",
        default=None,
        dest="api_trace_file",
        help="Name of the JSON trace file (default: api-traces.json)",
    )
    group.addoption(
        "--api-trace-quiet",
        action="store_true",
        default=False,
        dest="api_trace_quiet",
        help="Do not print a line for every traced call",
    )
    parser.addini("api_trace", "Enable API call tracing", type="bool", default=False)
    parser.addini("api_trace_dir", "Directory for the trace files", default="")
    parser.addini("api_trace_file", "Name of the JSON trace file", default="")


def build_config(config) -> TraceConfig:
    """
    Resolve the trace configuration for a pytest run.

    Command-line options win over ini settings, which win over the
    API_TRACE_* environment variables.

    Args:
        config: pytest Config

    Returns:
        TraceConfig for this run
    """
    trace_config = TraceConfig.from_env()

    if config.getoption("api_trace") or config.getini("api_trace"):
        trace_config.enabled = True

    output_dir = config.getoption("api_trace_dir") or config.getini("api_trace_dir")
    if output_dir:
        trace_config.output_dir = output_dir

    output_file = config.getoption("api_trace_file") or config.getini("api_trace_file")
    if output_file:
        trace_config.output_file = output_file

    if config.getoption("api_trace_quiet"):
        trace_config.verbose = False

    return trace_config


def context_from_nodeid(nodeid: str, location: Optional[Tuple] = None) -> TestContext:
    """
    Build the TestContext for a pytest node id.

    Args:
        nodeid: e.g. "tests/test_api.py::TestCircles::test_create"
        location: (filename, lineno, domain) tuple from pytest

    Returns:
        TestContext with the last id part as name and the node id as full name
    """
    path = location[0] if location else nodeid.split("::")[0]
    return TestContext(name=nodeid.split("::")[-1], full_name=nodeid, path=path)


class ApiTracePlugin:
    """Records API calls per test over a pytest session."""

    def __init__(
        self,
        config: TraceConfig,
        recorder: Optional[CallRecorder] = None,
        worker_id: Optional[str] = None,
        is_controller: bool = False
    ):
        """
        Initialize the plugin.

        Args:
            config: Output configuration
            recorder: Recorder to manage. Uses the default recorder if not specified.
            worker_id: pytest-xdist worker id when running in a worker
            is_controller: True in the xdist controller, which runs no tests
        """
        self.config = config
        self.recorder = recorder if recorder is not None else get_recorder()
        self.worker_id = worker_id
        self.is_controller = is_controller
        self.json_path: Optional[str] = None
        self.html_path: Optional[str] = None
        self.record_count = 0

    def pytest_sessionstart(self, session):
        self.recorder.clear()
        self.recorder.clear_current_test()

    def pytest_runtest_logstart(self, nodeid, location):
        self.recorder.set_current_test(context_from_nodeid(nodeid, location))

    def pytest_runtest_logfinish(self, nodeid, location):
        self.recorder.clear_current_test()

    def pytest_sessionfinish(self, session, exitstatus):
        self.flush()

    def flush(self) -> Optional[str]:
        """
        Write the recorded trace to disk.

        Nothing is written when no calls were recorded.

        Returns:
            Path of the JSON file, or None if nothing was written
        """
        records = self.recorder.get_all()
        self.record_count = len(records)
        if not records:
            return None

        json_path = self.config.json_path(self.worker_id)
        storage = TraceStorage(json_path)
        self.json_path = storage.save(records)
        if self.json_path:
            html_path = str(Path(json_path).with_suffix(".html"))
            if os.path.exists(html_path):
                self.html_path = html_path
        return self.json_path

    def summary_lines(self) -> List[str]:
        """Lines printed in the terminal summary."""
        if self.record_count == 0:
            if self.is_controller:
                return [f"API traces are written by each worker to {self.config.output_dir}"]
            return ["No API calls were traced; no report generated."]

        lines = []
        if self.json_path:
            lines.append(f"API Trace JSON: {self.json_path}")
        if self.html_path:
            lines.append(f"API Trace Report generated: {self.html_path}")
        lines.append(f"Total API calls traced: {self.record_count}")
        return lines

    def pytest_terminal_summary(self, terminalreporter):
        terminalreporter.section("API trace")
        for line in self.summary_lines():
            terminalreporter.write_line(line)


def pytest_configure(config):
    trace_config = build_config(config)
    if not trace_config.enabled:
        return

    is_worker = hasattr(config, "workerinput")
    is_controller = not is_worker and bool(getattr(config.option, "numprocesses", None))
    plugin = ApiTracePlugin(
        trace_config,
        worker_id=os.environ.get("PYTEST_XDIST_WORKER") if is_worker else None,
        is_controller=is_controller,
    )
    config.pluginmanager.register(plugin, PLUGIN_NAME)


@pytest.fixture
def api_trace_recorder(request) -> CallRecorder:
    """The recorder traced calls are logged to during this run."""
    plugin = request.config.pluginmanager.get_plugin(PLUGIN_NAME)
    if plugin is not None:
        return plugin.recorder
    return get_recorder()


@pytest.fixture
def traced_client(request, api_trace_recorder):
    """
    Factory for traced httpx clients.

    Usage:
        def test_login(traced_client):
            client = traced_client("http://localhost:5000")
            assert client.get("/api/user").status_code == 401
    """
    plugin = request.config.pluginmanager.get_plugin(PLUGIN_NAME)
    verbose = plugin.config.verbose if plugin is not None else True
    clients = []

    def factory(base_url: str = "", **kwargs):
        kwargs.setdefault("verbose", verbose)
        client = create_traced_client(base_url, recorder=api_trace_recorder, **kwargs)
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.close()
