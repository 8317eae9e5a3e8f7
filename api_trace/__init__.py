"""
API call tracing for HTTP integration tests

Records every HTTP call a test suite makes through a traced httpx client
and turns the trace into a JSON file and a standalone HTML report.

Supports:
- Traced wrappers for httpx.Client and httpx.AsyncClient
- Attribution of calls to the running test
- JSON persistence with an HTML report alongside
- A pytest plugin (--api-trace) and an `api-trace` viewer CLI
"""

__version__ = "0.1.0"
__author__ = "API Trace Contributors"

from api_trace.models import (
    CallRecord,
    ErrorInfo,
    HttpMethod,
    RequestInfo,
    ResponseInfo,
    StatusClass,
    TestContext,
    classify_status,
)
from api_trace.recorder import CallRecorder
from api_trace.client import PendingCall, TracedAsyncClient, TracedClient
from api_trace.analyzer import TraceAnalyzer, TraceStats
from api_trace.reporter import TraceReporter
from api_trace.storage import TraceStorage
from api_trace.config import TraceConfig
from api_trace.harness import (
    clear_current_test,
    clear_traces,
    create_traced_client,
    generate_report,
    get_recorder,
    set_current_test,
    trace_client,
)

__all__ = [
    # Models
    "CallRecord",
    "ErrorInfo",
    "HttpMethod",
    "RequestInfo",
    "ResponseInfo",
    "StatusClass",
    "TestContext",
    "classify_status",
    # Core components
    "CallRecorder",
    "PendingCall",
    "TracedClient",
    "TracedAsyncClient",
    "TraceAnalyzer",
    "TraceStats",
    "TraceReporter",
    "TraceStorage",
    "TraceConfig",
    # Test harness helpers
    "get_recorder",
    "create_traced_client",
    "trace_client",
    "set_current_test",
    "clear_current_test",
    "generate_report",
    "clear_traces",
]
