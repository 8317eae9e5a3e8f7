"""
Helpers for using API call tracing from test code.

Harnesses without the pytest plugin can use these functions to create
traced clients, label calls with the running test, and write reports.
"""

import os
from typing import Dict, Optional, Union

import httpx

from api_trace.client import TracedAsyncClient, TracedClient
from api_trace.config import DEFAULT_OUTPUT_DIR
from api_trace.models import TestContext
from api_trace.recorder import CallRecorder
from api_trace.storage import TraceStorage


_default_recorder = CallRecorder()


def get_recorder() -> CallRecorder:
    """Get the process-wide default recorder."""
    return _default_recorder


def _resolve(recorder: Optional[CallRecorder]) -> CallRecorder:
    return recorder if recorder is not None else _default_recorder


def create_traced_client(
    base_url: str = "",
    cookies: Optional[Dict[str, str]] = None,
    recorder: Optional[CallRecorder] = None,
    verbose: bool = True,
    **client_kwargs
) -> TracedClient:
    """
    Create a new httpx.Client with tracing enabled.

    Args:
        base_url: Base URL of the API under test
        cookies: Cookies sent with every request
        recorder: Recorder to log into. Uses the default recorder if not specified.
        verbose: Print a line when each call starts and finishes
        **client_kwargs: Passed through to httpx.Client

    Returns:
        TracedClient wrapping the new client
    """
    client = httpx.Client(base_url=base_url, cookies=cookies, **client_kwargs)
    return TracedClient(client, recorder=_resolve(recorder), verbose=verbose)


def trace_client(
    client: Union[httpx.Client, httpx.AsyncClient],
    recorder: Optional[CallRecorder] = None,
    verbose: bool = True
) -> Union[TracedClient, TracedAsyncClient]:
    """
    Wrap an existing httpx client with tracing.

    The client itself is left untouched; use the returned wrapper for
    traced calls.

    Args:
        client: httpx.Client or httpx.AsyncClient
        recorder: Recorder to log into. Uses the default recorder if not specified.
        verbose: Print a line when each call starts and finishes

    Returns:
        TracedClient or TracedAsyncClient
    """
    recorder = _resolve(recorder)
    if isinstance(client, httpx.AsyncClient):
        return TracedAsyncClient(client, recorder=recorder, verbose=verbose)
    if isinstance(client, httpx.Client):
        return TracedClient(client, recorder=recorder, verbose=verbose)
    raise TypeError(f"Expected an httpx.Client or httpx.AsyncClient, got {type(client).__name__}")


def set_current_test(
    name: str,
    full_name: Optional[str] = None,
    path: Optional[str] = None,
    recorder: Optional[CallRecorder] = None
) -> TestContext:
    """
    Mark the test that subsequent calls belong to.

    Args:
        name: Short test name
        full_name: Fully qualified test name used to group the report
        path: Source file of the test
        recorder: Recorder to update. Uses the default recorder if not specified.

    Returns:
        The TestContext that was set
    """
    ctx = TestContext(name=name, full_name=full_name, path=path)
    _resolve(recorder).set_current_test(ctx)
    return ctx


def clear_current_test(recorder: Optional[CallRecorder] = None) -> None:
    _resolve(recorder).clear_current_test()


def generate_report(
    name: str = "api-trace-report",
    output_dir: Optional[str] = None,
    recorder: Optional[CallRecorder] = None
) -> Optional[str]:
    """
    Write the current trace to <output_dir>/<name>.json and <name>.html.

    Can be called at any point of a run, not only at the end.

    Args:
        name: Base name of the report files
        output_dir: Directory for the files. Defaults to test-reports.
        recorder: Recorder to read. Uses the default recorder if not specified.

    Returns:
        Path of the JSON file, or None if saving failed
    """
    records = _resolve(recorder).get_all()
    if name.endswith(".json"):
        name = name[:-len(".json")]
    json_path = os.path.join(output_dir or DEFAULT_OUTPUT_DIR, f"{name}.json")
    storage = TraceStorage(json_path)
    return storage.save(records)


def clear_traces(recorder: Optional[CallRecorder] = None) -> None:
    """Drop all recorded calls, e.g. between independent suites."""
    _resolve(recorder).clear()
