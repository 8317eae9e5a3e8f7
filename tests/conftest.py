"""
Pytest configuration and shared fixtures for api_trace tests.
"""

import json

import httpx
import pytest

from api_trace.client import TracedAsyncClient, TracedClient
from api_trace.models import (
    CallRecord,
    ErrorInfo,
    RequestInfo,
    ResponseInfo,
    TestContext,
)
from api_trace.recorder import CallRecorder


BASE_URL = "http://testserver"


# =============================================================================
# Fake API
# =============================================================================

def fake_api(request: httpx.Request) -> httpx.Response:
    """
    Minimal stand-in for the application under test.

    Routes:
        GET    /api/user         401 unless a session cookie is sent
        GET    /api/circles      200 with a list of circles
        POST   /api/circles      201 echoing the created circle
        DELETE /api/circles/<id> 204
        GET    /api/redirect     302
        GET    /api/broken       500
        GET    /api/offline      raises httpx.ConnectError
        GET    /api/binary       200 with non-UTF-8 bytes
    """
    path = request.url.path
    method = request.method

    if path == "/api/offline":
        raise httpx.ConnectError("Connection refused", request=request)

    if path == "/api/user" and method == "GET":
        if "sid=" in request.headers.get("cookie", ""):
            return httpx.Response(200, json={"id": 1, "username": "demo"})
        return httpx.Response(401, json={"message": "Not authenticated"})

    if path == "/api/circles" and method == "GET":
        return httpx.Response(200, json=[{"id": 1, "name": "Friends"}])

    if path == "/api/circles" and method == "POST":
        payload = json.loads(request.content or b"{}")
        return httpx.Response(201, json={"id": 2, **payload})

    if path.startswith("/api/circles/") and method == "DELETE":
        return httpx.Response(204)

    if path == "/api/redirect":
        return httpx.Response(302, headers={"location": "/api/circles"})

    if path == "/api/broken":
        return httpx.Response(500, json={"message": "Internal Server Error"})

    if path == "/api/binary":
        return httpx.Response(
            200,
            content=b"\xff\xfe\x00\x01",
            headers={"content-type": "application/octet-stream"},
        )

    return httpx.Response(404, json={"message": "Not found"})


# =============================================================================
# Test Environment Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """
    Ensure each test runs without API_TRACE_* settings from the shell.

    This fixture automatically applies to all tests.
    """
    for name in ("API_TRACE_ENABLED", "API_TRACE_DIR", "API_TRACE_FILE", "API_TRACE_VERBOSE"):
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture
def recorder():
    """
    Provide an isolated recorder for each test.

    Returns:
        Empty CallRecorder
    """
    return CallRecorder()


@pytest.fixture
def mock_transport():
    """Transport that serves the fake API."""
    return httpx.MockTransport(fake_api)


@pytest.fixture
def http_client(mock_transport):
    """
    Provide a plain httpx.Client talking to the fake API.

    Yields:
        httpx.Client
    """
    client = httpx.Client(base_url=BASE_URL, transport=mock_transport)
    yield client
    client.close()


@pytest.fixture
def traced(http_client, recorder):
    """
    Provide a quiet TracedClient over the fake API.

    Returns:
        TracedClient logging into the test's recorder
    """
    return TracedClient(http_client, recorder=recorder, verbose=False)


@pytest.fixture
def make_async_traced(mock_transport, recorder):
    """
    Factory for TracedAsyncClient instances over the fake API.

    Async clients must be created inside the running event loop, so tests
    call this from their coroutine.
    """
    def factory(verbose: bool = False) -> TracedAsyncClient:
        client = httpx.AsyncClient(base_url=BASE_URL, transport=mock_transport)
        return TracedAsyncClient(client, recorder=recorder, verbose=verbose)

    return factory


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def make_record():
    """
    Factory for CallRecords.

    Returns:
        Function building a record from a few keyword arguments
    """
    def factory(
        method="GET",
        url="/api/circles",
        status=200,
        duration_ms=10,
        test=None,
        error=None,
        body=None,
    ) -> CallRecord:
        response = None
        if status is not None:
            response = ResponseInfo(status=status, status_text="", headers={}, body=body)
        if isinstance(test, str):
            test = TestContext(name=test, full_name=test)
        return CallRecord(
            request=RequestInfo(method=method, url=url, headers={}, body=None),
            response=response,
            error=ErrorInfo(message=error) if error else None,
            duration_ms=duration_ms,
            timestamp="2025-02-04T10:30:00+00:00",
            test=test,
        )

    return factory


@pytest.fixture
def mixed_records(make_record):
    """
    Three GETs and two POSTs with statuses 200, 201, 404, 500 and one error.

    Returns:
        List of five CallRecords
    """
    return [
        make_record("GET", "/api/circles", 200, 10, test="A"),
        make_record("POST", "/api/circles", 201, 20, test="A"),
        make_record("GET", "/api/circles/99", 404, 5, test="B"),
        make_record("POST", "/api/posts", 500, 40, test="B"),
        make_record("GET", "/api/offline", None, 3, test="C", error="Connection refused"),
    ]


# =============================================================================
# Parametrize Helpers
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test (no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (several components together)"
    )
