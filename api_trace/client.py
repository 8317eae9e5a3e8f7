"""
Traced HTTP clients.

Wraps an httpx client so every request is timed and captured into a
CallRecorder. The wrapped client is used through composition and is never
modified, so the same client can still be used untraced elsewhere.
"""

import json
import sys
import time
from typing import Any, Dict, Optional, Union

import httpx

from api_trace.models import CallRecord, RequestInfo, ResponseInfo
from api_trace.recorder import CallRecorder

# Keyword arguments httpx takes at send time rather than when building the request
SEND_KWARGS = ("auth", "follow_redirects")


def decode_body(content: bytes, content_type: str = "") -> Any:
    """
    Decode a request or response body for the trace.

    Args:
        content: Raw body bytes
        content_type: Value of the Content-Type header

    Returns:
        Parsed JSON value, text, a binary placeholder, or None when empty
    """
    if not content:
        return None

    if "json" in content_type.lower():
        try:
            return json.loads(content)
        except ValueError:
            pass

    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        return f"<binary {len(content)} bytes>"


def describe_request(request: httpx.Request) -> Dict[str, Any]:
    """Extract the headers and body of an outgoing request."""
    try:
        body = decode_body(request.content, request.headers.get("content-type", ""))
    except httpx.RequestNotRead:
        body = "<streaming body>"
    return {"headers": dict(request.headers), "body": body}


def describe_response(response: httpx.Response) -> ResponseInfo:
    """Build the ResponseInfo for a received response."""
    try:
        body = decode_body(response.content, response.headers.get("content-type", ""))
    except httpx.ResponseNotRead:
        body = "<streaming body>"
    return ResponseInfo(
        status=response.status_code,
        status_text=response.reason_phrase,
        headers=dict(response.headers),
        body=body,
    )


class PendingCall:
    """
    A call that has been issued but has not settled yet.

    Created the moment a verb method is invoked. settle() hands the call to
    the recorder once; later settle() calls for the same request are ignored.
    """

    def __init__(self, recorder: CallRecorder, method: str, url: Any, verbose: bool = True):
        self.recorder = recorder
        self.verbose = verbose
        self.request_info = RequestInfo(method=method.upper(), url=str(url))
        self.record: Optional[CallRecord] = None
        self._settled = False
        self._started = time.perf_counter()

        if self.verbose:
            print(f"[API Trace] Starting {self.request_info.method} request to {self.request_info.url}")

    @property
    def settled(self) -> bool:
        return self._settled

    def attach_request(self, request: httpx.Request) -> None:
        """Fill in headers and body from the built request."""
        details = describe_request(request)
        self.request_info.headers = details["headers"]
        self.request_info.body = details["body"]

    def settle(
        self,
        response: Optional[httpx.Response] = None,
        error: Optional[BaseException] = None,
    ) -> Optional[CallRecord]:
        """
        Record the outcome of the call.

        Never raises: a failure to record is reported on stderr so the
        caller's request is unaffected.

        Args:
            response: Response received, if any
            error: Transport error raised, if any

        Returns:
            The logged CallRecord, or None if recording failed
        """
        if self._settled:
            return self.record
        self._settled = True

        duration_ms = int(round((time.perf_counter() - self._started) * 1000))
        method = self.request_info.method
        url = self.request_info.url

        try:
            response_info = describe_response(response) if response is not None else None
            self.record = self.recorder.log_call(self.request_info, response_info, error, duration_ms)
        except Exception as e:
            print(f"[API Trace] Failed to record {method} {url}: {e}", file=sys.stderr)
            return None

        if self.verbose:
            if response is not None:
                print(
                    f"[API Trace] Completed {method} {url} with status "
                    f"{response.status_code} ({duration_ms}ms)"
                )
            else:
                print(f"[API Trace] Failed {method} {url}: {error} ({duration_ms}ms)")

        return self.record


class _TracedClientBase:
    """Shared plumbing for the sync and async traced clients."""

    def __init__(self, client, recorder: Optional[CallRecorder] = None, verbose: bool = True):
        if recorder is None:
            from api_trace.harness import get_recorder
            recorder = get_recorder()
        self._client = client
        self.recorder = recorder
        self.verbose = verbose

    @property
    def wrapped(self):
        """The underlying httpx client."""
        return self._client

    def _begin(self, method: str, url: Any) -> PendingCall:
        return PendingCall(self.recorder, method, url, verbose=self.verbose)

    @staticmethod
    def _split_kwargs(kwargs: Dict[str, Any]) -> Dict[str, Any]:
        return {key: kwargs.pop(key) for key in SEND_KWARGS if key in kwargs}

    def __getattr__(self, name: str) -> Any:
        # Only reached for attributes not defined on the wrapper
        if name == "_client":
            raise AttributeError(name)
        return getattr(self._client, name)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} wrapping {self._client!r}>"


class TracedClient(_TracedClientBase):
    """Tracing wrapper around httpx.Client."""

    def __init__(self, client: httpx.Client, recorder: Optional[CallRecorder] = None, verbose: bool = True):
        super().__init__(client, recorder, verbose)

    def request(self, method: str, url: Union[httpx.URL, str], **kwargs) -> httpx.Response:
        """
        Send a request through the wrapped client and record it.

        Accepts the same keyword arguments as httpx.Client.request and
        returns the same response. Transport errors are recorded and then
        re-raised unchanged.
        """
        pending = self._begin(method, url)
        send_kwargs = self._split_kwargs(kwargs)
        try:
            request = self._client.build_request(method, url, **kwargs)
            pending.attach_request(request)
            response = self._client.send(request, **send_kwargs)
        except Exception as e:
            pending.settle(error=e)
            raise
        pending.settle(response=response)
        return response

    def get(self, url, **kwargs) -> httpx.Response:
        return self.request("GET", url, **kwargs)

    def options(self, url, **kwargs) -> httpx.Response:
        return self.request("OPTIONS", url, **kwargs)

    def head(self, url, **kwargs) -> httpx.Response:
        return self.request("HEAD", url, **kwargs)

    def post(self, url, **kwargs) -> httpx.Response:
        return self.request("POST", url, **kwargs)

    def put(self, url, **kwargs) -> httpx.Response:
        return self.request("PUT", url, **kwargs)

    def patch(self, url, **kwargs) -> httpx.Response:
        return self.request("PATCH", url, **kwargs)

    def delete(self, url, **kwargs) -> httpx.Response:
        return self.request("DELETE", url, **kwargs)

    def __enter__(self) -> "TracedClient":
        self._client.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return self._client.__exit__(exc_type, exc_val, exc_tb)


class TracedAsyncClient(_TracedClientBase):
    """Tracing wrapper around httpx.AsyncClient."""

    def __init__(self, client: httpx.AsyncClient, recorder: Optional[CallRecorder] = None, verbose: bool = True):
        super().__init__(client, recorder, verbose)

    async def request(self, method: str, url: Union[httpx.URL, str], **kwargs) -> httpx.Response:
        """Async counterpart of TracedClient.request."""
        pending = self._begin(method, url)
        send_kwargs = self._split_kwargs(kwargs)
        try:
            request = self._client.build_request(method, url, **kwargs)
            pending.attach_request(request)
            response = await self._client.send(request, **send_kwargs)
        except Exception as e:
            pending.settle(error=e)
            raise
        pending.settle(response=response)
        return response

    async def get(self, url, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def options(self, url, **kwargs) -> httpx.Response:
        return await self.request("OPTIONS", url, **kwargs)

    async def head(self, url, **kwargs) -> httpx.Response:
        return await self.request("HEAD", url, **kwargs)

    async def post(self, url, **kwargs) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url, **kwargs) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def patch(self, url, **kwargs) -> httpx.Response:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url, **kwargs) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)

    async def __aenter__(self) -> "TracedAsyncClient":
        await self._client.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return await self._client.__aexit__(exc_type, exc_val, exc_tb)
