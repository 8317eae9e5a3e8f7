"""
Data models for API call tracing.

These dataclasses represent a single captured HTTP interaction and the
test that issued it.
"""

import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


UNKNOWN_TEST = "Unknown Test"


class HttpMethod(str, Enum):
    """HTTP verbs the traced clients expose."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    @classmethod
    def sort_key(cls, method: str) -> Tuple[int, str]:
        """Order standard verbs as declared, then any other method by name."""
        verbs = [m.value for m in cls]
        if method in verbs:
            return verbs.index(method), method
        return len(verbs), method


class StatusClass(str, Enum):
    """Presentation class of an HTTP status code."""
    INFORMATIONAL = "informational"
    SUCCESS = "success"
    REDIRECT = "redirect"
    CLIENT_ERROR = "client-error"
    SERVER_ERROR = "server-error"
    NO_RESPONSE = "no-response"

    @property
    def bucket(self) -> str:
        """Label of the summary bucket this class is counted under."""
        return _STATUS_BUCKETS[self]


_STATUS_BUCKETS = {
    StatusClass.INFORMATIONAL: "1xx",
    StatusClass.SUCCESS: "2xx",
    StatusClass.REDIRECT: "3xx",
    StatusClass.CLIENT_ERROR: "4xx",
    StatusClass.SERVER_ERROR: "5xx",
    StatusClass.NO_RESPONSE: "Error/No Response",
}


def classify_status(status: Optional[int]) -> StatusClass:
    """
    Classify a status code for display.

    Summary counts and per-call badges both go through this function so
    they always agree. Codes below 100, such as the 0 older trace
    files hold for a missing status, count as no response.

    Args:
        status: HTTP status code, or None when there was no response

    Returns:
        StatusClass for the code
    """
    if status is None or status < 100:
        return StatusClass.NO_RESPONSE
    if status < 200:
        return StatusClass.INFORMATIONAL
    if 200 <= status < 300:
        return StatusClass.SUCCESS
    if 300 <= status < 400:
        return StatusClass.REDIRECT
    if 400 <= status < 500:
        return StatusClass.CLIENT_ERROR
    return StatusClass.SERVER_ERROR


@dataclass(frozen=True)
class TestContext:
    """The test case that was executing when a call was made."""
    __test__ = False  # not a pytest test class

    name: str
    full_name: Optional[str] = None
    path: Optional[str] = None

    @property
    def label(self) -> str:
        """Grouping key used in reports."""
        return self.full_name or self.name or UNKNOWN_TEST

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "full_name": self.full_name, "path": self.path}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["TestContext"]:
        """Create TestContext from a dictionary, or None if data is empty."""
        if not data:
            return None
        return cls(
            name=data.get("name") or "",
            full_name=data.get("full_name", data.get("fullName")),
            path=data.get("path"),
        )


@dataclass
class RequestInfo:
    """The outgoing side of a call."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "url": self.url,
            "headers": self.headers,
            "body": self.body,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RequestInfo":
        data = data or {}
        return cls(
            method=str(data.get("method") or "UNKNOWN").upper(),
            url=data.get("url") or "unknown",
            headers=data.get("headers") or {},
            body=data.get("body"),
        )


@dataclass
class ResponseInfo:
    """The response received for a call."""
    status: int
    status_text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "status_text": self.status_text,
            "headers": self.headers,
            "body": self.body,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["ResponseInfo"]:
        if not data:
            return None
        return cls(
            status=int(data.get("status", 0)),
            status_text=data.get("status_text", data.get("statusText")) or "",
            headers=data.get("headers") or {},
            body=data.get("body"),
        )


@dataclass
class ErrorInfo:
    """A transport-level failure."""
    message: str
    type: Optional[str] = None
    stack: Optional[str] = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        """Capture message, class name and traceback of an exception."""
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return cls(message=str(exc) or type(exc).__name__, type=type(exc).__name__, stack=stack)

    @classmethod
    def coerce(cls, value: Any) -> Optional["ErrorInfo"]:
        """
        Turn the ways a failure can be described into an ErrorInfo.

        Args:
            value: ErrorInfo, exception, error dict or message string

        Returns:
            ErrorInfo, or None when value is None
        """
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, BaseException):
            return cls.from_exception(value)
        if isinstance(value, dict):
            return cls.from_dict(value) or cls(message="Unknown error")
        return cls(message=str(value))

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "type": self.type, "stack": self.stack}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["ErrorInfo"]:
        if not data:
            return None
        return cls(
            message=data.get("message") or "",
            type=data.get("type"),
            stack=data.get("stack"),
        )


@dataclass
class CallRecord:
    """One captured HTTP interaction."""
    request: RequestInfo
    response: Optional[ResponseInfo] = None
    error: Optional[ErrorInfo] = None
    duration_ms: int = 0
    timestamp: str = ""
    test: Optional[TestContext] = None

    def __post_init__(self):
        self.error = ErrorInfo.coerce(self.error)
        if self.duration_ms < 0:
            self.duration_ms = 0

    @property
    def status(self) -> Optional[int]:
        """Response status code, or None when there was no response."""
        return self.response.status if self.response else None

    @property
    def settled(self) -> bool:
        """Whether the call finished with either a response or an error."""
        return self.response is not None or self.error is not None

    @property
    def status_class(self) -> StatusClass:
        return classify_status(self.status)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON-ready dictionary written to trace files."""
        return {
            "request": self.request.to_dict(),
            "response": self.response.to_dict() if self.response else None,
            "error": self.error.to_dict() if self.error else None,
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp,
            "test": self.test.to_dict() if self.test else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CallRecord":
        """
        Create CallRecord from a dictionary.

        Accepts both the snake_case keys written by this package and the
        camelCase keys of trace files produced by the older JavaScript
        tooling.

        Args:
            data: Dictionary loaded from a trace file

        Returns:
            CallRecord instance
        """
        duration = data.get("duration_ms", data.get("durationMs", data.get("duration")))
        return cls(
            request=RequestInfo.from_dict(data.get("request")),
            response=ResponseInfo.from_dict(data.get("response")),
            error=ErrorInfo.from_dict(data.get("error")),
            duration_ms=int(duration or 0),
            timestamp=data.get("timestamp") or "",
            test=TestContext.from_dict(data.get("test")),
        )
