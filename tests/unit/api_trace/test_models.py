"""Tests for api_trace.models module."""

import pytest

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


@pytest.mark.unit
class TestClassifyStatus:
    """Tests for classify_status function."""

    @pytest.mark.parametrize("status,expected", [
        (200, StatusClass.SUCCESS),
        (204, StatusClass.SUCCESS),
        (299, StatusClass.SUCCESS),
        (301, StatusClass.REDIRECT),
        (399, StatusClass.REDIRECT),
        (400, StatusClass.CLIENT_ERROR),
        (401, StatusClass.CLIENT_ERROR),
        (499, StatusClass.CLIENT_ERROR),
        (500, StatusClass.SERVER_ERROR),
        (503, StatusClass.SERVER_ERROR),
        (100, StatusClass.INFORMATIONAL),
        (101, StatusClass.INFORMATIONAL),
        (None, StatusClass.NO_RESPONSE),
        (0, StatusClass.NO_RESPONSE),
        (-1, StatusClass.NO_RESPONSE),
        (99, StatusClass.NO_RESPONSE),
    ])
    def test_classification(self, status, expected):
        """Test each status range maps to its class."""
        assert classify_status(status) == expected

    def test_buckets(self):
        """Test summary bucket labels."""
        assert StatusClass.SUCCESS.bucket == "2xx"
        assert StatusClass.REDIRECT.bucket == "3xx"
        assert StatusClass.CLIENT_ERROR.bucket == "4xx"
        assert StatusClass.SERVER_ERROR.bucket == "5xx"
        assert StatusClass.NO_RESPONSE.bucket == "Error/No Response"


@pytest.mark.unit
class TestTestContext:
    """Tests for TestContext dataclass."""

    def test_label_prefers_full_name(self):
        """Test label uses the full name when present."""
        ctx = TestContext(name="creates circle", full_name="Circles API creates circle")
        assert ctx.label == "Circles API creates circle"

    def test_label_falls_back_to_name(self):
        """Test label uses the short name without a full name."""
        assert TestContext(name="creates circle").label == "creates circle"

    def test_label_unknown(self):
        """Test label for a context with no names at all."""
        assert TestContext(name="").label == "Unknown Test"

    def test_is_immutable(self):
        """Test contexts cannot be changed after creation."""
        ctx = TestContext(name="a")
        with pytest.raises(AttributeError):
            ctx.name = "b"

    def test_from_dict_camel_case(self):
        """Test reading fullName written by older tooling."""
        ctx = TestContext.from_dict({"name": "x", "fullName": "Suite x", "path": "a.test.cjs"})
        assert ctx.full_name == "Suite x"
        assert ctx.path == "a.test.cjs"

    def test_from_dict_none(self):
        """Test empty data gives no context."""
        assert TestContext.from_dict(None) is None
        assert TestContext.from_dict({}) is None


@pytest.mark.unit
class TestErrorInfo:
    """Tests for ErrorInfo dataclass."""

    def test_from_exception(self):
        """Test message, type and stack are captured."""
        try:
            raise ConnectionError("Connection refused")
        except ConnectionError as e:
            info = ErrorInfo.from_exception(e)

        assert info.message == "Connection refused"
        assert info.type == "ConnectionError"
        assert "Traceback" in info.stack

    def test_from_exception_without_message(self):
        """Test the class name is used when the message is empty."""
        info = ErrorInfo.from_exception(TimeoutError())
        assert info.message == "TimeoutError"


@pytest.mark.unit
class TestCallRecord:
    """Tests for CallRecord dataclass."""

    def test_negative_duration_clamped(self):
        """Test durations are never negative."""
        record = CallRecord(request=RequestInfo(method="GET", url="/"), duration_ms=-5)
        assert record.duration_ms == 0

    def test_status_and_class(self):
        """Test status properties with a response."""
        record = CallRecord(
            request=RequestInfo(method="GET", url="/api/user"),
            response=ResponseInfo(status=401, status_text="Unauthorized"),
        )
        assert record.status == 401
        assert record.status_class == StatusClass.CLIENT_ERROR
        assert record.settled

    def test_no_response(self):
        """Test status properties for a failed call."""
        record = CallRecord(
            request=RequestInfo(method="GET", url="/api/offline"),
            error=ErrorInfo(message="Connection refused"),
        )
        assert record.status is None
        assert record.status_class == StatusClass.NO_RESPONSE
        assert record.settled

    def test_unsettled(self):
        """Test a record with neither response nor error is not settled."""
        record = CallRecord(request=RequestInfo(method="GET", url="/"))
        assert not record.settled

    def test_dict_round_trip(self):
        """Test to_dict/from_dict preserve every field."""
        record = CallRecord(
            request=RequestInfo(
                method="POST",
                url="/api/circles",
                headers={"content-type": "application/json"},
                body={"name": "Friends"},
            ),
            response=ResponseInfo(status=201, status_text="Created", headers={}, body={"id": 2}),
            duration_ms=12,
            timestamp="2025-02-04T10:30:00+00:00",
            test=TestContext(name="creates", full_name="Circles creates", path="tests/test_circles.py"),
        )
        assert CallRecord.from_dict(record.to_dict()) == record

    def test_from_legacy_dict(self):
        """Test reading a record written by the JavaScript trace logger."""
        data = {
            "request": {"method": "get", "url": "/api/user", "headers": {}, "body": {}},
            "response": {"status": 401, "statusText": "Unauthorized", "headers": {}, "body": {}},
            "error": None,
            "timestamp": "2025-04-01T12:00:00.000Z",
            "duration": 7,
            "test": {"name": "rejects", "fullName": "Auth rejects", "path": "auth.test.cjs"},
        }
        record = CallRecord.from_dict(data)
        assert record.request.method == "GET"
        assert record.response.status_text == "Unauthorized"
        assert record.duration_ms == 7
        assert record.test.label == "Auth rejects"

    def test_http_method_values(self):
        """Test HttpMethod values are upper-case verbs."""
        assert [m.value for m in HttpMethod] == [
            "GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"
        ]

    def test_http_method_sort_key(self):
        """Test standard verbs sort in declared order, others after them."""
        methods = ["PROPFIND", "DELETE", "GET", "OPTIONS", "POST", "MKCOL"]
        assert sorted(methods, key=HttpMethod.sort_key) == [
            "GET", "POST", "DELETE", "OPTIONS", "MKCOL", "PROPFIND"
        ]

    def test_legacy_missing_status(self):
        """Test a stored response without a status counts as no response."""
        record = CallRecord.from_dict({
            "request": {"method": "GET", "url": "/api/user"},
            "response": {"statusText": "", "body": None},
        })
        assert record.status == 0
        assert record.status_class == StatusClass.NO_RESPONSE

    def test_string_error_converted(self):
        """Test a message string given as error becomes an ErrorInfo."""
        record = CallRecord(request=RequestInfo(method="GET", url="/"), error="Connection refused")
        assert record.error == ErrorInfo(message="Connection refused")
        assert record.to_dict()["error"]["message"] == "Connection refused"

    def test_response_and_error_together(self):
        """Test a record carrying both a response and an error round-trips."""
        record = CallRecord(
            request=RequestInfo(method="GET", url="/api/stream"),
            response=ResponseInfo(status=200, status_text="OK"),
            error=ErrorInfo(message="Stream reset"),
        )
        restored = CallRecord.from_dict(record.to_dict())
        assert restored == record
        assert restored.status_class == StatusClass.SUCCESS


@pytest.mark.unit
class TestErrorInfoCoerce:
    """Tests for ErrorInfo.coerce."""

    def test_none(self):
        assert ErrorInfo.coerce(None) is None

    def test_error_info_unchanged(self):
        """Test an ErrorInfo is passed through."""
        info = ErrorInfo(message="x")
        assert ErrorInfo.coerce(info) is info

    def test_exception(self):
        """Test exceptions keep their type."""
        assert ErrorInfo.coerce(ValueError("bad")).type == "ValueError"

    def test_dict(self):
        """Test error dicts."""
        assert ErrorInfo.coerce({"message": "m", "type": "T"}) == ErrorInfo(message="m", type="T")

    def test_other_values(self):
        """Test anything else is stringified."""
        assert ErrorInfo.coerce("refused") == ErrorInfo(message="refused")
        assert ErrorInfo.coerce(42) == ErrorInfo(message="42")
