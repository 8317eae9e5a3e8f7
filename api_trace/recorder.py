"""
In-memory call recorder for API call tracing.

Holds the ordered trace of a run and the "current test" pointer used to
attribute calls to tests.
"""

import copy
from typing import Any, Dict, List, Optional, Union

from api_trace.models import CallRecord, ErrorInfo, RequestInfo, ResponseInfo, TestContext
from api_trace.utils import utc_now_iso


class CallRecorder:
    """Accumulates CallRecords in settlement order."""

    def __init__(self):
        self._records: List[CallRecord] = []
        self._current_test: Optional[TestContext] = None

    @property
    def current_test(self) -> Optional[TestContext]:
        return self._current_test

    def set_current_test(self, ctx: Optional[TestContext]) -> None:
        """
        Replace the current test pointer.

        Args:
            ctx: Test that subsequent calls belong to
        """
        self._current_test = ctx

    def clear_current_test(self) -> None:
        self._current_test = None

    def log_call(
        self,
        request: RequestInfo,
        response: Optional[ResponseInfo] = None,
        error: Optional[Union[ErrorInfo, BaseException, str, Dict[str, Any]]] = None,
        duration_ms: int = 0,
    ) -> CallRecord:
        """
        Record a settled call.

        The current test is captured by value at this point, so later
        changes to the pointer do not move the record to another test.

        Args:
            request: Request details
            response: Response details, if one was received
            error: ErrorInfo, exception, message string or error dict for a
                failed call
            duration_ms: Time from issuing the call to settlement

        Returns:
            A copy of the appended CallRecord
        """
        error = copy.deepcopy(ErrorInfo.coerce(error))

        record = CallRecord(
            request=copy.deepcopy(request),
            response=copy.deepcopy(response),
            error=error,
            duration_ms=int(duration_ms),
            timestamp=utc_now_iso(),
            test=self._current_test,
        )
        self._records.append(record)
        return copy.deepcopy(record)

    def get_all(self) -> List[CallRecord]:
        """
        Get all records in the order they were logged.

        The records are deep copies, so callers cannot change the trace.
        """
        return copy.deepcopy(self._records)

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)
