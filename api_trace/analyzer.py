"""
Trace analyzer for API call tracing.

Groups call records by test and computes aggregate statistics.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from api_trace.models import CallRecord, HttpMethod
from api_trace.utils import round_half_up


UNASSOCIATED_GROUP = "Unassociated API Calls"


@dataclass
class TraceStats:
    """Aggregate statistics over a set of call records."""
    total_calls: int = 0
    method_counts: Dict[str, int] = field(default_factory=dict)
    status_counts: Dict[str, int] = field(default_factory=dict)
    total_duration_ms: int = 0
    avg_duration_ms: int = 0
    min_duration_ms: Optional[int] = None
    max_duration_ms: Optional[int] = None
    error_count: int = 0

    @property
    def success_rate(self) -> float:
        """Percentage of calls that received a 2xx response."""
        if self.total_calls == 0:
            return 0.0
        return (self.status_counts.get("2xx", 0) / self.total_calls) * 100


@dataclass
class EndpointStats:
    """Timing for one METHOD + URL pair."""
    endpoint: str
    call_count: int = 0
    total_duration_ms: int = 0
    max_duration_ms: int = 0

    @property
    def avg_duration_ms(self) -> int:
        if self.call_count == 0:
            return 0
        return round_half_up(self.total_duration_ms / self.call_count)


class TraceAnalyzer:
    """Analyzes call records and computes statistics."""

    def group_by_test(self, records: List[CallRecord]) -> Dict[str, List[CallRecord]]:
        """
        Partition records by the test that issued them.

        Groups are keyed by the test's full name, falling back to its short
        name and then to "Unknown Test". Records made outside any test go to
        a separate "Unassociated API Calls" group. Groups keep the order in
        which they were first seen.

        Args:
            records: Records to group

        Returns:
            Ordered mapping of group label to records
        """
        groups: Dict[str, List[CallRecord]] = OrderedDict()
        for record in records:
            label = record.test.label if record.test else UNASSOCIATED_GROUP
            groups.setdefault(label, []).append(record)
        return groups

    def compute_stats(self, records: List[CallRecord]) -> TraceStats:
        """
        Compute aggregate statistics for a set of records.

        Args:
            records: Records to analyze

        Returns:
            TraceStats with computed metrics
        """
        stats = TraceStats(total_calls=len(records))
        if not records:
            return stats

        for record in records:
            method = record.request.method
            stats.method_counts[method] = stats.method_counts.get(method, 0) + 1

            bucket = record.status_class.bucket
            stats.status_counts[bucket] = stats.status_counts.get(bucket, 0) + 1

            if record.error is not None:
                stats.error_count += 1

        stats.method_counts = dict(
            sorted(stats.method_counts.items(), key=lambda item: HttpMethod.sort_key(item[0]))
        )

        durations = [record.duration_ms for record in records]
        stats.total_duration_ms = sum(durations)
        stats.avg_duration_ms = round_half_up(stats.total_duration_ms / len(durations))
        stats.min_duration_ms = min(durations)
        stats.max_duration_ms = max(durations)

        return stats

    def endpoint_stats(
        self,
        records: List[CallRecord],
        limit: Optional[int] = None
    ) -> List[EndpointStats]:
        """
        Compute per-endpoint timing, slowest average first.

        Args:
            records: Records to analyze
            limit: Optional maximum number of endpoints to return

        Returns:
            List of EndpointStats
        """
        endpoints: Dict[str, EndpointStats] = {}
        for record in records:
            key = f"{record.request.method} {record.request.url}"
            ep = endpoints.setdefault(key, EndpointStats(endpoint=key))
            ep.call_count += 1
            ep.total_duration_ms += record.duration_ms
            ep.max_duration_ms = max(ep.max_duration_ms, record.duration_ms)

        ranked = sorted(endpoints.values(), key=lambda e: e.avg_duration_ms, reverse=True)
        if limit is not None:
            ranked = ranked[:limit]
        return ranked

    def test_call_counts(self, records: List[CallRecord]) -> Dict[str, int]:
        """Count calls per test label, most calls first."""
        groups = self.group_by_test(records)
        counts = [(label, len(calls)) for label, calls in groups.items()]
        counts.sort(key=lambda item: item[1], reverse=True)
        return dict(counts)

    def summarize(self, records: List[CallRecord]) -> Dict[str, Any]:
        """
        Build a JSON-ready summary of a trace.

        Args:
            records: Records to summarize

        Returns:
            Dictionary with totals, breakdowns and per-test counts
        """
        stats = self.compute_stats(records)
        return {
            "total_calls": stats.total_calls,
            "tests": len(self.group_by_test(records)),
            "method_counts": stats.method_counts,
            "status_counts": stats.status_counts,
            "avg_duration_ms": stats.avg_duration_ms,
            "total_duration_ms": stats.total_duration_ms,
            "min_duration_ms": stats.min_duration_ms,
            "max_duration_ms": stats.max_duration_ms,
            "error_count": stats.error_count,
            "success_rate": round(stats.success_rate, 1),
            "calls_per_test": self.test_call_counts(records),
        }
