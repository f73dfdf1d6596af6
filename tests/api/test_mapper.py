"""
API Mapper Tests

DTOs expose raw values; timestamps are ISO 8601 with a Z suffix.
"""

from datetime import datetime, timezone

from analysis.contracts import Analysis, AnalysisErrorCode, AnalysisReport, AnalysisTransportError
from profiling.api.mapper import map_report, map_snapshot, to_iso
from profiling.contracts.base import ProfileType
from profiling.contracts.insights import Insight, InsightKind, ProfileInsights

from tests.fixtures import entry, make_snapshot


class TestMapper:

    def test_to_iso(self):
        assert to_iso(datetime(2026, 1, 1, tzinfo=timezone.utc)) == "2026-01-01T00:00:00Z"
        assert to_iso(None) is None

    def test_snapshot(self):
        dto = map_snapshot(make_snapshot([{"a": entry(1, 2)}]))

        assert dto["profile_type"] == "heap"
        assert dto["series"] == {"a": {"flat": [1.0], "cum": [2.0]}}

    def test_report_with_error(self):
        when = datetime(2026, 1, 1, tzinfo=timezone.utc)
        heuristics = ProfileInsights(
            insights=(Insight(InsightKind.INFO, "Total heap size: 1.0 MB", when, "heap_size", 1.0),),
            summary="Analyzing 1 heap snapshots"
        )
        report = AnalysisReport(
            profile_type=ProfileType.HEAP,
            heuristics=heuristics,
            analysis=Analysis.empty(),
            error=AnalysisTransportError(AnalysisErrorCode.TIMEOUT, "timed out", when)
        )

        dto = map_report(report)

        assert dto["summary"] == "Analyzing 1 heap snapshots"
        assert dto["error"] == {"code": "timeout", "message": "timed out", "occurred_at": "2026-01-01T00:00:00Z"}
        assert dto["insights"] == [{
            "type": "info",
            "message": "Total heap size: 1.0 MB",
            "timestamp": "2026-01-01T00:00:00Z",
            "metric": "heap_size",
            "value": 1.0,
        }]
