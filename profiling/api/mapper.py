"""
API Mapper
==========

Transforms internal contracts into plain-dict DTOs for presentation
collaborators. Values are passed through unchanged; no smoothing.
"""
from typing import Any, Dict, List, Optional
from datetime import datetime

from ..contracts.base import ProfileType
from ..contracts.insights import Insight, ProfileInsights, TopConsumer
from ..contracts.timeseries import StoreSnapshot
from analysis.contracts import Analysis, AnalysisReport, AnalysisTransportError


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat().replace('+00:00', 'Z')


def map_insight(insight: Insight) -> Dict[str, Any]:
    return {
        "type": insight.kind.value,
        "message": insight.message,
        "timestamp": to_iso(insight.timestamp),
        "metric": insight.metric,
        "value": insight.value,
    }


def map_top_consumer(consumer: TopConsumer) -> Dict[str, Any]:
    return {
        "name": consumer.name,
        "value": consumer.value,
        "percentage_of_total": consumer.percentage_of_total,
    }


def map_insights(insights: ProfileInsights) -> Dict[str, Any]:
    return {
        "insights": [map_insight(i) for i in insights.insights],
        "top_consumers": [map_top_consumer(c) for c in insights.top_consumers],
        "summary": insights.summary,
    }


def map_analysis(analysis: Analysis) -> Dict[str, Any]:
    return {
        "insights": [map_insight(i) for i in analysis.insights],
        "summary": analysis.summary,
        "recommendations": list(analysis.recommendations),
        "code_suggestions": list(analysis.code_suggestions),
    }


def map_error(error: Optional[AnalysisTransportError]) -> Optional[Dict[str, Any]]:
    if error is None:
        return None
    return {
        "code": error.code.value,
        "message": error.message,
        "occurred_at": to_iso(error.occurred_at),
    }


def map_report(report: AnalysisReport) -> Dict[str, Any]:
    """AnalysisReport -> DTO. Heuristics are present even when the model failed."""
    return {
        "profile_type": report.profile_type.value,
        "summary": report.summary,
        "heuristics": map_insights(report.heuristics),
        "analysis": map_analysis(report.analysis),
        "insights": [map_insight(i) for i in report.merged_insights],
        "error": map_error(report.error),
    }


def map_snapshot(snapshot: StoreSnapshot) -> Dict[str, Any]:
    """Aligned dates plus one flat/cum array per series."""
    return {
        "profile_type": snapshot.profile_type.value if snapshot.profile_type else None,
        "dates": [to_iso(d) for d in snapshot.dates],
        "series": {
            series.name: {
                "flat": [p.flat for p in series.points],
                "cum": [p.cum for p in series.points],
            }
            for series in snapshot.series
        },
    }


def map_profile_list(counts: Dict[ProfileType, int]) -> List[Dict[str, Any]]:
    return [
        {"profile_type": pt.value, "samples": count}
        for pt, count in counts.items()
    ]
