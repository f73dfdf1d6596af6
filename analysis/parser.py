"""
Model Response Parser
=====================

Turns free-text model output into a typed Analysis.

TIERS:
1. parse_marked_sections - reads the four '=== NAME ===' sections the
   prompt asks for. Sections may be missing or in any order. Raises
   AnalysisParseError when no marker is present at all.
2. parse_free_form - splits on blank lines and classifies each block by
   keyword. Used only when tier 1 found no markers.

parse() composes the tiers, synthesizes a summary when one is missing
and never raises.
"""

from __future__ import annotations
from dataclasses import replace
from datetime import datetime, timezone
from typing import List, Optional, Tuple
import re

import structlog

from profiling.contracts.insights import Insight, InsightKind

from .contracts import NO_SUMMARY, Analysis, AnalysisParseError
from .prompts import (
    CODE_SUGGESTIONS_MARKER,
    INSIGHTS_MARKER,
    RECOMMENDATIONS_MARKER,
    SUMMARY_MARKER,
)


logger = structlog.get_logger(__name__)

LLM_INSIGHT_METRIC = "llm_insight"


def _section_pattern(marker: str) -> re.Pattern:
    # Body runs to the next line starting with "===" or to the end of text
    return re.compile(
        re.escape(marker) + r"[ \t]*\n(.*?)(?=^[ \t]*===|\Z)",
        re.DOTALL | re.MULTILINE
    )


_INSIGHTS_RE = _section_pattern(INSIGHTS_MARKER)
_RECOMMENDATIONS_RE = _section_pattern(RECOMMENDATIONS_MARKER)
_CODE_SUGGESTIONS_RE = _section_pattern(CODE_SUGGESTIONS_MARKER)
_SUMMARY_RE = _section_pattern(SUMMARY_MARKER)

_SEVERITY_TAG_RE = re.compile(r"\[(critical|warning)\]", re.IGNORECASE)
_LEADING_BULLET_RE = re.compile(r"^[-*]")
_BLOCK_SPLIT_RE = re.compile(r"\n[ \t]*\n")

_INSIGHTS_HEADING_RE = re.compile(r"insights?:?", re.IGNORECASE)
_RECOMMENDATIONS_HEADING_RE = re.compile(r"recommendations?:?", re.IGNORECASE)
_CODE_HEADING_RE = re.compile(r"code[_\s]suggestions?:?", re.IGNORECASE)
_SUMMARY_HEADING_RE = re.compile(r"summary:?", re.IGNORECASE)


# =============================================================================
# LINE RULES
# =============================================================================

def parse_insight_lines(text: str, received_at: datetime) -> List[Insight]:
    """Lines starting with '-', '*' or '[' become insights, tagged by severity."""
    insights = []
    for line in _lines(text):
        if line[0] not in "-*[":
            continue

        clean = _LEADING_BULLET_RE.sub("", line).strip()
        lowered = clean.lower()
        if "[critical]" in lowered:
            kind = InsightKind.CRITICAL
        elif "[warning]" in lowered:
            kind = InsightKind.WARNING
        else:
            kind = InsightKind.INFO

        message = _SEVERITY_TAG_RE.sub("", clean, count=1).strip()
        if not message:
            continue

        insights.append(Insight(
            kind=kind,
            message=message,
            timestamp=received_at,
            metric=LLM_INSIGHT_METRIC
        ))
    return insights


def parse_bullets(text: str, markers: str = "-") -> List[str]:
    """Lines starting with one of `markers`, with the marker stripped."""
    items = []
    for line in _lines(text):
        if line[0] in markers:
            item = line[1:].strip()
            if item:
                items.append(item)
    return items


def _lines(text: str) -> List[str]:
    return [line.strip() for line in text.split("\n") if line.strip()]


# =============================================================================
# TIER 1: MARKED SECTIONS
# =============================================================================

def parse_marked_sections(text: str, received_at: Optional[datetime] = None) -> Analysis:
    """
    Extract the four marked sections independently.

    Raises AnalysisParseError when none of the markers are present.
    """
    received_at = received_at or datetime.now(timezone.utc)
    text = _normalize(text)

    insights_match = _INSIGHTS_RE.search(text)
    recommendations_match = _RECOMMENDATIONS_RE.search(text)
    code_match = _CODE_SUGGESTIONS_RE.search(text)
    summary_match = _SUMMARY_RE.search(text)

    if not (insights_match or recommendations_match or code_match or summary_match):
        raise AnalysisParseError("No section markers found in model response")

    insights: List[Insight] = []
    recommendations: List[str] = []
    code_suggestions: List[str] = []
    summary = NO_SUMMARY

    if insights_match:
        insights = parse_insight_lines(insights_match.group(1).strip(), received_at)
    if recommendations_match:
        recommendations = parse_bullets(recommendations_match.group(1).strip())
    if code_match:
        code_suggestions = parse_bullets(code_match.group(1).strip())
    if summary_match and summary_match.group(1).strip():
        summary = summary_match.group(1).strip()

    return Analysis(
        insights=tuple(insights),
        summary=summary,
        recommendations=tuple(recommendations),
        code_suggestions=tuple(code_suggestions)
    )


# =============================================================================
# TIER 2: FREE FORM
# =============================================================================

def parse_free_form(text: str, received_at: Optional[datetime] = None) -> Analysis:
    """
    Blank-line separated blocks, classified by the first keyword found in
    the order insight, recommend, code, summary.
    """
    received_at = received_at or datetime.now(timezone.utc)
    text = _normalize(text)

    insights: List[Insight] = []
    recommendations: List[str] = []
    code_suggestions: List[str] = []
    summary = NO_SUMMARY

    for block in _BLOCK_SPLIT_RE.split(text):
        lowered = block.lower()
        if "insight" in lowered:
            body = _INSIGHTS_HEADING_RE.sub("", block, count=1).strip()
            insights.extend(parse_insight_lines(body, received_at))
        elif "recommend" in lowered:
            body = _RECOMMENDATIONS_HEADING_RE.sub("", block, count=1).strip()
            recommendations.extend(parse_bullets(body, markers="-*"))
        elif "code" in lowered:
            body = _CODE_HEADING_RE.sub("", block, count=1).strip()
            code_suggestions.extend(parse_bullets(body, markers="-*"))
        elif "summary" in lowered:
            body = _SUMMARY_HEADING_RE.sub("", block, count=1).strip()
            if body:
                summary = body

    return Analysis(
        insights=tuple(insights),
        summary=summary,
        recommendations=tuple(recommendations),
        code_suggestions=tuple(code_suggestions)
    )


# =============================================================================
# DISPATCHER
# =============================================================================

def synthesize_summary(analysis: Analysis) -> Analysis:
    """Fill a missing summary from counts and the first insight."""
    if analysis.has_summary:
        return analysis
    if not analysis.insights and not analysis.recommendations:
        return analysis

    summary = (
        f"Analysis found {len(analysis.insights)} insights and "
        f"{len(analysis.recommendations)} recommendations."
    )
    if analysis.insights:
        summary += f" Key insight: {analysis.insights[0].message}"
    return replace(analysis, summary=summary)


def parse(raw_text: Optional[str], received_at: Optional[datetime] = None) -> Analysis:
    """
    Parse a model reply. Total: returns an empty Analysis on any failure.
    """
    received_at = received_at or datetime.now(timezone.utc)
    try:
        text = raw_text or ""
        try:
            analysis = parse_marked_sections(text, received_at)
        except AnalysisParseError:
            if text.strip():
                logger.info("analysis_parse_fallback", length=len(text))
            analysis = parse_free_form(text, received_at)
        return synthesize_summary(analysis)
    except Exception:
        logger.exception("analysis_parse_failed")
        return Analysis.empty()


def _normalize(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def section_counts(analysis: Analysis) -> Tuple[int, int, int]:
    return (
        len(analysis.insights),
        len(analysis.recommendations),
        len(analysis.code_suggestions),
    )
