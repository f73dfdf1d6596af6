"""
Response Parser Tests

INVARIANTS TESTED:
1. Marked sections are read independently and in any order
2. Free-form fallback only runs when no marker is present
3. parse() never raises and always yields a summary string
"""

from datetime import datetime, timezone

import pytest

from analysis.contracts import NO_SUMMARY, AnalysisParseError
from analysis.parser import (
    parse,
    parse_free_form,
    parse_marked_sections,
    synthesize_summary,
)
from profiling.contracts.insights import InsightKind

from tests.fixtures import FREE_FORM_RESPONSE, MARKED_RESPONSE


RECEIVED = datetime(2026, 1, 1, tzinfo=timezone.utc)


class TestMarkedSections:

    def test_full_round_trip(self):
        analysis = parse(MARKED_RESPONSE, RECEIVED)

        assert len(analysis.insights) == 2
        assert analysis.insights[0].kind == InsightKind.CRITICAL
        assert analysis.insights[0].message == "main.MemoryIntensiveTask leaks 1 MB per tick"
        assert analysis.insights[1].kind == InsightKind.INFO
        assert analysis.recommendations == (
            "Free chunks after use",
            "Cap the retained slice",
            "Add a heap alert",
        )
        assert analysis.code_suggestions == ("Use a ring buffer in main.MemoryIntensiveTask",)
        assert analysis.summary == "The heap grows linearly because of a retained slice."

    def test_insight_metadata(self):
        insight = parse(MARKED_RESPONSE, RECEIVED).insights[0]

        assert insight.metric == "llm_insight"
        assert insight.timestamp == RECEIVED

    def test_sections_in_any_order(self):
        text = (
            "=== SUMMARY ===\nShort.\n\n"
            "=== RECOMMENDATIONS ===\n- Do less\n\n"
            "=== INSIGHTS ===\n- [warning] Slow path\n"
        )
        analysis = parse_marked_sections(text, RECEIVED)

        assert analysis.summary == "Short."
        assert analysis.recommendations == ("Do less",)
        assert analysis.insights[0].kind == InsightKind.WARNING
        assert analysis.insights[0].message == "Slow path"
        assert analysis.code_suggestions == ()

    def test_bracket_and_star_insight_lines(self):
        text = "=== INSIGHTS ===\n[CRITICAL] Leak\n* Star line\nplain prose is ignored\n"
        analysis = parse_marked_sections(text, RECEIVED)

        assert [i.message for i in analysis.insights] == ["Leak", "Star line"]
        assert analysis.insights[0].kind == InsightKind.CRITICAL

    def test_empty_summary_keeps_placeholder(self):
        analysis = parse_marked_sections("=== INSIGHTS ===\n- One\n=== SUMMARY ===\n   \n", RECEIVED)

        assert analysis.summary == NO_SUMMARY

    def test_empty_bullets_dropped(self):
        analysis = parse_marked_sections("=== RECOMMENDATIONS ===\n-\n- Real\n", RECEIVED)

        assert analysis.recommendations == ("Real",)

    def test_crlf_line_endings(self):
        analysis = parse_marked_sections(MARKED_RESPONSE.replace("\n", "\r\n"), RECEIVED)

        assert len(analysis.recommendations) == 3

    def test_inline_equality_does_not_end_section(self):
        text = (
            "=== INSIGHTS ===\n"
            "- [WARNING] check err == nil before using the buffer\n"
            "- a == b holds for every retained chunk\n"
            "=== CODE_SUGGESTIONS ===\n"
            "- if buf == nil { return }\n"
            "=== SUMMARY ===\n"
            "Compare with == only after the nil check.\n"
        )

        analysis = parse_marked_sections(text, RECEIVED)

        assert [i.message for i in analysis.insights] == [
            "check err == nil before using the buffer",
            "a == b holds for every retained chunk",
        ]
        assert analysis.insights[0].kind == InsightKind.WARNING
        assert analysis.code_suggestions == ("if buf == nil { return }",)
        assert analysis.summary == "Compare with == only after the nil check."

    def test_adjacent_markers_give_empty_section(self):
        analysis = parse_marked_sections(
            "=== INSIGHTS ===\n=== RECOMMENDATIONS ===\n- Free chunks\n", RECEIVED
        )

        assert analysis.insights == ()
        assert analysis.recommendations == ("Free chunks",)

    def test_no_markers_raises(self):
        with pytest.raises(AnalysisParseError):
            parse_marked_sections("just some prose", RECEIVED)


class TestFreeForm:

    def test_insights_block(self):
        analysis = parse_free_form(FREE_FORM_RESPONSE, RECEIVED)

        assert [i.message for i in analysis.insights] == [
            "Heap is growing steadily",
            "GC pressure is rising",
        ]
        assert analysis.insights[1].kind == InsightKind.WARNING
        assert analysis.recommendations == ("Reduce allocations",)
        assert analysis.summary == "Memory pressure comes from one task."

    def test_code_block(self):
        analysis = parse_free_form("Code suggestions:\n* Inline the hot loop\n", RECEIVED)

        assert analysis.code_suggestions == ("Inline the hot loop",)

    def test_dispatcher_falls_back(self):
        analysis = parse(FREE_FORM_RESPONSE, RECEIVED)

        assert len(analysis.insights) == 2

    def test_markers_win_over_keywords(self):
        text = "Insights:\n- ignored\n\n=== SUMMARY ===\nOnly this."
        analysis = parse(text, RECEIVED)

        assert analysis.insights == ()
        assert analysis.summary == "Only this."


class TestDispatcher:

    def test_empty_input(self):
        analysis = parse("")

        assert analysis.insights == ()
        assert analysis.recommendations == ()
        assert analysis.code_suggestions == ()
        assert analysis.summary == "No summary available"

    def test_none_input(self):
        assert parse(None).is_empty

    def test_unparseable_input_is_empty(self):
        assert parse("nothing structured here at all").is_empty

    def test_summary_synthesized(self):
        text = "=== INSIGHTS ===\n- Leak in cache\n- Slow GC\n=== RECOMMENDATIONS ===\n- Fix it\n"
        analysis = parse(text, RECEIVED)

        assert analysis.summary == (
            "Analysis found 2 insights and 1 recommendations. Key insight: Leak in cache"
        )

    def test_synthesis_without_insights(self):
        text = "=== RECOMMENDATIONS ===\n- Fix it\n"

        assert parse(text).summary == "Analysis found 0 insights and 1 recommendations."

    def test_existing_summary_kept(self):
        analysis = parse(MARKED_RESPONSE)

        assert synthesize_summary(analysis) is analysis

    def test_non_string_input_never_raises(self):
        assert parse(12345).is_empty
