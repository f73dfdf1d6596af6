"""
Analysis Layer
==============

External-model analysis of profile snapshots.

RESPONSIBILITY: Prompt rendering, one provider call, reply parsing
ALLOWED INPUTS: StoreSnapshot (read-only), configuration
OUTPUTS: AnalysisOutcome (Analysis plus optional AnalysisTransportError)

The heuristic detectors in profiling.insights never depend on this
layer; a failed analysis leaves them untouched.
"""

from .contracts import (
    NO_SUMMARY,
    Analysis,
    LLMAnalysis,
    AnalysisErrorCode,
    AnalysisTransportError,
    AnalysisParseError,
    AnalysisOutcome,
    AnalysisReport,
)
from .orchestrator import AnalysisOrchestrator
from .parser import parse, parse_marked_sections, parse_free_form
from .prompts import build_prompt, CanonicalPrompt, SECTION_MARKERS

__all__ = [
    'NO_SUMMARY', 'Analysis', 'LLMAnalysis',
    'AnalysisErrorCode', 'AnalysisTransportError', 'AnalysisParseError',
    'AnalysisOutcome', 'AnalysisReport',
    'AnalysisOrchestrator',
    'parse', 'parse_marked_sections', 'parse_free_form',
    'build_prompt', 'CanonicalPrompt', 'SECTION_MARKERS',
]
