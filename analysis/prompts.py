"""
Canonical Prompt Generation
===========================

Pure functions that render a store snapshot into the analysis prompt.

INVARIANT: Same (profile type, snapshot, config) -> same prompt_hash

The reply contract at the end of the prompt is what analysis.parser
reads. The four section markers must stay byte-identical to
SECTION_MARKERS.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import hashlib

from profiling.config import PromptConfig
from profiling.contracts.base import ProfileType
from profiling.contracts.timeseries import SeriesSnapshot, StoreSnapshot


INSIGHTS_MARKER = "=== INSIGHTS ==="
RECOMMENDATIONS_MARKER = "=== RECOMMENDATIONS ==="
CODE_SUGGESTIONS_MARKER = "=== CODE_SUGGESTIONS ==="
SUMMARY_MARKER = "=== SUMMARY ==="

SECTION_MARKERS = (
    INSIGHTS_MARKER,
    RECOMMENDATIONS_MARKER,
    CODE_SUGGESTIONS_MARKER,
    SUMMARY_MARKER,
)

RUNTIME_PREFIX = "runtime."


# =============================================================================
# DERIVED FUNCTION METRICS
# =============================================================================

@dataclass(frozen=True)
class FunctionProfile:
    """Per-function view of one series, as presented to the model."""
    name: str
    flat: float
    cumulative: float
    growth: float
    samples: int
    peak: float
    is_runtime: bool
    stack_path: Tuple[str, ...]

    @staticmethod
    def from_series(series: SeriesSnapshot) -> FunctionProfile:
        current = series.latest
        initial = series.first
        growth = ((current.flat - initial.flat) / initial.flat) * 100 if initial.flat > 0 else 0.0
        return FunctionProfile(
            name=series.name,
            flat=current.flat,
            cumulative=current.cum,
            growth=growth,
            samples=len(series.points),
            peak=series.peak_flat,
            is_runtime=series.name.startswith(RUNTIME_PREFIX),
            stack_path=stack_path(series.name)
        )


@dataclass(frozen=True)
class PackageGroup:
    name: str
    total_flat: float
    total_cum: float
    functions: Tuple[FunctionProfile, ...]


@dataclass(frozen=True)
class ProfileTotals:
    current: float
    peak: float
    runtime_overhead: float
    duration_seconds: float

    @property
    def runtime_overhead_pct(self) -> float:
        return _share(self.runtime_overhead, self.current)


def stack_path(name: str) -> Tuple[str, ...]:
    """
    Decompose a symbol into path segments.

    Slash-separated segments are kept whole; the last one is split once
    on '.' into package and symbol:
    'github.com/acme/cache.(*LRU).Add' -> ('github.com', 'acme', 'cache', '(*LRU).Add')
    """
    parts = [p for p in name.split("/") if p]
    if not parts:
        return (name,)
    package, dot, symbol = parts[-1].partition(".")
    if dot and package and symbol:
        parts[-1:] = [package, symbol]
    return tuple(parts)


def function_profiles(snapshot: StoreSnapshot) -> List[FunctionProfile]:
    return [FunctionProfile.from_series(s) for s in snapshot.series]


def profile_totals(snapshot: StoreSnapshot, functions: List[FunctionProfile]) -> ProfileTotals:
    return ProfileTotals(
        current=sum(fn.flat for fn in functions),
        peak=sum(fn.peak for fn in functions),
        runtime_overhead=sum(fn.flat for fn in functions if fn.is_runtime),
        duration_seconds=snapshot.duration_seconds
    )


def group_packages(functions: List[FunctionProfile]) -> List[PackageGroup]:
    """Aggregate by leading path segment, largest flat total first."""
    groups: Dict[str, List[FunctionProfile]] = {}
    for fn in functions:
        groups.setdefault(fn.stack_path[0], []).append(fn)

    result = [
        PackageGroup(
            name=name,
            total_flat=sum(fn.flat for fn in members),
            total_cum=sum(fn.cumulative for fn in members),
            functions=tuple(members)
        )
        for name, members in groups.items()
    ]
    return sorted(result, key=lambda g: g.total_flat, reverse=True)


def hot_paths(
    functions: List[FunctionProfile],
    total_current: float,
    config: PromptConfig
) -> List[FunctionProfile]:
    hot = [
        fn for fn in functions
        if fn.growth > config.hot_path_growth_pct
        or fn.flat > total_current * (config.hot_path_share_pct / 100)
    ]
    return sorted(hot, key=lambda fn: fn.flat, reverse=True)


# =============================================================================
# RENDERING
# =============================================================================

def build_prompt(
    profile_type: ProfileType,
    snapshot: StoreSnapshot,
    config: Optional[PromptConfig] = None
) -> str:
    """Render the analysis prompt for one profile type."""
    config = config or PromptConfig()
    functions = function_profiles(snapshot)
    totals = profile_totals(snapshot, functions)

    top_functions = sorted(functions, key=lambda fn: fn.flat, reverse=True)[:config.top_functions]
    hot = hot_paths(functions, totals.current, config)
    groups = group_packages(functions)[:config.package_groups]

    sections = [
        _render_header(profile_type, totals),
        "TOP CONSUMERS (with full paths):\n" + _render_functions(top_functions),
        "HOT PATHS (high growth or usage):\n" + _render_hot_paths(hot, totals.current),
        "PACKAGE GROUPS:\n" + _render_groups(groups, totals.current),
        _render_reply_contract(),
    ]
    return "\n\n".join(sections)


def _render_header(profile_type: ProfileType, totals: ProfileTotals) -> str:
    return (
        "You are a performance analysis expert specializing in Go applications. "
        f"Your task is to analyze the following {profile_type.value} profile data "
        "and provide a detailed analysis.\n"
        "\n"
        "PROFILE OVERVIEW:\n"
        f"Type: {profile_type.value}\n"
        f"Duration: {_num(totals.duration_seconds)}s\n"
        f"Total Current: {_num(totals.current)}\n"
        f"Peak Usage: {_num(totals.peak)}\n"
        f"Runtime Overhead: {_num(totals.runtime_overhead)} "
        f"({totals.runtime_overhead_pct:.1f}%)"
    )


def _render_functions(functions: List[FunctionProfile]) -> str:
    if not functions:
        return "(none)"
    return "\n".join(
        f"- {fn.name}\n"
        f"   Flat: {_num(fn.flat)}\n"
        f"   Cumulative: {_num(fn.cumulative)}\n"
        f"   Growth: {fn.growth:.1f}%\n"
        f"   Stack: {' -> '.join(fn.stack_path)}"
        for fn in functions
    )


def _render_hot_paths(functions: List[FunctionProfile], total_current: float) -> str:
    if not functions:
        return "(none)"
    return "\n".join(
        f"- {fn.name} ({fn.growth:.1f}% growth, "
        f"{_share(fn.flat, total_current):.1f}% of total)"
        for fn in functions
    )


def _render_groups(groups: List[PackageGroup], total_current: float) -> str:
    if not groups:
        return "(none)"
    return "\n".join(
        f"- {group.name}\n"
        f"   Flat: {_num(group.total_flat)}\n"
        f"   Cumulative: {_num(group.total_cum)}\n"
        f"   Total Impact: {_share(group.total_flat, total_current):.1f}%\n"
        f"   Functions: {len(group.functions)}"
        for group in groups
    )


def _render_reply_contract() -> str:
    return (
        "Analyze this data and provide your response in the following EXACT format "
        "(keep the section headers exactly as shown):\n"
        "\n"
        f"{INSIGHTS_MARKER}\n"
        "[List each insight on a new line, prefix critical issues with [CRITICAL] "
        "and warnings with [WARNING]]\n"
        "- Insight 1\n"
        "- Insight 2\n"
        "...\n"
        "\n"
        f"{RECOMMENDATIONS_MARKER}\n"
        "[List each recommendation on a new line]\n"
        "- Recommendation 1\n"
        "- Recommendation 2\n"
        "...\n"
        "\n"
        f"{CODE_SUGGESTIONS_MARKER}\n"
        "[List each code suggestion on a new line, include specific function names and paths]\n"
        "- Code suggestion 1\n"
        "- Code suggestion 2\n"
        "...\n"
        "\n"
        f"{SUMMARY_MARKER}\n"
        "[Write a concise paragraph summarizing the key findings and most important "
        "optimization opportunities]"
    )


def _share(value: float, total: float) -> float:
    return (value / total) * 100 if total else 0.0


def _num(value: float) -> str:
    value = float(value)
    return f"{value:.0f}" if value.is_integer() else f"{value:.2f}"


# =============================================================================
# CANONICAL PROMPT
# =============================================================================

def prompt_hash(prompt_text: str) -> str:
    return hashlib.sha256(prompt_text.encode()).hexdigest()


@dataclass(frozen=True)
class CanonicalPrompt:
    """
    Rendered prompt plus its hash, for audit logs and tests.

    INVARIANT: Same profile_type + snapshot + config -> same prompt_hash
    """
    profile_type: ProfileType
    sample_count: int
    prompt_text: str
    prompt_hash: str

    @staticmethod
    def create(
        profile_type: ProfileType,
        snapshot: StoreSnapshot,
        config: Optional[PromptConfig] = None
    ) -> CanonicalPrompt:
        text = build_prompt(profile_type, snapshot, config)
        return CanonicalPrompt(
            profile_type=profile_type,
            sample_count=len(snapshot.dates),
            prompt_text=text,
            prompt_hash=prompt_hash(text)
        )
