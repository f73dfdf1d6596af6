#!/usr/bin/env python3
"""
Live Profiling Demo
===================

Drives a ProfilingSession through the SamplingLoop and prints the
heuristic insights for every profile type, optionally followed by a
model analysis.

RUN:
    python live_demo.py
    python live_demo.py --ticks 60
    python live_demo.py --ticks 60 --analyze --ollama http://localhost:11434
    python live_demo.py --targets config/targets.json   # real pprof endpoints

Without --targets the samples come from the in-process synthetic
workload (a leaking Go service), so no external process is needed.
"""

from __future__ import annotations
import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from analysis.contracts import AnalysisReport
from analysis.providers.mock import MockProvider
from profiling.config import AppConfig
from profiling.contracts.base import ProfileType
from profiling.contracts.insights import ProfileInsights
from profiling.engine import ProfilingSession
from profiling.observability import configure_logging
from sampling import (
    HttpSampleSource,
    SampleSource,
    SamplingLoop,
    SimulatedService,
    SyntheticWorkloadSource,
    TargetRegistry,
)


# =============================================================================
# RENDERING
# =============================================================================

def print_insights(profile_type: ProfileType, insights: ProfileInsights, samples: int):
    print("\n" + "─" * 80)
    print(f"{profile_type.value.upper()} PROFILE  ({samples} samples)")
    print("─" * 80)
    print(f"  {insights.summary}")

    if not insights.insights:
        print("  (no insights)")
    for insight in insights.insights:
        print(f"  [{insight.kind.value:<8}] {insight.message}")

    if insights.top_consumers:
        print("\n  TOP CONSUMERS")
        for consumer in insights.top_consumers:
            print(f"    {consumer.name[:50]:<50} │ {consumer.percentage_of_total:>5.1f}%")


def print_report(report: AnalysisReport):
    print(f"\n  MODEL ANALYSIS ({report.profile_type.value})")
    if report.error is not None:
        print(f"  ✗ {report.error.code.value}: {report.error.message}")
        return

    for insight in report.analysis.insights:
        print(f"  [{insight.kind.value:<8}] {insight.message}")
    for recommendation in report.analysis.recommendations:
        print(f"  → {recommendation}")
    for suggestion in report.analysis.code_suggestions:
        print(f"  ✎ {suggestion}")
    print(f"\n  {report.summary}")


# =============================================================================
# DEMO
# =============================================================================

def build_sources(args, config: AppConfig) -> List[SampleSource]:
    if args.targets:
        registry = TargetRegistry.load(Path(args.targets))
        return [
            HttpSampleSource(target, timeout=config.sampling.fetch_timeout_seconds)
            for target in registry.enabled_targets()
        ]

    service = SimulatedService(seed=args.seed)
    return [
        SyntheticWorkloadSource(ProfileType.HEAP, service=service),
        SyntheticWorkloadSource(ProfileType.CPU, service=service),
    ]


async def run_demo(args, config: AppConfig) -> int:
    provider = None if args.ollama else MockProvider()
    session = ProfilingSession(config, provider=provider)
    loop = SamplingLoop(session, build_sources(args, config), config.sampling, session.metrics)

    try:
        await loop.run(max_ticks=args.ticks)
        await loop.drain()
    finally:
        await loop.aclose()

    failed = [r for r in loop.results if not r.succeeded]
    print(f"\n  FETCHES: {len(loop.results) - len(failed)} ok, {len(failed)} failed/rejected")

    for profile_type, samples in session.sample_counts().items():
        print_insights(profile_type, session.insights(profile_type), samples)
        if args.analyze:
            print_report(await session.analyze(profile_type))

    await session.aclose()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Live Profiling Demo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python live_demo.py --ticks 60                       # Synthetic workload
  python live_demo.py --analyze                        # Scripted model reply
  python live_demo.py --analyze --ollama http://localhost:11434
        """
    )
    parser.add_argument('--config', '-c', default=None, help='Path to JSON config file')
    parser.add_argument('--ticks', '-t', type=int, default=30, help='Number of sampling ticks')
    parser.add_argument('--interval', '-i', type=float, default=None,
                        help='Seconds between ticks (default: config value)')
    parser.add_argument('--targets', default=None,
                        help='targets.json of real pprof endpoints instead of the synthetic workload')
    parser.add_argument('--seed', type=int, default=42, help='Synthetic workload seed')
    parser.add_argument('--analyze', '-a', action='store_true', help='Request a model analysis')
    parser.add_argument('--ollama', default=None,
                        help='Ollama base URL; without it the analysis uses a scripted reply')

    args = parser.parse_args(argv)

    config = AppConfig.load(Path(args.config) if args.config else None)
    if args.ollama:
        config = replace(config, analysis=replace(config.analysis, base_url=args.ollama))
    if args.interval is not None:
        config = replace(config, sampling=replace(config.sampling, interval_seconds=args.interval))
    elif not args.targets:
        # The synthetic clock does not depend on wall time
        config = replace(config, sampling=replace(config.sampling, interval_seconds=0.01))

    configure_logging(config.logging)
    return asyncio.run(run_demo(args, config))


if __name__ == "__main__":
    sys.exit(main())
