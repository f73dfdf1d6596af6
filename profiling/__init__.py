"""
Profile Insights Core

This package turns periodic runtime-profiling samples into an aligned
time series and derives deterministic insights from it.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Frozen data types shared by every layer
   - Error taxonomy for ingestion and analysis

2. TIME-SERIES STORE (timeseries/)
   - Responsibility: Merge samples into aligned, append-only series
   - Allowed inputs: Decoded samples (name -> {flat, cum})
   - Outputs: StoreSnapshot (immutable)
   - MUST NOT: Interpret values or reorder timestamps

3. HEURISTIC DETECTORS (insights/)
   - Responsibility: Growth, hotspot and concentration insights
   - Allowed inputs: StoreSnapshot
   - Outputs: ProfileInsights
   - MUST NOT: Fail, mutate the store, call the network

4. SESSION ENGINE (engine.py)
   - Owns one store per profile type and the analysis orchestrator

5. API (api/)
   - Read-mostly HTTP surface for presentation collaborators

The external model boundary lives in the sibling ``analysis`` package and
sample acquisition in ``sampling``.
"""

__version__ = "0.1.0"
