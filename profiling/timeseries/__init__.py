"""Aligned time-series storage for profile samples."""

from .store import TimeSeriesStore, MergeResult, merge

__all__ = ['TimeSeriesStore', 'MergeResult', 'merge']
