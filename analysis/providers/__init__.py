"""
Analysis Providers Package
==========================

Available providers:
- OllamaProvider: HTTP client for an Ollama-compatible endpoint
- MockProvider: Scripted provider for testing
"""

from .base import (
    AnalysisProvider,
    ProviderVersion,
    ProviderResponse,
    InvocationParams,
)
from .mock import MockProvider
from .ollama import OllamaProvider, build_payload

__all__ = [
    'AnalysisProvider',
    'ProviderVersion',
    'ProviderResponse',
    'InvocationParams',
    'MockProvider',
    'OllamaProvider',
    'build_payload',
]
