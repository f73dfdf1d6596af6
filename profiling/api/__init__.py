"""HTTP API over a ProfilingSession."""

from .server import create_app

__all__ = ['create_app']
