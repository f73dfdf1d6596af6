"""
Sample Sources

A SampleSource produces one RawSample per fetch() call.

PRINCIPLES:
===========
1. Sources never touch the store; the loop merges what they return
2. Failures raise SampleFetchError with an explicit FetchStatus
3. The timestamp is taken when the response arrives
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import math

import httpx
import structlog

from profiling.contracts.base import ProfileType

from .contracts import FetchStatus, ProfileTarget, RawSample, SampleFetchError


logger = structlog.get_logger(__name__)


class SampleSource(ABC):
    """One profile type from one place."""

    @property
    @abstractmethod
    def source_id(self) -> str:
        pass

    @property
    @abstractmethod
    def profile_type(self) -> ProfileType:
        pass

    @abstractmethod
    async def fetch(self) -> RawSample:
        """Return the next sample or raise SampleFetchError."""

    async def aclose(self) -> None:
        pass


def decode_values(body: Any) -> Dict[str, Optional[Dict[str, float]]]:
    """
    Accept {"samples": {name: {flat, cum}}} or a bare {name: {flat, cum}}.

    flat and cum must be finite JSON numbers when present; missing or null
    values decode to 0. Raises ValueError on any other shape.
    """
    if isinstance(body, dict) and isinstance(body.get("samples"), dict):
        body = body["samples"]
    if not isinstance(body, dict):
        raise ValueError("Sample body must be a JSON object")

    values = {}
    for name, entry in body.items():
        if entry is None:
            values[str(name)] = None
            continue
        if not isinstance(entry, dict):
            raise ValueError(f"Entry for {name!r} must be an object")
        values[str(name)] = {
            "flat": _decode_number(name, "flat", entry.get("flat")),
            "cum": _decode_number(name, "cum", entry.get("cum")),
        }
    return values


def _decode_number(name: str, key: str, raw: Any) -> float:
    if raw is None:
        return 0.0
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValueError(f"{key} of {name!r} must be a number, got {raw!r}")
    value = float(raw)
    if not math.isfinite(value):
        raise ValueError(f"{key} of {name!r} must be finite, got {raw!r}")
    return value


class HttpSampleSource(SampleSource):
    """
    GETs a JSON-rendered profile from a ProfileTarget URL.

    The httpx.AsyncClient may be injected; one created here is closed by
    aclose().
    """

    def __init__(
        self,
        target: ProfileTarget,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0
    ):
        self._target = target
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()

    @property
    def source_id(self) -> str:
        return self._target.target_id

    @property
    def profile_type(self) -> ProfileType:
        return self._target.profile_type

    @property
    def target(self) -> ProfileTarget:
        return self._target

    async def fetch(self) -> RawSample:
        try:
            response = await self._client.get(
                self._target.url,
                timeout=self._timeout,
                follow_redirects=True
            )
        except httpx.TimeoutException as e:
            raise SampleFetchError(FetchStatus.TIMEOUT, f"Timeout after {self._timeout}s: {e}")
        except httpx.HTTPError as e:
            raise SampleFetchError(FetchStatus.NETWORK_ERROR, str(e))

        received_at = datetime.now(timezone.utc)

        if response.status_code != 200:
            raise SampleFetchError(FetchStatus.HTTP_ERROR, f"HTTP {response.status_code}")

        try:
            values = decode_values(response.json())
        except ValueError as e:
            raise SampleFetchError(FetchStatus.PARSE_ERROR, str(e))

        return RawSample(
            profile_type=self.profile_type,
            timestamp=received_at,
            values=values
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
