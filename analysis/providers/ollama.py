"""
Ollama Provider
===============

Calls an Ollama-compatible /api/generate endpoint over httpx.

Request:  {"model", "prompt", "stream": false, "options": {"temperature", "num_predict"}}
Response: {"response": "<model text>", ...}
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import time

import httpx
import structlog

from profiling.config import AnalysisConfig
from ..contracts import AnalysisErrorCode
from .base import (
    AnalysisProvider,
    InvocationParams,
    ProviderResponse,
    ProviderVersion,
)


logger = structlog.get_logger(__name__)

GENERATE_PATH = "/api/generate"


def build_payload(model: str, prompt: str, params: InvocationParams) -> Dict[str, Any]:
    return {
        "model": model,
        "prompt": prompt,
        "stream": False,
        "options": {
            "temperature": params.temperature,
            "num_predict": params.num_predict,
        },
    }


class OllamaProvider(AnalysisProvider):
    """
    Provider for a local or remote Ollama server.

    The httpx.AsyncClient may be injected (tests pass one built on
    httpx.MockTransport). A client created here is closed by aclose().
    """

    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self._config = config or AnalysisConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()
        self._version = ProviderVersion(
            provider_id="ollama",
            model_id=self._config.model,
            api_version="generate-v1"
        )

    @property
    def provider_id(self) -> str:
        return "ollama"

    @property
    def endpoint(self) -> str:
        return self._config.base_url.rstrip("/") + GENERATE_PATH

    def get_version(self) -> ProviderVersion:
        return self._version

    async def generate(
        self,
        prompt: str,
        params: InvocationParams
    ) -> ProviderResponse:
        invoked_at = datetime.now(timezone.utc)
        start_time = time.monotonic()

        def failure(code: AnalysisErrorCode, message: str) -> ProviderResponse:
            logger.warning(
                "analysis_call_failed",
                endpoint=self.endpoint,
                code=code.value,
                error=message,
            )
            return ProviderResponse(
                success=False,
                error_code=code,
                error_message=message,
                provider_version=self._version,
                invoked_at=invoked_at,
                latency_ms=(time.monotonic() - start_time) * 1000
            )

        try:
            response = await self._client.post(
                self.endpoint,
                json=build_payload(self._config.model, prompt, params),
                timeout=params.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            return failure(
                AnalysisErrorCode.TIMEOUT,
                f"Analysis request timed out after {params.timeout_seconds}s: {e}"
            )
        except httpx.HTTPError as e:
            return failure(AnalysisErrorCode.NETWORK_ERROR, f"Analysis request failed: {e}")
        except httpx.InvalidURL as e:
            return failure(AnalysisErrorCode.NETWORK_ERROR, f"Invalid analysis endpoint: {e}")

        if not response.is_success:
            return failure(
                AnalysisErrorCode.API_ERROR,
                f"Analysis endpoint returned HTTP {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError as e:
            return failure(AnalysisErrorCode.INVALID_RESPONSE, f"Response is not JSON: {e}")

        content = body.get("response") if isinstance(body, dict) else None
        if not isinstance(content, str):
            return failure(
                AnalysisErrorCode.INVALID_RESPONSE,
                "Response JSON has no 'response' string"
            )

        return ProviderResponse(
            success=True,
            content=content,
            provider_version=self._version,
            invoked_at=invoked_at,
            latency_ms=(time.monotonic() - start_time) * 1000
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
