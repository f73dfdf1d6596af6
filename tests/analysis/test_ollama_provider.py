"""
Ollama Provider Tests

The HTTP boundary is faked with httpx.MockTransport. Every failure must
come back as a ProviderResponse with an explicit error code.
"""

import json

import httpx

from analysis.contracts import AnalysisErrorCode
from analysis.providers.base import InvocationParams
from analysis.providers.ollama import OllamaProvider, build_payload
from profiling.config import AnalysisConfig

from tests.fixtures import run


PARAMS = InvocationParams(temperature=0.2, num_predict=128, timeout_seconds=5.0)


def provider_for(handler, base_url="http://ollama.test:11434/") -> OllamaProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OllamaProvider(AnalysisConfig(base_url=base_url, model="codellama"), client=client)


def generate(provider: OllamaProvider, prompt: str = "analyze this"):
    async def scenario():
        try:
            return await provider.generate(prompt, PARAMS)
        finally:
            await provider._client.aclose()
    return run(scenario())


class TestRequest:

    def test_payload_shape(self):
        assert build_payload("codellama", "p", PARAMS) == {
            "model": "codellama",
            "prompt": "p",
            "stream": False,
            "options": {"temperature": 0.2, "num_predict": 128},
        }

    def test_posts_to_generate_endpoint(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": "ok", "done": True})

        response = generate(provider_for(handler), "the prompt")

        assert response.success
        assert response.content == "ok"
        assert seen["method"] == "POST"
        assert seen["url"] == "http://ollama.test:11434/api/generate"
        assert seen["body"]["prompt"] == "the prompt"
        assert seen["body"]["stream"] is False


class TestFailures:

    def test_non_2xx_is_api_error(self):
        response = generate(provider_for(lambda request: httpx.Response(500, text="boom")))

        assert not response.success
        assert response.error_code == AnalysisErrorCode.API_ERROR
        assert "500" in response.error_message

    def test_malformed_json_is_invalid_response(self):
        response = generate(provider_for(lambda request: httpx.Response(200, text="not json")))

        assert response.error_code == AnalysisErrorCode.INVALID_RESPONSE

    def test_missing_response_field_is_invalid_response(self):
        response = generate(provider_for(lambda request: httpx.Response(200, json={"done": True})))

        assert response.error_code == AnalysisErrorCode.INVALID_RESPONSE

    def test_non_string_response_is_invalid_response(self):
        response = generate(provider_for(lambda request: httpx.Response(200, json={"response": 3})))

        assert response.error_code == AnalysisErrorCode.INVALID_RESPONSE

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        response = generate(provider_for(handler))

        assert response.error_code == AnalysisErrorCode.TIMEOUT

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        response = generate(provider_for(handler))

        assert response.error_code == AnalysisErrorCode.NETWORK_ERROR

    def test_invalid_url_is_network_error(self):
        def handler(request):
            raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

        response = generate(provider_for(handler))

        assert not response.success
        assert response.error_code == AnalysisErrorCode.NETWORK_ERROR


class TestLifecycle:

    def test_injected_client_not_closed(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        provider = OllamaProvider(client=client)

        run(provider.aclose())

        assert not client.is_closed

    def test_owned_client_closed(self):
        provider = OllamaProvider()

        run(provider.aclose())

        assert provider._client.is_closed

    def test_version(self):
        provider = OllamaProvider(AnalysisConfig(model="llama3"))

        assert provider.provider_id == "ollama"
        assert provider.get_version().model_id == "llama3"
