from __future__ import annotations

import httpx
import pytest
from google.genai.errors import ClientError, ServerError

from plateful.services.errors import LLMConfigurationError, RateLimitedError, ServiceError
from plateful.services.gemini_client import GeminiClient

from stubs import scripted_gemini


def _api_error(error_type: type, code: int, status: str) -> Exception:
    return error_type(code, {"error": {"code": code, "message": "request failed", "status": status}})


class TestConfiguration:
    def test_missing_key(self) -> None:
        with pytest.raises(LLMConfigurationError):
            GeminiClient(api_key="")


class TestGenerate:
    def test_complete_returns_text_and_token_limit(self) -> None:
        client, models = scripted_gemini('{"dish": "Pad Thai"}')

        assert client.complete("prompt", 512) == '{"dish": "Pad Thai"}'
        assert models.calls[0]["config"].max_output_tokens == 512
        assert models.calls[0]["model"] == client.model_name

    def test_search_attaches_google_search_tool(self) -> None:
        client, models = scripted_gemini("[]")

        client.search("find recipes", 1024)

        tools = models.calls[0]["config"].tools
        assert tools and tools[0].google_search is not None

    def test_empty_response_is_empty_text(self) -> None:
        client, _ = scripted_gemini("")
        assert client.complete("prompt", 10) == ""


class TestErrorMapping:
    def test_quota_exhaustion_is_rate_limited(self) -> None:
        client, _ = scripted_gemini(_api_error(ClientError, 429, "RESOURCE_EXHAUSTED"))
        with pytest.raises(RateLimitedError):
            client.complete("prompt", 10)

    def test_other_api_errors_are_service_errors(self) -> None:
        client, _ = scripted_gemini(_api_error(ServerError, 500, "INTERNAL"))

        with pytest.raises(ServiceError) as excinfo:
            client.complete("prompt", 10)

        assert not isinstance(excinfo.value, RateLimitedError)

    @pytest.mark.parametrize(
        "error",
        [httpx.ReadTimeout("timed out"), httpx.ConnectError("connection refused")],
    )
    def test_transport_failures_are_service_errors(self, error: Exception) -> None:
        client, _ = scripted_gemini(error)

        with pytest.raises(ServiceError) as excinfo:
            client.search("prompt", 10)

        assert excinfo.value.__cause__ is error
