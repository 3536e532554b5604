from __future__ import annotations

import logging
from typing import Optional, Protocol

import httpx
from google import genai
from google.genai import types
from google.genai.errors import APIError

from plateful.services.errors import LLMConfigurationError, RateLimitedError, ServiceError

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "gemini-2.5-flash"


class LLMClient(Protocol):
    def complete(self, prompt: str, max_tokens: int) -> str: ...

    def search(self, prompt: str, max_tokens: int) -> str: ...


def _is_rate_limited_error(exc: Exception) -> bool:
    status_code = getattr(exc, "status_code", None) or getattr(exc, "code", None)
    if status_code == 429:
        return True
    return "RESOURCE_EXHAUSTED" in str(exc)


class GeminiClient:
    def __init__(
        self,
        api_key: str,
        model_name: str = DEFAULT_MODEL_NAME,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self.api_key = api_key
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self._client = self._configure_api()

    def _configure_api(self) -> genai.Client:
        if not self.api_key:
            raise LLMConfigurationError("Missing Google API key.")
        http_options = None
        if self.timeout_seconds:
            http_options = types.HttpOptions(timeout=int(self.timeout_seconds * 1000))
        return genai.Client(api_key=self.api_key, http_options=http_options)

    def _generate(self, prompt: str, config: types.GenerateContentConfig) -> str:
        try:
            response = self._client.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=config,
            )
        except APIError as err:
            if _is_rate_limited_error(err):
                raise RateLimitedError(
                    "Gemini API quota reached. Try again in a few moments."
                ) from err
            raise ServiceError(f"Gemini request failed: {err}") from err
        except httpx.HTTPError as err:
            logger.warning("gemini.transport_error model=%s error=%s", self.model_name, err)
            raise ServiceError(f"Gemini request failed: {err}") from err

        text = response.text
        if not text:
            logger.warning("gemini.empty_response model=%s", self.model_name)
            return ""
        return text

    def complete(self, prompt: str, max_tokens: int) -> str:
        config = types.GenerateContentConfig(max_output_tokens=max_tokens)
        return self._generate(prompt, config)

    def search(self, prompt: str, max_tokens: int) -> str:
        config = types.GenerateContentConfig(
            max_output_tokens=max_tokens,
            tools=[types.Tool(google_search=types.GoogleSearch())],
        )
        return self._generate(prompt, config)
