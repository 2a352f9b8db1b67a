"""Gemini through the google-genai SDK (Vertex mode or API key)."""
from __future__ import annotations

from threading import Lock
from typing import Any, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from runplan.services.errors import EmptyResponseError, ProviderError
from runplan.services.providers.base import GenerationParams, GenerationProvider


class GeminiSdkProvider(GenerationProvider):
    backend = "gemini-sdk"

    def __init__(
        self,
        model: str,
        *,
        project: Optional[str] = None,
        region: Optional[str] = None,
        api_key: Optional[str] = None,
        client: Any = None,
        timeout: float = 25.0,
        params: GenerationParams | None = None,
    ):
        super().__init__(model, timeout=timeout, params=params)
        self.project = project
        self.region = region
        self.api_key = api_key
        self._client = client
        self._lock = Lock()

    def generate(self, prompt: str) -> str:
        config = genai_types.GenerateContentConfig(
            max_output_tokens=self.params.max_output_tokens,
            temperature=self.params.temperature,
            top_p=self.params.top_p,
            top_k=self.params.top_k,
        )
        try:
            response = self._get_client().models.generate_content(
                model=self.model,
                contents=prompt,
                config=config,
            )
        except genai_errors.APIError as exc:
            raise ProviderError(exc.message or str(exc), status=exc.code, provider=self.label) from exc
        except httpx.TimeoutException as exc:
            raise ProviderError(f"Request timed out after {self.timeout}s", provider=self.label) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"Transport error: {exc}", provider=self.label) from exc

        text = ""
        if response.candidates:
            candidate = response.candidates[0]
            if candidate.content and candidate.content.parts:
                text = candidate.content.parts[0].text or ""
        if not text.strip():
            raise EmptyResponseError("no candidate text returned", provider=self.label)
        return text

    def _get_client(self):
        with self._lock:
            if self._client is None:
                http_options = genai_types.HttpOptions(timeout=int(self.timeout * 1000))
                if self.api_key:
                    self._client = genai.Client(api_key=self.api_key, http_options=http_options)
                else:
                    self._client = genai.Client(
                        vertexai=True,
                        project=self.project,
                        location=self.region,
                        http_options=http_options,
                    )
            return self._client
