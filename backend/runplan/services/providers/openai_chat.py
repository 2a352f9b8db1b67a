"""OpenAI chat completions with JSON-object output mode."""
from __future__ import annotations

from threading import Lock
from typing import Any, Optional

import openai

from runplan.services.errors import EmptyResponseError, ProviderError
from runplan.services.prompt_builder import system_prompt
from runplan.services.providers.base import GenerationParams, GenerationProvider


class OpenAIChatProvider(GenerationProvider):
    backend = "openai"

    def __init__(
        self,
        model: str,
        *,
        api_key: Optional[str] = None,
        language: Optional[str] = None,
        client: Any = None,
        timeout: float = 25.0,
        params: GenerationParams | None = None,
    ):
        super().__init__(model, timeout=timeout, params=params)
        self.api_key = api_key
        self.language = language
        self._client = client
        self._lock = Lock()

    def generate(self, prompt: str) -> str:
        try:
            completion = self._get_client().chat.completions.create(
                model=self.model,
                response_format={"type": "json_object"},
                temperature=self.params.temperature,
                top_p=self.params.top_p,
                max_tokens=self.params.max_output_tokens,
                messages=[
                    {"role": "system", "content": system_prompt(self.language)},
                    {"role": "user", "content": prompt},
                ],
            )
        except openai.APIStatusError as exc:
            raise ProviderError(exc.message, status=exc.status_code, provider=self.label) from exc
        except openai.APITimeoutError as exc:
            raise ProviderError(f"Request timed out after {self.timeout}s", provider=self.label) from exc
        except openai.APIConnectionError as exc:
            raise ProviderError(f"Connection error: {exc}", provider=self.label) from exc

        choices = getattr(completion, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not content or not content.strip():
            raise EmptyResponseError("completion has no content", provider=self.label)
        return content

    def _get_client(self):
        with self._lock:
            if self._client is None:
                self._client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
            return self._client
