"""Generation provider interface."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GenerationParams:
    max_output_tokens: int = 8192
    temperature: float = 0.7
    top_p: float = 0.95
    top_k: int = 40


class GenerationProvider:
    """Base interface for text generation backends.

    ``generate`` returns the raw reply text. Implementations raise
    ``ProviderError`` for failed calls and ``EmptyResponseError`` when the
    backend returns nothing usable.
    """

    backend: str = "unknown"

    def __init__(self, model: str, *, timeout: float = 25.0, params: GenerationParams | None = None):
        self.model = model
        self.timeout = timeout
        self.params = params or GenerationParams()

    @property
    def label(self) -> str:
        return f"{self.backend}:{self.model}"

    def generate(self, prompt: str) -> str:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.label}>"
