"""Sequential provider/model fallback."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from time import perf_counter
from typing import List, Literal, Sequence

from runplan.observability.metrics import log_metric
from runplan.observability.tracing import trace
from runplan.services.errors import AllProvidersExhaustedError, ProviderError
from runplan.services.providers.base import GenerationProvider

logger = logging.getLogger(__name__)

FallbackPolicy = Literal["fail_fast", "continue"]


@dataclass
class RouterResult:
    text: str
    provider: str
    attempts: List[str] = field(default_factory=list)


class ProviderFallbackRouter:
    """Try providers in order until one returns text.

    A "model unavailable" failure always moves on to the next candidate. Any
    other provider failure (quota, auth, bad request, timeout, empty reply)
    depends on ``policy``: ``fail_fast`` re-raises it at once, ``continue``
    moves on. Calls are never issued concurrently.
    """

    def __init__(self, providers: Sequence[GenerationProvider], *, policy: FallbackPolicy = "fail_fast"):
        if policy not in ("fail_fast", "continue"):
            raise ValueError(f"Unknown fallback policy {policy!r}")
        self.providers = list(providers)
        self.policy = policy

    @property
    def labels(self) -> List[str]:
        return [provider.label for provider in self.providers]

    def generate(self, prompt: str) -> RouterResult:
        failures: List[ProviderError] = []
        attempted: List[str] = []
        for provider in self.providers:
            attempted.append(provider.label)
            started = perf_counter()
            try:
                with trace("provider.generate", metadata={"provider": provider.label}):
                    text = provider.generate(prompt)
            except ProviderError as exc:
                exc.provider = exc.provider or provider.label
                failures.append(exc)
                self._record_attempt(provider.label, started, ok=False, status=exc.status)
                if exc.model_unavailable:
                    logger.warning("Provider %s cannot serve this model, trying next: %s", provider.label, exc)
                    continue
                if self.policy == "continue":
                    logger.warning("Provider %s failed, trying next: %s", provider.label, exc)
                    continue
                logger.error("Provider %s failed; fail-fast policy stops fallback: %s", provider.label, exc)
                raise

            self._record_attempt(provider.label, started, ok=True)
            logger.info("Plan generated by %s after %s attempt(s)", provider.label, len(attempted))
            return RouterResult(text=text, provider=provider.label, attempts=attempted)

        raise AllProvidersExhaustedError(failures)

    @staticmethod
    def _record_attempt(label: str, started: float, *, ok: bool, status: int | None = None) -> None:
        metadata = {
            "provider": label,
            "ok": ok,
            "latency_ms": round((perf_counter() - started) * 1000, 1),
        }
        if status is not None:
            metadata["status"] = status
        log_metric("provider.attempt", 1 if ok else 0, metadata=metadata)
