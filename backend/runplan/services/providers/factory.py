"""Build the ordered provider list from settings."""
from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, List, Optional

from runplan.core.config import Settings
from runplan.services.providers.base import GenerationParams, GenerationProvider
from runplan.services.providers.gemini_sdk import GeminiSdkProvider
from runplan.services.providers.openai_chat import OpenAIChatProvider
from runplan.services.providers.vertex_rest import VertexRestProvider

logger = logging.getLogger(__name__)

KNOWN_BACKENDS = ("vertex-rest", "gemini-sdk", "openai")


def parse_candidate(candidate: str) -> tuple[str, str]:
    """Split ``"<backend>:<model>"``; raises ValueError on unknown backends."""
    backend, sep, model = candidate.partition(":")
    backend, model = backend.strip().lower(), model.strip()
    if not sep or not model:
        raise ValueError(f"Generation model {candidate!r} must look like '<backend>:<model>'")
    if backend not in KNOWN_BACKENDS:
        raise ValueError(f"Unknown generation backend {backend!r} (expected one of {', '.join(KNOWN_BACKENDS)})")
    return backend, model


def build_providers(settings: Settings) -> List[GenerationProvider]:
    """Instantiate every configured candidate whose credentials are present, preserving order."""
    params = GenerationParams(
        max_output_tokens=settings.generation_max_output_tokens,
        temperature=settings.generation_temperature,
        top_p=settings.generation_top_p,
        top_k=settings.generation_top_k,
    )
    timeout = settings.provider_timeout_seconds
    providers: List[GenerationProvider] = []
    for candidate in settings.generation_models:
        backend, model = parse_candidate(candidate)
        if backend == "vertex-rest":
            if not settings.vertex_project:
                logger.warning("Skipping %s: VERTEX_PROJECT is not set.", candidate)
                continue
            providers.append(
                VertexRestProvider(
                    model,
                    project=settings.vertex_project,
                    region=settings.vertex_region,
                    credentials_info=_decode_credentials(settings.vertex_credentials_base64),
                    timeout=timeout,
                    params=params,
                )
            )
        elif backend == "gemini-sdk":
            if not (settings.gemini_api_key or settings.vertex_project):
                logger.warning("Skipping %s: neither GEMINI_API_KEY nor VERTEX_PROJECT is set.", candidate)
                continue
            providers.append(
                GeminiSdkProvider(
                    model,
                    project=settings.vertex_project,
                    region=settings.vertex_region,
                    api_key=settings.gemini_api_key,
                    timeout=timeout,
                    params=params,
                )
            )
        else:
            if not settings.openai_api_key:
                logger.warning("Skipping %s: OPENAI_API_KEY is not set.", candidate)
                continue
            providers.append(
                OpenAIChatProvider(
                    model,
                    api_key=settings.openai_api_key,
                    language=settings.plan_language,
                    timeout=timeout,
                    params=params,
                )
            )

    logger.info("Generation providers in fallback order: %s", [provider.label for provider in providers] or "none")
    return providers


def _decode_credentials(encoded: Optional[str]) -> Optional[Dict[str, Any]]:
    if not encoded:
        return None
    try:
        return json.loads(base64.b64decode(encoded).decode("utf-8"))
    except (ValueError, TypeError) as exc:
        raise ValueError("VERTEX_CREDENTIALS_BASE64 is not valid base64-encoded JSON") from exc
