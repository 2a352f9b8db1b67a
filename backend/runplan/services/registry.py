"""Process-wide collaborators built once before the app starts serving."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from runplan.core.config import Settings
from runplan.services.identity import FirebaseIdentityVerifier, IdentityVerifier
from runplan.services.providers.factory import build_providers
from runplan.services.providers.router import ProviderFallbackRouter

logger = logging.getLogger(__name__)


@dataclass
class ServiceRegistry:
    verifier: IdentityVerifier
    router: ProviderFallbackRouter


def build_registry(settings: Settings) -> ServiceRegistry:
    verifier = FirebaseIdentityVerifier(
        settings.firebase_credentials_base64,
        settings.firebase_project_id,
    )
    router = ProviderFallbackRouter(build_providers(settings), policy=settings.fallback_policy)
    if not router.providers:
        logger.warning("No generation provider is configured; every plan request will fail.")
    logger.info("Provider fallback policy: %s", router.policy)
    return ServiceRegistry(verifier=verifier, router=router)
