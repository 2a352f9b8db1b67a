"""FastAPI dependencies exposing the process-wide collaborators."""
from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from runplan.core.config import settings
from runplan.db.deps import get_db
from runplan.services.identity import IdentityVerifier
from runplan.services.plan_orchestrator import PlanGenerationOrchestrator
from runplan.services.profile_store import ProfileStore, SqlProfileStore
from runplan.services.providers.router import ProviderFallbackRouter
from runplan.services.registry import ServiceRegistry


def get_registry(request: Request) -> ServiceRegistry:
    return request.app.state.services


def get_identity_verifier(registry: ServiceRegistry = Depends(get_registry)) -> IdentityVerifier:
    return registry.verifier


def get_provider_router(registry: ServiceRegistry = Depends(get_registry)) -> ProviderFallbackRouter:
    return registry.router


def get_profile_store(db: Session = Depends(get_db)) -> ProfileStore:
    return SqlProfileStore(db)


def get_orchestrator(
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    router: ProviderFallbackRouter = Depends(get_provider_router),
    store: ProfileStore = Depends(get_profile_store),
) -> PlanGenerationOrchestrator:
    return PlanGenerationOrchestrator(
        verifier,
        router,
        store,
        strict_validation=settings.strict_plan_validation,
        language=settings.plan_language,
    )
