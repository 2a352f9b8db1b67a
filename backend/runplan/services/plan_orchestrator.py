"""Plan generation use case: authenticate, generate, extract, validate, persist."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Dict, List, Optional, Union

from pydantic import TypeAdapter, ValidationError

from runplan.api.schemas.plan import ProfileData, WorkoutDay
from runplan.core.context import subject_id_ctx_var
from runplan.observability.metrics import log_metric
from runplan.observability.tracing import trace
from runplan.services.document_extractor import extract_document, parse_document
from runplan.services.errors import (
    AuthenticationError,
    BadRequestError,
    MalformedDocumentError,
    PlanGenerationError,
    PlanGenerationFailedError,
)
from runplan.services.identity import IdentityVerifier
from runplan.services.plan_validator import normalize_workout_plan
from runplan.services.profile_store import ProfileRecordData, ProfileStore
from runplan.services.prompt_builder import build_plan_prompt
from runplan.services.providers.router import ProviderFallbackRouter

logger = logging.getLogger(__name__)

NO_RESPONSE = "no response"

_PLAN_ADAPTER = TypeAdapter(Dict[str, List[WorkoutDay]])


@dataclass
class GenerationAttempt:
    """Mutable scratchpad for one run; consumed by the terminal write."""

    subject_id: str
    profile: ProfileData
    raw_response: Optional[str] = None
    provider: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class PlanSuccess:
    plan: Dict[str, List[Dict[str, Any]]]
    provider: str
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PlanFailure:
    error: Exception
    raw_response: Optional[str]


PlanOutcome = Union[PlanSuccess, PlanFailure]


class PlanGenerationOrchestrator:
    def __init__(
        self,
        verifier: IdentityVerifier,
        router: ProviderFallbackRouter,
        store: ProfileStore,
        *,
        strict_validation: bool = True,
        language: Optional[str] = None,
    ):
        self.verifier = verifier
        self.router = router
        self.store = store
        self.strict_validation = strict_validation
        self.language = language

    def generate_plan(self, authorization: Optional[str], payload: Any) -> PlanSuccess:
        """Run the whole pipeline for one request.

        Raises ``AuthenticationError``/``BadRequestError`` before anything is
        persisted, ``PlanGenerationFailedError`` after a failure has been
        recorded, and ``PersistenceError`` if the final plan write fails.
        """
        subject_id = self.authenticate(authorization)
        subject_id_ctx_var.set(subject_id)
        profile = self._parse_profile(payload)

        attempt = GenerationAttempt(subject_id=subject_id, profile=profile)
        started = perf_counter()
        outcome = self._run_pipeline(attempt)
        log_metric(
            "plan.generation.success",
            1 if isinstance(outcome, PlanSuccess) else 0,
            metadata={"provider": attempt.provider, "error": attempt.error},
        )
        log_metric("plan.generation.latency_ms", (perf_counter() - started) * 1000)

        if isinstance(outcome, PlanSuccess):
            self.store.upsert(_project(attempt, outcome))
            logger.info("Stored plan for %s generated by %s", subject_id, outcome.provider)
            return outcome

        recorded = self._record_failure(attempt, outcome)
        raise PlanGenerationFailedError(outcome.error, recorded=recorded)

    def authenticate(self, authorization: Optional[str]) -> str:
        scheme, _, token = (authorization or "").strip().partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise AuthenticationError("Missing or malformed Authorization header")
        return self.verifier.verify(token.strip())

    def _parse_profile(self, payload: Any) -> ProfileData:
        raw_profile = payload.get("profileData") if isinstance(payload, dict) else None
        if not raw_profile:
            raise BadRequestError("profileData is required")
        try:
            return ProfileData.model_validate(raw_profile)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'profileData'}: {err['msg']}" for err in exc.errors()
            )
            raise BadRequestError(f"Invalid profileData: {problems}") from exc

    def _run_pipeline(self, attempt: GenerationAttempt) -> PlanOutcome:
        try:
            with trace("plan.generate", metadata={"providers": self.router.labels}) as plan_trace:
                prompt = build_plan_prompt(attempt.profile, language=self.language)
                result = self.router.generate(prompt)
                attempt.raw_response = result.text
                attempt.provider = result.provider

                document = parse_document(extract_document(result.text))
                validation = normalize_workout_plan(document, strict=self.strict_validation)
                plan = _conform_plan(validation.plan)
                if plan_trace:
                    plan_trace.update(
                        metadata={
                            "provider": result.provider,
                            "attempts": result.attempts,
                            "dropped": validation.dropped,
                            "coerced": validation.coerced,
                        }
                    )
        except Exception as exc:
            attempt.error = str(exc) or type(exc).__name__
            if isinstance(exc, PlanGenerationError):
                logger.warning("Plan generation failed for %s: %s", attempt.subject_id, exc)
            else:
                logger.exception("Unexpected error while generating plan for %s", attempt.subject_id)
            return PlanFailure(error=exc, raw_response=attempt.raw_response)

        return PlanSuccess(plan=plan, provider=result.provider, warnings=validation.warnings)

    def _record_failure(self, attempt: GenerationAttempt, outcome: PlanFailure) -> bool:
        try:
            self.store.upsert(_project(attempt, outcome))
        except Exception:
            logger.error("Could not record generation failure for %s", attempt.subject_id, exc_info=True)
            return False
        return True


def _project(attempt: GenerationAttempt, outcome: PlanOutcome) -> ProfileRecordData:
    """Flatten an outcome into the stored record; the other branch's fields are nulled."""
    profile = attempt.profile
    base = {
        "subject_id": attempt.subject_id,
        "experience": profile.experience,
        "goal": profile.goal,
        "weight": profile.weight,
        "height": profile.height,
        "run_days": list(profile.run_days),
    }
    if isinstance(outcome, PlanSuccess):
        return ProfileRecordData(
            **base,
            workout_plan=outcome.plan,
            generated_by=outcome.provider,
            plan_generation_error=None,
            raw_ai_response=None,
        )
    return ProfileRecordData(
        **base,
        workout_plan=None,
        generated_by=None,
        plan_generation_error=attempt.error or str(outcome.error),
        raw_ai_response=outcome.raw_response if outcome.raw_response is not None else NO_RESPONSE,
    )


def _conform_plan(plan: Dict[str, List[Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """Check the plan against the response shape so a stored success is always servable."""
    try:
        days_by_week = _PLAN_ADAPTER.validate_python(plan)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise MalformedDocumentError(f"Plan entries do not match the workout day shape: {problems}") from exc
    return {week: [day.model_dump() for day in days] for week, days in days_by_week.items()}
