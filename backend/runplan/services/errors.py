"""Error taxonomy for the plan generation pipeline."""
from __future__ import annotations

from typing import List, Optional


class PlanGenerationError(Exception):
    """Base class; ``status_code`` is the HTTP status the API surfaces."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(PlanGenerationError):
    status_code = 401


class BadRequestError(PlanGenerationError):
    status_code = 400


class ProviderError(PlanGenerationError):
    """A generation backend call failed (transport, auth, quota, unknown model)."""

    _MODEL_UNAVAILABLE_HINTS = (
        "not found",
        "not supported",
        "unsupported model",
        "does not exist",
        "model_not_found",
    )

    def __init__(self, message: str, *, status: Optional[int] = None, provider: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.provider = provider

    @property
    def model_unavailable(self) -> bool:
        """True when the failure means "this model cannot serve here", so trying another one makes sense."""
        if self.status == 404:
            return True
        # Any other status is governed by the fallback policy whatever the message says.
        if self.status not in (None, 400):
            return False
        lowered = self.message.lower()
        return any(hint in lowered for hint in self._MODEL_UNAVAILABLE_HINTS)

    def __str__(self) -> str:
        prefix = f"[{self.provider}] " if self.provider else ""
        status = f"HTTP {self.status}: " if self.status is not None else ""
        return f"{prefix}{status}{self.message}"


class EmptyResponseError(ProviderError):
    """The backend answered but produced no usable text."""


class AllProvidersExhaustedError(PlanGenerationError):
    def __init__(self, attempts: List[ProviderError]):
        self.attempts = list(attempts)
        if self.attempts:
            detail = "; ".join(str(attempt) for attempt in self.attempts)
            message = f"All generation providers failed ({len(self.attempts)} attempted): {detail}"
        else:
            message = "No generation providers are configured"
        super().__init__(message)


class NoDocumentFoundError(PlanGenerationError):
    def __init__(self, message: str = "Model response does not contain a JSON document"):
        super().__init__(message)


class MalformedDocumentError(PlanGenerationError):
    pass


class PersistenceError(PlanGenerationError):
    pass


class PlanGenerationFailedError(PlanGenerationError):
    """Raised after a failure has been recorded against the subject's profile."""

    def __init__(self, cause: PlanGenerationError | Exception, *, recorded: bool):
        message = str(cause) or type(cause).__name__
        super().__init__(message)
        self.cause = cause
        self.recorded = recorded
