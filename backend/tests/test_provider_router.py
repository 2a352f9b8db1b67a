from __future__ import annotations

from typing import List

import pytest
from google.auth import exceptions as google_auth_exceptions

from runplan.services.errors import AllProvidersExhaustedError, EmptyResponseError, ProviderError
from runplan.services.providers.base import GenerationProvider
from runplan.services.providers.router import ProviderFallbackRouter
from runplan.services.providers.vertex_rest import VertexRestProvider


class ScriptedProvider(GenerationProvider):
    backend = "stub"

    def __init__(self, model: str, outcome, calls: List[str]):
        super().__init__(model)
        self.outcome = outcome
        self.calls = calls

    def generate(self, prompt: str) -> str:
        self.calls.append(self.label)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def _unsupported(model: str) -> ProviderError:
    return ProviderError(f"Publisher model {model} is not supported", status=400)


def test_falls_through_unsupported_models_in_order() -> None:
    calls: List[str] = []
    router = ProviderFallbackRouter(
        [
            ScriptedProvider("a", _unsupported("a"), calls),
            ScriptedProvider("b", ProviderError("models/b is not found", status=404), calls),
            ScriptedProvider("c", '{"week1": []}', calls),
        ]
    )

    result = router.generate("prompt")

    assert result.provider == "stub:c"
    assert result.text == '{"week1": []}'
    assert calls == ["stub:a", "stub:b", "stub:c"]
    assert result.attempts == ["stub:a", "stub:b", "stub:c"]


def test_first_success_stops_the_loop() -> None:
    calls: List[str] = []
    router = ProviderFallbackRouter(
        [ScriptedProvider("a", "{}", calls), ScriptedProvider("b", "{}", calls)],
    )

    assert router.generate("prompt").provider == "stub:a"
    assert calls == ["stub:a"]


def test_fail_fast_policy_aborts_on_quota_error() -> None:
    calls: List[str] = []
    quota = ProviderError("Quota exceeded for aiplatform.googleapis.com", status=429)
    router = ProviderFallbackRouter(
        [ScriptedProvider("a", quota, calls), ScriptedProvider("b", "{}", calls)],
        policy="fail_fast",
    )

    with pytest.raises(ProviderError) as excinfo:
        router.generate("prompt")

    assert excinfo.value is quota
    assert excinfo.value.provider == "stub:a"
    assert calls == ["stub:a"]


def test_continue_policy_moves_past_quota_and_empty_replies() -> None:
    calls: List[str] = []
    router = ProviderFallbackRouter(
        [
            ScriptedProvider("a", ProviderError("Quota exceeded", status=429), calls),
            ScriptedProvider("b", EmptyResponseError("no candidates returned"), calls),
            ScriptedProvider("c", "{}", calls),
        ],
        policy="continue",
    )

    assert router.generate("prompt").provider == "stub:c"
    assert calls == ["stub:a", "stub:b", "stub:c"]


def test_exhaustion_reports_every_attempt() -> None:
    calls: List[str] = []
    router = ProviderFallbackRouter(
        [ScriptedProvider("a", _unsupported("a"), calls), ScriptedProvider("b", _unsupported("b"), calls)],
    )

    with pytest.raises(AllProvidersExhaustedError) as excinfo:
        router.generate("prompt")

    assert [attempt.provider for attempt in excinfo.value.attempts] == ["stub:a", "stub:b"]
    assert "2 attempted" in str(excinfo.value)


def test_no_providers_is_exhaustion() -> None:
    with pytest.raises(AllProvidersExhaustedError) as excinfo:
        ProviderFallbackRouter([]).generate("prompt")

    assert excinfo.value.attempts == []


def test_unknown_policy_rejected() -> None:
    with pytest.raises(ValueError):
        ProviderFallbackRouter([], policy="shrug")  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "error,expected",
    [
        (ProviderError("boom", status=404), True),
        (ProviderError("The model `gpt-9` does not exist", status=400), True),
        (ProviderError("Quota exceeded", status=429), False),
        (ProviderError("Request had invalid authentication credentials", status=401), False),
        (ProviderError("Unable to obtain access token: Your default credentials were not found", status=401), False),
        (ProviderError("Project not found or permission denied", status=403), False),
        (ProviderError("Model gemini-0 is not supported in this region"), True),
    ],
)
def test_model_unavailable_classification(error: ProviderError, expected: bool) -> None:
    assert error.model_unavailable is expected


class _MissingCredentials:
    valid = False
    token = None

    def refresh(self, request) -> None:
        raise google_auth_exceptions.DefaultCredentialsError(
            "Your default credentials were not found. To set up Application Default Credentials, see docs."
        )


def test_fail_fast_does_not_advance_past_credential_failure() -> None:
    calls: List[str] = []
    vertex = VertexRestProvider(
        "gemini-1.5-flash-002",
        project="demo-project",
        region="europe-west1",
        credentials=_MissingCredentials(),
    )
    router = ProviderFallbackRouter([vertex, ScriptedProvider("b", "{}", calls)], policy="fail_fast")

    with pytest.raises(ProviderError) as excinfo:
        router.generate("prompt")

    assert excinfo.value.status == 401
    assert excinfo.value.model_unavailable is False
    assert calls == []
