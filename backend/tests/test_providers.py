from __future__ import annotations

import json
import threading
from types import SimpleNamespace

import httpx
import openai
import pytest
from google.genai import errors as genai_errors

from runplan.core.config import Settings
from runplan.services.errors import EmptyResponseError, ProviderError
from runplan.services.providers.factory import build_providers, parse_candidate
from runplan.services.providers.gemini_sdk import GeminiSdkProvider
from runplan.services.providers.openai_chat import OpenAIChatProvider
from runplan.services.providers.vertex_rest import SAFETY_CATEGORIES, VertexRestProvider

PLAN_TEXT = '{"week1": []}'


class _FakeCredentials:
    def __init__(self):
        self.valid = False
        self.token = None
        self.refreshes = 0

    def refresh(self, request) -> None:
        self.refreshes += 1
        self.valid = True
        self.token = "short-lived-token"


def _vertex(handler, credentials=None) -> VertexRestProvider:
    return VertexRestProvider(
        "gemini-1.5-flash-002",
        project="demo-project",
        region="europe-west1",
        credentials=credentials or _FakeCredentials(),
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def test_vertex_rest_posts_prompt_with_bearer_token_and_safety_settings() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": PLAN_TEXT}]}}]})

    credentials = _FakeCredentials()
    provider = _vertex(handler, credentials)

    assert provider.generate("make a plan") == PLAN_TEXT
    assert provider.generate("make a plan") == PLAN_TEXT
    assert credentials.refreshes == 1
    assert seen["auth"] == "Bearer short-lived-token"
    assert seen["url"] == (
        "https://europe-west1-aiplatform.googleapis.com/v1/projects/demo-project/locations/europe-west1"
        "/publishers/google/models/gemini-1.5-flash-002:generateContent"
    )
    body = seen["body"]
    assert body["contents"][0]["parts"][0]["text"] == "make a plan"
    assert set(body["generationConfig"]) == {"maxOutputTokens", "temperature", "topP", "topK"}
    assert [item["category"] for item in body["safetySettings"]] == list(SAFETY_CATEGORIES)
    assert {item["threshold"] for item in body["safetySettings"]} == {"BLOCK_MEDIUM_AND_ABOVE"}


@pytest.mark.parametrize("status,unavailable", [(404, True), (429, False), (403, False)])
def test_vertex_rest_non_2xx_raises_with_body(status: int, unavailable: bool) -> None:
    provider = _vertex(lambda request: httpx.Response(status, text="backend said no"))

    with pytest.raises(ProviderError) as excinfo:
        provider.generate("prompt")

    assert excinfo.value.status == status
    assert excinfo.value.message == "backend said no"
    assert excinfo.value.model_unavailable is unavailable


def test_vertex_rest_blocked_prompt_is_empty_response() -> None:
    provider = _vertex(lambda request: httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}}))

    with pytest.raises(EmptyResponseError) as excinfo:
        provider.generate("prompt")

    assert "SAFETY" in str(excinfo.value)


def test_vertex_rest_timeout_is_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ProviderError) as excinfo:
        _vertex(handler).generate("prompt")

    assert "timed out" in str(excinfo.value)
    assert excinfo.value.model_unavailable is False


def _genai_response(candidates):
    return SimpleNamespace(candidates=candidates)


def _genai_client(result):
    def generate_content(**kwargs):
        if isinstance(result, Exception):
            raise result
        return result

    return SimpleNamespace(models=SimpleNamespace(generate_content=generate_content))


def test_gemini_sdk_reads_first_candidate_part() -> None:
    part = SimpleNamespace(text=PLAN_TEXT)
    candidate = SimpleNamespace(content=SimpleNamespace(parts=[part, SimpleNamespace(text="ignored")]))
    provider = GeminiSdkProvider("gemini-1.5-flash", api_key="k", client=_genai_client(_genai_response([candidate])))

    assert provider.generate("prompt") == PLAN_TEXT


@pytest.mark.parametrize("candidates", [None, []])
def test_gemini_sdk_without_candidates_is_empty_response(candidates) -> None:
    provider = GeminiSdkProvider("gemini-1.5-flash", api_key="k", client=_genai_client(_genai_response(candidates)))

    with pytest.raises(EmptyResponseError):
        provider.generate("prompt")


def test_gemini_sdk_api_error_maps_to_provider_error() -> None:
    error = genai_errors.ClientError(
        404,
        {"error": {"code": 404, "message": "models/gemini-0 is not found", "status": "NOT_FOUND"}},
    )
    provider = GeminiSdkProvider("gemini-0", api_key="k", client=_genai_client(error))

    with pytest.raises(ProviderError) as excinfo:
        provider.generate("prompt")

    assert excinfo.value.status == 404
    assert excinfo.value.model_unavailable is True


class _DummyOpenAI:
    last_kwargs: dict = {}

    def __init__(self, *args, **kwargs):
        self.init_kwargs = kwargs

    class chat:  # type: ignore[valid-type]
        class completions:  # type: ignore[valid-type]
            @staticmethod
            def create(*args, **kwargs):
                _DummyOpenAI.last_kwargs = kwargs
                message = SimpleNamespace(content=PLAN_TEXT)
                return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def test_openai_requests_json_object_with_system_turn(monkeypatch) -> None:
    monkeypatch.setattr("openai.OpenAI", _DummyOpenAI)
    provider = OpenAIChatProvider("gpt-4o-mini", api_key="test-key", language="Portuguese")

    assert provider.generate("make a plan") == PLAN_TEXT
    kwargs = _DummyOpenAI.last_kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    assert [message["role"] for message in kwargs["messages"]] == ["system", "user"]
    assert "Portuguese" in kwargs["messages"][0]["content"]
    assert kwargs["messages"][1]["content"] == "make a plan"


def test_openai_not_found_maps_to_unavailable_model() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    error = openai.NotFoundError(
        "The model `gpt-0` does not exist",
        response=httpx.Response(404, request=request),
        body=None,
    )

    class _FailingClient:
        class chat:  # type: ignore[valid-type]
            class completions:  # type: ignore[valid-type]
                @staticmethod
                def create(*args, **kwargs):
                    raise error

    provider = OpenAIChatProvider("gpt-0", api_key="test-key", client=_FailingClient())

    with pytest.raises(ProviderError) as excinfo:
        provider.generate("prompt")

    assert excinfo.value.status == 404
    assert excinfo.value.model_unavailable is True


def test_openai_empty_content_is_empty_response() -> None:
    class _EmptyClient:
        class chat:  # type: ignore[valid-type]
            class completions:  # type: ignore[valid-type]
                @staticmethod
                def create(*args, **kwargs):
                    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=None))])

    with pytest.raises(EmptyResponseError):
        OpenAIChatProvider("gpt-4o-mini", api_key="k", client=_EmptyClient()).generate("prompt")


def test_parse_candidate_validates_format() -> None:
    assert parse_candidate("OpenAI: gpt-4o-mini") == ("openai", "gpt-4o-mini")
    with pytest.raises(ValueError):
        parse_candidate("gpt-4o-mini")
    with pytest.raises(ValueError):
        parse_candidate("bedrock:claude")


def test_build_providers_keeps_order_and_skips_unconfigured_backends() -> None:
    settings = Settings(
        generation_models=["vertex-rest:gemini-1.5-pro", "openai:gpt-4o-mini", "gemini-sdk:gemini-1.5-flash"],
        vertex_project=None,
        gemini_api_key="gemini-key",
        openai_api_key="openai-key",
        provider_timeout_seconds=7,
    )

    providers = build_providers(settings)

    assert [provider.label for provider in providers] == ["openai:gpt-4o-mini", "gemini-sdk:gemini-1.5-flash"]
    assert all(provider.timeout == 7 for provider in providers)


def test_vertex_rest_builds_one_http_client_under_concurrent_first_use() -> None:
    provider = VertexRestProvider("gemini-1.5-flash-002", project="demo-project", region="europe-west1")
    barrier = threading.Barrier(8)
    clients = []

    def first_use() -> None:
        barrier.wait()
        clients.append(provider._client())

    workers = [threading.Thread(target=first_use) for _ in range(8)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert len(clients) == 8
    assert len({id(client) for client in clients}) == 1
    clients[0].close()
