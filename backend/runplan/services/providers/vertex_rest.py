"""Vertex AI ``generateContent`` over plain REST with a service-account bearer token."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Dict, Optional

import google.auth
import httpx
from google.auth import exceptions as google_auth_exceptions
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from runplan.services.errors import EmptyResponseError, ProviderError
from runplan.services.providers.base import GenerationParams, GenerationProvider

logger = logging.getLogger(__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)
SAFETY_THRESHOLD = "BLOCK_MEDIUM_AND_ABOVE"


class VertexRestProvider(GenerationProvider):
    backend = "vertex-rest"

    def __init__(
        self,
        model: str,
        *,
        project: str,
        region: str,
        credentials_info: Optional[Dict[str, Any]] = None,
        credentials: Any = None,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 25.0,
        params: GenerationParams | None = None,
    ):
        super().__init__(model, timeout=timeout, params=params)
        self.project = project
        self.region = region
        self._credentials_info = credentials_info
        self._credentials = credentials
        self._http_client = http_client
        self._lock = Lock()

    @property
    def endpoint(self) -> str:
        return (
            f"https://{self.region}-aiplatform.googleapis.com/v1/projects/{self.project}"
            f"/locations/{self.region}/publishers/google/models/{self.model}:generateContent"
        )

    def build_request_body(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "maxOutputTokens": self.params.max_output_tokens,
                "temperature": self.params.temperature,
                "topP": self.params.top_p,
                "topK": self.params.top_k,
            },
            "safetySettings": [
                {"category": category, "threshold": SAFETY_THRESHOLD} for category in SAFETY_CATEGORIES
            ],
        }

    def generate(self, prompt: str) -> str:
        token = self._access_token()
        try:
            response = self._client().post(
                self.endpoint,
                json=self.build_request_body(prompt),
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TimeoutException as exc:
            raise ProviderError(f"Request timed out after {self.timeout}s", provider=self.label) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"Transport error: {exc}", provider=self.label) from exc

        if not response.is_success:
            raise ProviderError(response.text or response.reason_phrase, status=response.status_code, provider=self.label)

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError("Response body is not JSON", status=response.status_code, provider=self.label) from exc
        return _first_candidate_text(payload, provider=self.label)

    def _client(self) -> httpx.Client:
        with self._lock:
            if self._http_client is None:
                self._http_client = httpx.Client(timeout=self.timeout)
            return self._http_client

    def _access_token(self) -> str:
        """Return a valid short-lived access token, refreshing it when expired."""
        with self._lock:
            try:
                if self._credentials is None:
                    self._credentials = self._load_credentials()
                if not self._credentials.valid:
                    self._credentials.refresh(GoogleAuthRequest())
            except google_auth_exceptions.GoogleAuthError as exc:
                raise ProviderError(f"Unable to obtain access token: {exc}", status=401, provider=self.label) from exc
            return self._credentials.token

    def _load_credentials(self):
        if self._credentials_info:
            return service_account.Credentials.from_service_account_info(
                self._credentials_info, scopes=[CLOUD_PLATFORM_SCOPE]
            )
        logger.info("No Vertex service account configured; using application default credentials.")
        credentials, _ = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
        return credentials


def _first_candidate_text(payload: Dict[str, Any], *, provider: str) -> str:
    candidates = payload.get("candidates") or []
    if not candidates:
        block_reason = (payload.get("promptFeedback") or {}).get("blockReason")
        reason = f"prompt blocked ({block_reason})" if block_reason else "no candidates returned"
        raise EmptyResponseError(reason, provider=provider)
    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = parts[0].get("text") if parts else None
    if not text or not text.strip():
        finish = candidates[0].get("finishReason")
        raise EmptyResponseError(f"empty candidate (finishReason={finish})", provider=provider)
    return text
