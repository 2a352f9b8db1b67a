"""Bearer credential verification backed by Firebase Admin."""
from __future__ import annotations

import base64
import json
import logging
from threading import Lock
from typing import Optional

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials as firebase_credentials
from firebase_admin import exceptions as firebase_exceptions

from runplan.services.errors import AuthenticationError, PlanGenerationError

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "runplan"


class IdentityVerifier:
    """Turn an opaque bearer credential into a stable subject id."""

    def verify(self, token: str) -> str:
        raise NotImplementedError


class FirebaseIdentityVerifier(IdentityVerifier):
    def __init__(self, credentials_base64: Optional[str], project_id: Optional[str] = None, *, check_revoked: bool = True):
        self._credentials_base64 = credentials_base64
        self._project_id = project_id
        self._check_revoked = check_revoked
        self._app: Optional[firebase_admin.App] = None
        self._lock = Lock()

    def verify(self, token: str) -> str:
        app = self._get_app()
        try:
            decoded = firebase_auth.verify_id_token(token, app=app, check_revoked=self._check_revoked)
        except firebase_auth.RevokedIdTokenError as exc:
            raise AuthenticationError("Token revoked") from exc
        except firebase_auth.UserDisabledError as exc:
            logger.info("Rejected bearer credential for disabled account: %s", exc)
            raise AuthenticationError("User account is disabled") from exc
        except (firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError, ValueError) as exc:
            logger.info("Rejected bearer credential: %s", exc)
            raise AuthenticationError("Invalid authentication credentials") from exc
        except firebase_exceptions.FirebaseError as exc:
            logger.error("Firebase verification error", exc_info=True)
            raise PlanGenerationError("Authentication service unavailable") from exc

        uid = decoded.get("uid")
        if not uid:
            raise AuthenticationError("Invalid authentication credentials")
        return uid

    def _get_app(self) -> firebase_admin.App:
        with self._lock:
            if self._app is not None:
                return self._app
            if not self._credentials_base64:
                raise PlanGenerationError("Authentication backend misconfigured: FIREBASE_CREDENTIALS_BASE64 must be set")
            try:
                credential_data = json.loads(base64.b64decode(self._credentials_base64).decode("utf-8"))
            except (ValueError, TypeError) as exc:
                raise PlanGenerationError("Authentication backend misconfigured: FIREBASE_CREDENTIALS_BASE64 is invalid") from exc
            if self._project_id:
                credential_data["project_id"] = self._project_id
            try:
                self._app = firebase_admin.get_app(FIREBASE_APP_NAME)
            except ValueError:
                cert = firebase_credentials.Certificate(credential_data)
                self._app = firebase_admin.initialize_app(cert, name=FIREBASE_APP_NAME)
            logger.info("Firebase Admin initialized (project=%s).", credential_data.get("project_id"))
            return self._app
