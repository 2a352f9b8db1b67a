"""Per-request context utilities."""
from __future__ import annotations

from contextvars import ContextVar

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
subject_id_ctx_var: ContextVar[str | None] = ContextVar("subject_id", default=None)


def get_request_id() -> str | None:
    """Return the current request id if available."""
    return request_id_ctx_var.get()


def get_subject_id() -> str | None:
    """Return the authenticated subject for the current request, once known."""
    return subject_id_ctx_var.get()
