"""Recover the JSON plan document from a model's free-text reply.

Models are told to answer with bare JSON but regularly add a sentence of
preamble or wrap the object in a ```json fence. Taking the span from the first
``{`` to the last ``}`` covers both. It is a heuristic, not a parser: braces in
prose outside the real document will widen the span and the strict parse below
then rejects it.
"""
from __future__ import annotations

import json
from typing import Any, Dict

from runplan.services.errors import MalformedDocumentError, NoDocumentFoundError


def extract_document(raw_text: str | None) -> str:
    """Return the substring from the first ``{`` to the last ``}``, inclusive."""
    if not raw_text:
        raise NoDocumentFoundError("Model response is empty")
    start = raw_text.find("{")
    end = raw_text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise NoDocumentFoundError()
    return raw_text[start : end + 1]


def parse_document(candidate: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise MalformedDocumentError(f"Model response is not valid JSON: {exc.msg} (char {exc.pos})") from exc
    if not isinstance(parsed, dict):
        raise MalformedDocumentError("Model response JSON is not an object")
    return parsed
