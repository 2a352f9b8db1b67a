"""Normalize a parsed plan document into the fixed four-week shape."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from runplan.api.schemas.plan import WEEK_KEYS
from runplan.observability.metrics import log_metric

logger = logging.getLogger(__name__)


@dataclass
class PlanValidationResult:
    plan: Dict[str, List[Dict[str, Any]]]
    dropped: int = 0
    coerced: int = 0
    warnings: List[str] = field(default_factory=list)


def normalize_workout_plan(document: Dict[str, Any], *, strict: bool = True) -> PlanValidationResult:
    """Return a plan with all four week keys present; never raises.

    Missing weeks (or weeks that are not arrays) become empty lists. In strict
    mode day entries are also cleaned up: entries without a string ``day`` or
    ``type`` are dropped and ``duration_minutes`` is forced to a non-negative
    integer. Dropped/coerced counts are returned as soft warnings.
    """
    result = PlanValidationResult(plan={})
    for week in WEEK_KEYS:
        entries = document.get(week)
        if entries is None:
            result.warnings.append(f"{week} missing; filled with an empty list")
            result.plan[week] = []
            continue
        if not isinstance(entries, list):
            result.warnings.append(f"{week} is not a list; replaced with an empty list")
            result.plan[week] = []
            continue
        if not strict:
            result.plan[week] = list(entries)
            continue
        result.plan[week] = [day for day in (_clean_day(week, entry, result) for entry in entries) if day]

    if result.dropped or result.coerced:
        logger.warning(
            "Plan normalized with %s dropped and %s coerced day entries: %s",
            result.dropped,
            result.coerced,
            "; ".join(result.warnings),
        )
        log_metric("plan.validation.dropped", result.dropped, metadata={"coerced": result.coerced})
    return result


def _clean_day(week: str, entry: Any, result: PlanValidationResult) -> Optional[Dict[str, Any]]:
    if not isinstance(entry, dict):
        result.dropped += 1
        result.warnings.append(f"{week}: dropped non-object entry")
        return None
    day = entry.get("day")
    session_type = entry.get("type")
    if not isinstance(day, str) or not day.strip() or not isinstance(session_type, str) or not session_type.strip():
        result.dropped += 1
        result.warnings.append(f"{week}: dropped entry without day/type")
        return None

    raw_duration = entry.get("duration_minutes")
    coerced = not (type(raw_duration) is int and raw_duration >= 0)
    duration = _coerce_duration(raw_duration)
    if duration is None:
        duration = 0

    description = entry.get("description")
    if not isinstance(description, str):
        description = "" if description is None else str(description)
        coerced = True

    if coerced:
        result.coerced += 1
        result.warnings.append(f"{week}/{day}: coerced fields")
    return {
        "day": day.strip(),
        "type": session_type.strip(),
        "duration_minutes": duration,
        "description": description,
    }


def _coerce_duration(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        minutes = int(round(float(value)))
    except (TypeError, ValueError):
        return None
    return max(0, minutes)
