"""Prompt rendering for the four-week running plan."""
from __future__ import annotations

from typing import Optional

from runplan.api.schemas.plan import WEEK_KEYS, ProfileData
from runplan.core.config import settings

NOT_INFORMED = "not informed"

DAY_FIELDS = ("day", "type", "duration_minutes", "description")

PLAN_SYSTEM_PROMPT = (
    "You are an experienced running coach and a JSON-only API. "
    "Write every human-readable value in {language}. "
    "Respond with a single JSON object and nothing else: no explanations, no comments, no markdown."
)


def build_plan_prompt(profile: ProfileData, *, language: Optional[str] = None) -> str:
    """Render the user prompt for a profile. Same profile, same prompt."""
    language = language or settings.plan_language
    weeks = ", ".join(f'"{key}"' for key in WEEK_KEYS)
    example_day = (
        '{"day": "<one of the available days>", "type": "<session type, e.g. Easy run>", '
        '"duration_minutes": <integer>, "description": "<short guidance>"}'
    )
    lines = [
        "Create a 4-week running training plan for the runner described below.",
        "",
        "Runner profile:",
        f"- Experience level: {profile.experience}",
        f"- Goal: {profile.goal}",
        f"- Weight (kg): {_format_optional(profile.weight)}",
        f"- Height (cm): {_format_optional(profile.height)}",
        f"- Available days: {', '.join(profile.run_days)}",
        "",
        "Rules:",
        "- Only schedule sessions on the available days.",
        f"- Write the day names and descriptions in {language}.",
        f"- The JSON object must have exactly four keys: {weeks}.",
        "- Each key maps to an ordered array of day objects with exactly these fields: "
        + ", ".join(DAY_FIELDS)
        + ".",
        "- duration_minutes is a non-negative integer.",
        f"- Day object shape: {example_day}",
        "",
        "Return ONLY the JSON object. Do not add any text before or after it and do not wrap it in markdown "
        "code fences. The response must start with '{' and end with '}'.",
    ]
    return "\n".join(lines)


def system_prompt(language: Optional[str] = None) -> str:
    return PLAN_SYSTEM_PROMPT.format(language=language or settings.plan_language)


def _format_optional(value: Optional[float]) -> str:
    if value is None:
        return NOT_INFORMED
    if float(value).is_integer():
        return str(int(value))
    return str(value)
