"""Schemas for the plan generation endpoint."""
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

WEEK_KEYS = ("week1", "week2", "week3", "week4")


class ProfileData(BaseModel):
    experience: str
    goal: str
    weight: Optional[float] = Field(default=None, ge=0)
    height: Optional[float] = Field(default=None, ge=0)
    run_days: List[str] = Field(..., min_length=1)

    @field_validator("run_days")
    @classmethod
    def _strip_days(cls, value: List[str]) -> List[str]:
        days = [day.strip() for day in value if day and day.strip()]
        if not days:
            raise ValueError("run_days must contain at least one day")
        return days


class WorkoutDay(BaseModel):
    day: str
    type: str
    duration_minutes: int = Field(..., ge=0)
    description: str = ""


class GeneratePlanResponse(BaseModel):
    success: bool = True
    message: str
    workout_plan: Dict[str, List[WorkoutDay]]


class ErrorResponse(BaseModel):
    error: str
