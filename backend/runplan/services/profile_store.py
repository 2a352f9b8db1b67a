"""Upsert of the per-subject profile record."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from runplan.db.models.profile import ProfileRecord
from runplan.services.errors import PersistenceError

logger = logging.getLogger(__name__)


@dataclass
class ProfileRecordData:
    """Flat, fully specified record; every field is written on each upsert."""

    subject_id: str
    experience: str
    goal: str
    weight: Optional[float]
    height: Optional[float]
    run_days: List[str]
    workout_plan: Optional[Dict[str, List[Dict[str, Any]]]]
    generated_by: Optional[str]
    plan_generation_error: Optional[str]
    raw_ai_response: Optional[str]


class ProfileStore:
    def upsert(self, record: ProfileRecordData) -> None:
        raise NotImplementedError


class SqlProfileStore(ProfileStore):
    """Insert-or-overwrite keyed by subject id, one transaction per call."""

    def __init__(self, db: Session):
        self.db = db

    def upsert(self, record: ProfileRecordData) -> None:
        try:
            row = self.db.get(ProfileRecord, record.subject_id)
            if row is None:
                row = ProfileRecord(id=record.subject_id)
                self.db.add(row)
            row.experience = record.experience
            row.goal = record.goal
            row.weight = record.weight
            row.height = record.height
            row.run_days = list(record.run_days)
            row.workout_plan = record.workout_plan
            row.generated_by = record.generated_by
            row.plan_generation_error = record.plan_generation_error
            row.raw_ai_response = record.raw_ai_response
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to upsert profile %s", record.subject_id, exc_info=True)
            raise PersistenceError(f"Failed to store profile: {exc.__class__.__name__}") from exc
