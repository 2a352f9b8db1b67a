"""Runner profile ORM model holding the latest plan or the latest generation failure."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, Float, String, Text, func

from runplan.db.base import Base
from runplan.db.types import JSONBCompat


class ProfileRecord(Base):
    __tablename__ = "profiles"

    # Subject id issued by the identity provider (Firebase uid), not a UUID.
    id = Column(String(length=128), primary_key=True)
    experience = Column(Text, nullable=False)
    goal = Column(Text, nullable=False)
    weight = Column(Float, nullable=True)
    height = Column(Float, nullable=True)
    run_days = Column(JSONBCompat, nullable=False)
    # Exactly one of workout_plan / plan_generation_error is populated.
    workout_plan = Column(JSONBCompat, nullable=True)
    generated_by = Column(String(length=255), nullable=True)
    plan_generation_error = Column("planGenerationError", Text, nullable=True)
    raw_ai_response = Column("rawAIResponse", Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
