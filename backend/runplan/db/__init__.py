"""Database utilities and models."""

from runplan.db.base import Base
from runplan.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
