"""ORM models exposed for metadata discovery."""
from runplan.db.models.profile import ProfileRecord

__all__ = [
    "ProfileRecord",
]
