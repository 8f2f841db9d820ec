# Re-export the main Base class from db.py for admission models
# This ensures all models share the same metadata for create_all()
from datetime import datetime, timezone

from db import Base


def utc_now() -> datetime:
    """Naive UTC timestamp, matching the timezone-less DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


__all__ = ["Base", "utc_now"]
