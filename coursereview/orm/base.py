"""
coursereview/orm/base.py
Declarative base for all ORM models
"""
from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns used across the schema."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
