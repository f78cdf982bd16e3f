"""
coursereview/seed/upsert.py
Dialect-specific INSERT ... ON CONFLICT for the loaders
"""
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.database import dialect_name

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def dialect_insert(db: AsyncSession, target):
    """An insert construct supporting on_conflict_do_update / on_conflict_do_nothing."""
    name = dialect_name(db)
    try:
        return _INSERTS[name](target)
    except KeyError:
        raise NotImplementedError(f"Upserts are not supported on dialect '{name}'") from None
