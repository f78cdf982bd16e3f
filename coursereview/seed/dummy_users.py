"""
coursereview/seed/dummy_users.py
One verified test account per program, for manual testing

Login: test.<programcode>@kth.se / password
"""
import logging
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.orm.base import utcnow
from coursereview.orm.program import BASE_PROGRAM_CREDITS
from coursereview.orm.user import User, new_user_id
from coursereview.security.passwords import hash_password_async
from coursereview.seed.program_loader import ProgramInfo
from coursereview.seed.upsert import dialect_insert
from coursereview.services.user_service import generate_username

logger = logging.getLogger(__name__)

DUMMY_PASSWORD = "password"


def dummy_email(program_code: str) -> str:
    return f"test.{program_code.lower()}@kth.se"


async def seed_dummy_users(db: AsyncSession, programs: Iterable[ProgramInfo]) -> int:
    """Create missing dummy users. Returns how many were new."""
    password_hash = await hash_password_async(DUMMY_PASSWORD)
    created = 0
    skipped = 0

    try:
        for program in programs:
            is_base = program.credits in BASE_PROGRAM_CREDITS
            stmt = (
                dialect_insert(db, User)
                .values(
                    id=new_user_id(),
                    email=dummy_email(program.code),
                    username=generate_username(program.code),
                    password_hash=password_hash,
                    email_verified_at=utcnow(),
                    created_at=utcnow(),
                    program_id=program.id if is_base else None,
                    masters_degree_id=None if is_base else program.id,
                )
                .on_conflict_do_nothing(index_elements=["email"])
                .returning(User.id)
            )
            if (await db.execute(stmt)).scalar_one_or_none() is not None:
                created += 1
            else:
                skipped += 1
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"✓ Dummy users: {created} created, {skipped} already existed")
    if created:
        logger.info(f"  Login format: test.<programcode>@kth.se / {DUMMY_PASSWORD}")
    return created
