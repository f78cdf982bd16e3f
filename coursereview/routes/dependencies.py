"""
coursereview/routes/dependencies.py
Shared request dependencies: the authenticated user loaded from storage
"""
from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.database import get_db
from coursereview.errors import ErrorCode, raise_unauthorized
from coursereview.orm.user import User
from coursereview.security.tokens import get_current_user_id, get_optional_user_id


async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise_unauthorized("User not found", ErrorCode.USER_NOT_FOUND)
    return user


async def get_optional_user(
    user_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    if not user_id:
        return None
    return await db.get(User, user_id)


def academic_ids(user: Optional[User]) -> dict:
    """Academic identity of a caller; all None for guests."""
    if user is None:
        return {
            "program_id": None,
            "masters_degree_id": None,
            "specialization_id": None,
            "program_specialization_id": None,
        }
    return {
        "program_id": user.program_id,
        "masters_degree_id": user.masters_degree_id,
        "specialization_id": user.specialization_id,
        "program_specialization_id": user.program_specialization_id,
    }
