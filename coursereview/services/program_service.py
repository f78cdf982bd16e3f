"""
coursereview/services/program_service.py
Program catalog queries: base programs, masters degrees and specializations
"""
from typing import List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.orm.program import (
    BASE_PROGRAM_CREDITS,
    MASTERS_DEGREE_CREDITS,
    Program,
    Specialization,
)
from coursereview.services.course_service import SEARCH_LIMIT, normalize_search_query


async def get_program_by_id(db: AsyncSession, program_id: int) -> Optional[Program]:
    result = await db.execute(select(Program).where(Program.id == program_id))
    return result.scalar_one_or_none()


async def get_program_by_code(db: AsyncSession, code: str) -> Optional[Program]:
    result = await db.execute(select(Program).where(Program.code == code))
    return result.scalar_one_or_none()


async def get_all_programs(db: AsyncSession) -> List[Program]:
    result = await db.execute(select(Program).order_by(Program.name))
    return list(result.scalars().all())


async def get_base_programs(db: AsyncSession) -> List[Program]:
    """Full degree programs students enroll in directly (180hp or 300hp)."""
    result = await db.execute(
        select(Program)
        .where(Program.credits.in_(sorted(BASE_PROGRAM_CREDITS)))
        .order_by(Program.name)
    )
    return list(result.scalars().all())


async def get_masters_degrees(db: AsyncSession) -> List[Program]:
    result = await db.execute(
        select(Program)
        .where(Program.credits == MASTERS_DEGREE_CREDITS)
        .order_by(Program.name)
    )
    return list(result.scalars().all())


async def search_masters_degrees(db: AsyncSession, query: str) -> List[Program]:
    """Masters degrees (120hp) whose code or name matches, at most 10."""
    trimmed = normalize_search_query(query)
    if trimmed is None:
        return []

    pattern = f"%{trimmed}%"
    result = await db.execute(
        select(Program)
        .where(
            and_(
                Program.credits == MASTERS_DEGREE_CREDITS,
                or_(Program.name.ilike(pattern), Program.code.ilike(pattern)),
            )
        )
        .order_by(Program.name)
        .limit(SEARCH_LIMIT)
    )
    return list(result.scalars().all())


async def get_specializations_by_program_id(db: AsyncSession, program_id: int) -> List[Specialization]:
    result = await db.execute(
        select(Specialization)
        .where(Specialization.program_id == program_id)
        .order_by(Specialization.name)
    )
    return list(result.scalars().all())


async def get_specialization_by_id(db: AsyncSession, specialization_id: int) -> Optional[Specialization]:
    result = await db.execute(select(Specialization).where(Specialization.id == specialization_id))
    return result.scalar_one_or_none()
