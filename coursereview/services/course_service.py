"""
coursereview/services/course_service.py
Course lookups, visibility-scoped listings and search, each with review statistics
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.orm.course import Course
from coursereview.orm.review import Review
from coursereview.services.ratings import average_rating_expr, round_average
from coursereview.services.visibility_service import VisibleCourses

logger = logging.getLogger(__name__)

SEARCH_MIN_LENGTH = 2
SEARCH_MAX_LENGTH = 100
SEARCH_LIMIT = 10


def _course_stats_query():
    return (
        select(
            Course.id,
            Course.name,
            Course.code,
            func.count(Review.id).label("review_count"),
            func.avg(average_rating_expr).label("average_rating"),
        )
        .outerjoin(Review, Review.course_id == Course.id)
        .group_by(Course.id, Course.name, Course.code)
    )


def _row_to_dict(row) -> Dict[str, Any]:
    return {
        "id": row.id,
        "name": row.name,
        "code": row.code,
        "review_count": int(row.review_count or 0),
        "average_rating": round_average(row.average_rating),
    }


async def get_course_by_code(db: AsyncSession, code: str) -> Optional[Course]:
    result = await db.execute(select(Course).where(Course.code == code))
    return result.scalar_one_or_none()


async def get_course_with_stats(db: AsyncSession, course_id: int) -> Optional[Dict[str, Any]]:
    """Course by id with review count and average overall rating, or None."""
    result = await db.execute(_course_stats_query().where(Course.id == course_id))
    row = result.first()
    return _row_to_dict(row) if row else None


async def get_available_courses(
    db: AsyncSession,
    visibility: VisibleCourses,
) -> List[Dict[str, Any]]:
    """
    Courses the identity may see, ordered by code.

    UNFILTERED returns the whole catalog; an empty Filtered returns [].
    """
    stmt = _course_stats_query().order_by(Course.code)
    if not visibility.is_unfiltered:
        if visibility.is_empty:
            return []
        stmt = stmt.where(Course.id.in_(visibility.course_ids))

    result = await db.execute(stmt)
    return [_row_to_dict(row) for row in result.all()]


def normalize_search_query(query: Optional[str]) -> Optional[str]:
    """
    Trim a search query and decide whether it is searchable.

    Returns None for queries shorter than the minimum. Raises ValueError
    for queries longer than the maximum.
    """
    trimmed = (query or "").strip()
    if len(trimmed) < SEARCH_MIN_LENGTH:
        return None
    if len(trimmed) > SEARCH_MAX_LENGTH:
        raise ValueError("Search query too long")
    return trimmed


async def search_courses(db: AsyncSession, query: str) -> List[Dict[str, Any]]:
    """Case-insensitive partial match on course name or code, at most 10 results."""
    trimmed = normalize_search_query(query)
    if trimmed is None:
        return []

    pattern = f"%{trimmed}%"
    stmt = (
        _course_stats_query()
        .where(or_(Course.name.ilike(pattern), Course.code.ilike(pattern)))
        .order_by(Course.code)
        .limit(SEARCH_LIMIT)
    )
    result = await db.execute(stmt)
    courses = [_row_to_dict(row) for row in result.all()]
    logger.debug(f"Course search '{trimmed}' matched {len(courses)} courses")
    return courses
