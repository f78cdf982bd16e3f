"""
coursereview/routes/courses.py
Course listing, search and per-course reviews
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.database import get_db
from coursereview.exceptions import NotFoundError, ValidationFailedError
from coursereview.orm.user import User
from coursereview.routes.dependencies import academic_ids, get_optional_user
from coursereview.schemas.academic import CourseWithStats
from coursereview.schemas.review import ReviewDisplay
from coursereview.services import course_service, review_service
from coursereview.services.visibility_service import resolve_visible_course_ids

router = APIRouter(prefix="/courses", tags=["Courses"])


@router.get("", response_model=List[CourseWithStats])
async def list_courses(
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Courses visible to the caller, with review statistics."""
    ids = academic_ids(user)
    visibility = await resolve_visible_course_ids(
        db,
        ids["program_id"],
        ids["masters_degree_id"],
        ids["specialization_id"],
        program_specialization_id=ids["program_specialization_id"],
    )
    return await course_service.get_available_courses(db, visibility)


@router.get("/search", response_model=List[CourseWithStats])
async def search_courses(
    q: str = Query("", max_length=200),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await course_service.search_courses(db, q)
    except ValueError as e:
        raise ValidationFailedError(str(e), {"field": "q"}) from e


@router.get("/{course_id}/reviews", response_model=List[ReviewDisplay])
async def get_course_reviews(course_id: int, db: AsyncSession = Depends(get_db)):
    if await course_service.get_course_with_stats(db, course_id) is None:
        raise NotFoundError("Course", course_id)
    return await review_service.get_reviews_for_course(db, course_id)


@router.get("/{code}", response_model=CourseWithStats)
async def get_course(code: str, db: AsyncSession = Depends(get_db)):
    course = await course_service.get_course_by_code(db, code)
    if course is None:
        raise NotFoundError("Course", code)
    return await course_service.get_course_with_stats(db, course.id)
