"""
coursereview/routes/feed.py
Review feed scoped to the caller's curriculum
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.config import settings
from coursereview.database import get_db
from coursereview.orm.user import User
from coursereview.routes.dependencies import academic_ids, get_optional_user
from coursereview.schemas.review import FeedPageResponse, FeedSortOption
from coursereview.services import feed_service

router = APIRouter(tags=["Feed"])


@router.get("/feed", response_model=FeedPageResponse)
async def get_feed(
    page: int = Query(1),
    page_size: Optional[int] = Query(None, ge=1, le=settings.FEED_MAX_PAGE_SIZE),
    sort_by: FeedSortOption = Query("newest"),
    scope: str = Query("my-program", pattern="^(all|my-program)$"),
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Feed of reviews. Guests and scope=all see every review; signed-in
    users otherwise see reviews of courses in their curriculum.
    """
    ids = academic_ids(user if scope == "my-program" else None)
    return await feed_service.get_feed(
        db,
        ids["program_id"],
        ids["masters_degree_id"],
        ids["specialization_id"],
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        program_specialization_id=ids["program_specialization_id"],
    )
