"""
coursereview/services/feed_service.py
Review feed: visibility filter -> sort -> offset page -> batched tags

Pagination fetches page_size + 1 rows; the extra row only signals
has_more and is never returned. No COUNT query is issued.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.config import settings
from coursereview.orm.review import Review
from coursereview.services.ratings import average_rating_expr
from coursereview.services.review_service import (
    review_display_query,
    fetch_tags_for_reviews,
    serialize_review,
)
from coursereview.services.visibility_service import resolve_visible_course_ids

logger = logging.getLogger(__name__)

SORT_OPTIONS = ("newest", "top-rated", "professor", "material", "peers")

_SORT_ORDER = {
    "newest": (Review.date_posted.desc(),),
    "top-rated": (average_rating_expr.desc(), Review.date_posted.desc()),
    "professor": (Review.rating_professor.desc(), Review.date_posted.desc()),
    "material": (Review.rating_material.desc(), Review.date_posted.desc()),
    "peers": (Review.rating_peers.desc(), Review.date_posted.desc()),
}


def _empty_page(page: int, page_size: int) -> Dict[str, Any]:
    return {"items": [], "page": page, "page_size": page_size, "has_more": False}


async def get_feed(
    db: AsyncSession,
    program_id: Optional[int] = None,
    masters_degree_id: Optional[int] = None,
    specialization_id: Optional[int] = None,
    page: int = 1,
    page_size: int = None,
    sort_by: str = "newest",
    *,
    program_specialization_id: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Build one page of the review feed for an academic identity.

    Returns:
        Dict with keys: items, page, page_size, has_more

    An identity with no academic ids sees every review. An identity whose
    curriculum is empty sees nothing.
    """
    page = max(1, page or 1)
    page_size = page_size or settings.FEED_PAGE_SIZE
    page_size = max(1, min(page_size, settings.FEED_MAX_PAGE_SIZE))
    order = _SORT_ORDER.get(sort_by, _SORT_ORDER["newest"])

    visibility = await resolve_visible_course_ids(
        db,
        program_id,
        masters_degree_id,
        specialization_id,
        program_specialization_id=program_specialization_id,
    )
    if not visibility.is_unfiltered and visibility.is_empty:
        return _empty_page(page, page_size)

    stmt = review_display_query()
    if not visibility.is_unfiltered:
        stmt = stmt.where(Review.course_id.in_(visibility.course_ids))

    stmt = (
        stmt.order_by(*order, Review.id.desc())
        .limit(page_size + 1)
        .offset((page - 1) * page_size)
    )
    result = await db.execute(stmt)
    rows = result.all()

    has_more = len(rows) > page_size
    rows = rows[:page_size]

    tags_by_review = await fetch_tags_for_reviews(db, [row.Review.id for row in rows])
    items = [serialize_review(row, tags_by_review.get(row.Review.id, [])) for row in rows]

    logger.debug(
        f"Feed page={page} size={page_size} sort={sort_by} items={len(items)} has_more={has_more}"
    )
    return {"items": items, "page": page, "page_size": page_size, "has_more": has_more}
