"""
coursereview/services/review_service.py
Review aggregate: a review plus its tag links, written as one unit

Rules:
- One review per (user, course). Checked up front, and the storage
  constraint one_review_per_course settles concurrent submissions.
- Only courses in the author's visibility set can be reviewed.
- Update and delete treat "not found" and "not yours" identically.
- Supplying tags on update replaces the whole tag set.
"""
import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.exceptions import (
    DuplicateReviewError,
    NotFoundError,
    ReviewNotFoundError,
    UserNotFoundError,
    ValidationFailedError,
)
from coursereview.orm.base import utcnow
from coursereview.orm.course import Course
from coursereview.orm.review import Review, Tag, post_tags
from coursereview.orm.user import User
from coursereview.schemas.review import MAX_TAGS_PER_REVIEW, ReviewInput, ReviewUpdate
from coursereview.services.ratings import compute_overall_rating
from coursereview.services.visibility_service import resolve_visible_course_ids

logger = logging.getLogger(__name__)

UNIQUE_REVIEW_CONSTRAINT = "one_review_per_course"


def review_display_query():
    return (
        select(
            Review,
            Course.id.label("course_id"),
            Course.name.label("course_name"),
            Course.code.label("course_code"),
            User.username.label("author_username"),
        )
        .join(Course, Review.course_id == Course.id)
        .join(User, Review.user_id == User.id)
    )


async def fetch_tags_for_reviews(db: AsyncSession, review_ids: Iterable[int]) -> Dict[int, List[Dict[str, Any]]]:
    """One batched query for all tags of the given reviews, grouped by review id."""
    review_ids = list(review_ids)
    tags_by_review: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
    if not review_ids:
        return tags_by_review

    result = await db.execute(
        select(post_tags.c.post_id, Tag.id, Tag.name, Tag.sentiment)
        .join(Tag, post_tags.c.tag_id == Tag.id)
        .where(post_tags.c.post_id.in_(review_ids))
        .order_by(Tag.name)
    )
    for post_id, tag_id, name, sentiment in result.all():
        tags_by_review[post_id].append({"id": tag_id, "name": name, "sentiment": sentiment})
    return tags_by_review


def serialize_review(row, tags: List[Dict[str, Any]]) -> Dict[str, Any]:
    review: Review = row.Review
    return {
        "id": review.id,
        "date_posted": review.date_posted,
        "year_taken": review.year_taken,
        "rating_professor": review.rating_professor,
        "rating_material": review.rating_material,
        "rating_peers": review.rating_peers,
        "rating_workload": review.rating_workload,
        "content": review.content,
        "overall_rating": compute_overall_rating(
            review.rating_professor, review.rating_material, review.rating_peers
        ),
        "author_id": review.user_id,
        "course": {"id": row.course_id, "name": row.course_name, "code": row.course_code},
        "author": {"username": row.author_username},
        "tags": tags,
    }


async def _validate_tag_ids(db: AsyncSession, tag_ids: List[int]) -> None:
    if len(tag_ids) > MAX_TAGS_PER_REVIEW:
        raise ValidationFailedError(f"Maximum {MAX_TAGS_PER_REVIEW} tags allowed")
    if not tag_ids:
        return
    result = await db.execute(select(Tag.id).where(Tag.id.in_(tag_ids)))
    missing = set(tag_ids) - set(result.scalars().all())
    if missing:
        raise ValidationFailedError("Unknown tag", {"tag_ids": sorted(missing)})


async def _insert_tag_links(db: AsyncSession, review_id: int, tag_ids: List[int]) -> None:
    if tag_ids:
        await db.execute(
            insert(post_tags),
            [{"post_id": review_id, "tag_id": tag_id} for tag_id in tag_ids],
        )


async def _get_owned_review(db: AsyncSession, review_id: int, user_id: str) -> Review:
    result = await db.execute(
        select(Review).where(Review.id == review_id, Review.user_id == user_id)
    )
    review = result.scalar_one_or_none()
    if review is None:
        raise ReviewNotFoundError()
    return review


def _is_unique_review_violation(error: IntegrityError) -> bool:
    message = str(error.orig)
    return UNIQUE_REVIEW_CONSTRAINT in message or (
        "UNIQUE constraint failed" in message and "post.user_id" in message
    )


async def get_user_review_for_course(db: AsyncSession, user_id: str, course_id: int) -> Optional[int]:
    """Id of the user's review for the course, or None."""
    result = await db.execute(
        select(Review.id).where(Review.user_id == user_id, Review.course_id == course_id)
    )
    return result.scalar_one_or_none()


async def create_review(db: AsyncSession, data: ReviewInput) -> int:
    """
    Create a review and its tag links atomically. Returns the new review id.

    Raises:
        UserNotFoundError: author does not exist
        NotFoundError: course does not exist
        ValidationFailedError: course outside the author's visibility set, or unknown tags
        DuplicateReviewError: the author already reviewed the course
    """
    user = await db.get(User, data.user_id)
    if user is None:
        raise UserNotFoundError(data.user_id)

    course = await db.get(Course, data.course_id)
    if course is None:
        raise NotFoundError("Course", data.course_id)

    visibility = await resolve_visible_course_ids(
        db,
        user.program_id,
        user.masters_degree_id,
        user.specialization_id,
        program_specialization_id=user.program_specialization_id,
    )
    if not visibility.allows(data.course_id):
        raise ValidationFailedError(
            "This course is not part of your program",
            {"course_id": data.course_id},
        )

    await _validate_tag_ids(db, data.tag_ids)

    if await get_user_review_for_course(db, data.user_id, data.course_id) is not None:
        raise DuplicateReviewError()

    try:
        review = Review(
            user_id=data.user_id,
            course_id=data.course_id,
            date_posted=utcnow(),
            year_taken=data.year_taken,
            rating_professor=data.rating_professor,
            rating_material=data.rating_material,
            rating_peers=data.rating_peers,
            rating_workload=data.rating_workload,
            content=data.content,
        )
        db.add(review)
        await db.flush()
        await _insert_tag_links(db, review.id, data.tag_ids)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if _is_unique_review_violation(e):
            logger.warning(
                f"[DUPLICATE REVIEW] user={data.user_id} course={data.course_id} lost insert race"
            )
            raise DuplicateReviewError() from e
        raise
    except Exception:
        await db.rollback()
        raise

    logger.info(f"[REVIEW CREATED] review={review.id} user={data.user_id} course={data.course_id}")
    return review.id


async def update_review(db: AsyncSession, review_id: int, user_id: str, patch: ReviewUpdate) -> None:
    """Update an owned review; tags are fully replaced when patch.tag_ids is given."""
    review = await _get_owned_review(db, review_id, user_id)
    if patch.tag_ids is not None:
        await _validate_tag_ids(db, patch.tag_ids)

    try:
        review.year_taken = patch.year_taken
        review.rating_professor = patch.rating_professor
        review.rating_material = patch.rating_material
        review.rating_peers = patch.rating_peers
        review.rating_workload = patch.rating_workload
        review.content = patch.content

        if patch.tag_ids is not None:
            await db.execute(delete(post_tags).where(post_tags.c.post_id == review_id))
            await _insert_tag_links(db, review_id, patch.tag_ids)

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"[REVIEW UPDATED] review={review_id} user={user_id}")


async def delete_review(db: AsyncSession, review_id: int, user_id: str) -> None:
    """Delete an owned review. Tag links go with it via ON DELETE CASCADE."""
    await _get_owned_review(db, review_id, user_id)
    try:
        await db.execute(delete(Review).where(Review.id == review_id, Review.user_id == user_id))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"[REVIEW DELETED] review={review_id} user={user_id}")


async def get_reviews_for_course(db: AsyncSession, course_id: int) -> List[Dict[str, Any]]:
    """All reviews of a course, newest first, with tags and overall rating."""
    result = await db.execute(
        review_display_query()
        .where(Review.course_id == course_id)
        .order_by(Review.date_posted.desc(), Review.id.desc())
    )
    rows = result.all()
    tags_by_review = await fetch_tags_for_reviews(db, [row.Review.id for row in rows])
    return [serialize_review(row, tags_by_review.get(row.Review.id, [])) for row in rows]


async def get_review_by_id(db: AsyncSession, review_id: int) -> Optional[Dict[str, Any]]:
    result = await db.execute(review_display_query().where(Review.id == review_id))
    row = result.first()
    if row is None:
        return None
    tags_by_review = await fetch_tags_for_reviews(db, [review_id])
    return serialize_review(row, tags_by_review.get(review_id, []))


async def get_review_for_edit(db: AsyncSession, review_id: int, user_id: str) -> Optional[Dict[str, Any]]:
    """Edit-form view of an owned review, or None when missing or not owned."""
    result = await db.execute(
        select(Review, Course.name, Course.code)
        .join(Course, Review.course_id == Course.id)
        .where(Review.id == review_id, Review.user_id == user_id)
    )
    row = result.first()
    if row is None:
        return None

    review, course_name, course_code = row
    tag_result = await db.execute(
        select(post_tags.c.tag_id).where(post_tags.c.post_id == review_id).order_by(post_tags.c.tag_id)
    )
    return {
        "id": review.id,
        "course_id": review.course_id,
        "course_name": course_name,
        "course_code": course_code,
        "year_taken": review.year_taken,
        "rating_professor": review.rating_professor,
        "rating_material": review.rating_material,
        "rating_peers": review.rating_peers,
        "rating_workload": review.rating_workload,
        "content": review.content,
        "tag_ids": list(tag_result.scalars().all()),
    }


async def get_user_reviewed_courses(db: AsyncSession, user_id: str) -> List[Dict[str, int]]:
    result = await db.execute(
        select(Review.course_id, Review.id).where(Review.user_id == user_id).order_by(Review.id)
    )
    return [{"course_id": course_id, "review_id": review_id} for course_id, review_id in result.all()]


async def get_all_tags(db: AsyncSession) -> List[Tag]:
    result = await db.execute(select(Tag).order_by(Tag.name))
    return list(result.scalars().all())
