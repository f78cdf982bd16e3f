"""
coursereview/seed/review_export.py
Export all reviews to per-user JSON files readable by the review loader
"""
import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.orm.base import utcnow
from coursereview.orm.course import Course
from coursereview.orm.review import Review, Tag, post_tags
from coursereview.orm.user import User

logger = logging.getLogger(__name__)


def export_filename(email: str) -> str:
    return email.replace("@", "_at_").replace(".", "_") + ".json"


def _iso(value) -> str:
    return value.isoformat(timespec="milliseconds") + "Z"


async def export_reviews(db: AsyncSession, directory: Path) -> Dict[str, int]:
    """
    Write one file per reviewing user into directory (created if needed).

    Returns:
        Mapping of written filename to number of reviews it holds
    """
    rows = (
        await db.execute(
            select(
                Review.id,
                User.email,
                Course.code,
                Review.year_taken,
                Review.date_posted,
                Review.rating_professor,
                Review.rating_material,
                Review.rating_peers,
                Review.rating_workload,
                Review.content,
            )
            .join(User, Review.user_id == User.id)
            .join(Course, Review.course_id == Course.id)
            .order_by(User.email, Review.date_posted, Review.id)
        )
    ).all()

    if not rows:
        logger.info("No reviews found in database.")
        return {}

    tag_rows = await db.execute(
        select(post_tags.c.post_id, Tag.name)
        .join(Tag, post_tags.c.tag_id == Tag.id)
        .order_by(Tag.name)
    )
    tags_by_review: Dict[int, List[str]] = defaultdict(list)
    for review_id, name in tag_rows:
        tags_by_review[review_id].append(name)

    by_user: Dict[str, List[dict]] = defaultdict(list)
    for row in rows:
        by_user[row.email].append({
            "courseCode": row.code,
            "yearTaken": row.year_taken,
            "datePosted": _iso(row.date_posted),
            "ratingProfessor": row.rating_professor,
            "ratingMaterial": row.rating_material,
            "ratingPeers": row.rating_peers,
            "ratingWorkload": row.rating_workload.value,
            "content": row.content,
            "tagNames": tags_by_review.get(row.id, []),
        })

    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    exported_at = _iso(utcnow())

    written = {}
    for email, reviews in by_user.items():
        filename = export_filename(email)
        payload = {"email": email, "exportedAt": exported_at, "reviews": reviews}
        with open(directory / filename, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        logger.info(f"  ✓ {filename}: {len(reviews)} reviews")
        written[filename] = len(reviews)

    logger.info(f"✓ Exported {len(rows)} reviews to {len(written)} files in {directory}")
    return written
