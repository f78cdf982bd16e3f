"""
coursereview/seed/review_loader.py
Import reviews from per-user JSON files

Natural keys (email, course code, tag name) are resolved to ids against
maps fetched once up front. Every review is committed on its own together
with its tag links, so one bad entry never takes the rest of the file down.
Existing (user, course) reviews are left untouched and the original
datePosted is kept.
"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.orm.course import Course
from coursereview.orm.review import Review, Tag, post_tags
from coursereview.orm.user import User
from coursereview.seed.schemas import ReviewEntry, ReviewFile
from coursereview.seed.upsert import dialect_insert

logger = logging.getLogger(__name__)


@dataclass
class ReviewLoadReport:
    files_processed: int = 0
    inserted: int = 0
    skipped: int = 0
    tags_linked: int = 0
    warnings: List[str] = field(default_factory=list)


async def _lookup_maps(db: AsyncSession):
    users = await db.execute(select(func.lower(User.email), User.id))
    courses = await db.execute(select(Course.code, Course.id))
    tags = await db.execute(select(Tag.name, Tag.id))
    return dict(users.all()), dict(courses.all()), dict(tags.all())


async def _insert_review(
    db: AsyncSession,
    user_id: str,
    course_id: int,
    entry: ReviewEntry,
    tag_ids: Dict[str, int],
    report: ReviewLoadReport,
) -> Optional[int]:
    """Insert one review and its tag links. Returns the number of links, or None when it already existed."""
    stmt = (
        dialect_insert(db, Review)
        .values(
            user_id=user_id,
            course_id=course_id,
            year_taken=entry.year_taken,
            date_posted=entry.date_posted,
            rating_professor=entry.rating_professor,
            rating_material=entry.rating_material,
            rating_peers=entry.rating_peers,
            rating_workload=entry.rating_workload,
            content=entry.content,
        )
        .on_conflict_do_nothing(index_elements=["user_id", "course_id"])
        .returning(Review.id)
    )
    review_id = (await db.execute(stmt)).scalar_one_or_none()
    if review_id is None:
        return None

    links = []
    for name in dict.fromkeys(entry.tag_names):
        tag_id = tag_ids.get(name)
        if tag_id is None:
            report.warnings.append(f'Tag not found: "{name}" (review for {entry.course_code})')
            continue
        links.append({"post_id": review_id, "tag_id": tag_id})

    if links:
        await db.execute(
            dialect_insert(db, post_tags)
            .values(links)
            .on_conflict_do_nothing(index_elements=["post_id", "tag_id"])
        )
    return len(links)


async def load_review_file(
    db: AsyncSession,
    path: Path,
    users: Dict[str, str],
    courses: Dict[str, int],
    tags: Dict[str, int],
    report: ReviewLoadReport,
) -> None:
    with open(path, "r", encoding="utf-8") as f:
        data = ReviewFile.model_validate(json.load(f))

    user_id = users.get(data.email.strip().lower())
    if user_id is None:
        report.warnings.append(f"User not found: {data.email} (file: {path.name})")
        return

    for position, raw in enumerate(data.reviews):
        try:
            entry = ReviewEntry.model_validate(raw)
        except ValidationError as e:
            report.warnings.append(
                f"Invalid review #{position} in {path.name}: {e.error_count()} validation errors"
            )
            continue

        course_id = courses.get(entry.course_code)
        if course_id is None:
            report.warnings.append(f"Course not found: {entry.course_code} (user: {data.email})")
            continue

        try:
            linked = await _insert_review(db, user_id, course_id, entry, tags, report)
            await db.commit()
        except (SQLAlchemyError, OverflowError) as e:
            await db.rollback()
            logger.error(f"  ✗ Review #{position} in {path.name} rejected by storage: {e}")
            report.warnings.append(f"Review #{position} in {path.name} not stored: {type(e).__name__}")
            continue

        if linked is None:
            report.skipped += 1
        else:
            report.inserted += 1
            report.tags_linked += linked


async def load_reviews_from_directory(db: AsyncSession, directory: Path) -> ReviewLoadReport:
    """
    Load every *.json review file in directory.

    A missing directory is not an error: there is simply nothing to import.
    """
    directory = Path(directory)
    report = ReviewLoadReport()
    if not directory.is_dir():
        logger.info(f"  ℹ No review directory at {directory}, skipping reviews import")
        return report

    files = sorted(directory.glob("*.json"))
    if not files:
        logger.info(f"  ℹ No review files found in {directory}")
        return report

    users, courses, tags = await _lookup_maps(db)

    for path in files:
        try:
            await load_review_file(db, path, users, courses, tags, report)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            report.warnings.append(f"Unreadable review file {path.name}: {e}")
            continue
        report.files_processed += 1

    logger.info(
        f"✓ Reviews: {report.inserted} imported, {report.skipped} already existed, "
        f"{report.tags_linked} tags linked"
    )
    if report.warnings:
        logger.warning(f"  ⚠ {len(report.warnings)} warnings:")
        for warning in report.warnings:
            logger.warning(f"    - {warning}")
    return report
