"""
coursereview/seed/tag_loader.py
Seed the fixed set of review tags (idempotent)
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.orm.review import Tag, TagSentiment
from coursereview.seed.upsert import dialect_insert

logger = logging.getLogger(__name__)

TAGS = [
    ("Clear Grading Criteria", TagSentiment.positive),
    ("Entertaining Lectures", TagSentiment.positive),
    ("Helpful TAs", TagSentiment.positive),
    ("Professor & TAs are Accessible Outside Class", TagSentiment.positive),
    ("Recorded Lectures", TagSentiment.positive),
    ("Industry Relevant", TagSentiment.positive),
    ("Can Skip the Literature", TagSentiment.positive),
    ("Group Projects", TagSentiment.positive),

    ("Lots of Reading", TagSentiment.negative),
    ("Textbook Required", TagSentiment.negative),
    ("Tough Grading", TagSentiment.negative),
    ("Bamboozling Exams", TagSentiment.negative),
    ("LOTS of Assignments", TagSentiment.negative),
    ("Bad Course Layout", TagSentiment.negative),
    ("Lecture Heavy", TagSentiment.negative),
    ("Outdated Content", TagSentiment.negative),
]


async def seed_tags(db: AsyncSession) -> int:
    """Insert missing tags. Returns how many were new."""
    inserted = 0
    try:
        for name, sentiment in TAGS:
            result = await db.execute(
                dialect_insert(db, Tag)
                .values(name=name, sentiment=sentiment)
                .on_conflict_do_nothing(index_elements=["name"])
                .returning(Tag.id)
            )
            if result.scalar_one_or_none() is not None:
                inserted += 1
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"✓ Tags: {inserted} inserted, {len(TAGS) - inserted} already existed")
    return inserted
