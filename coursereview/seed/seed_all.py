"""
coursereview/seed/seed_all.py
Master seeding routine - runs all loaders in dependency order (idempotent)
"""
import logging
import time
from pathlib import Path
from typing import Dict, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from coursereview.config import settings
from coursereview.database import AsyncSessionLocal, count_rows, engine, init_db
from coursereview.orm import (
    Course,
    CourseProgram,
    CourseSpecialization,
    Program,
    Review,
    Specialization,
    Tag,
    User,
)
from coursereview.seed.dummy_users import seed_dummy_users
from coursereview.seed.program_loader import ProgramLoadError, load_programs_from_directory
from coursereview.seed.review_loader import load_reviews_from_directory
from coursereview.seed.tag_loader import seed_tags

logger = logging.getLogger(__name__)

DEFAULT_PROGRAMS_DIR = settings.DATA_DIR / "programs"
DEFAULT_REVIEWS_DIR = settings.DATA_DIR / "reviews"

COUNTED_TABLES = {
    "programs": Program,
    "courses": Course,
    "specializations": Specialization,
    "course_program_links": CourseProgram,
    "course_specialization_links": CourseSpecialization,
    "tags": Tag,
    "users": User,
    "reviews": Review,
}


async def table_counts(db: AsyncSession) -> Dict[str, int]:
    return {label: await count_rows(db, model) for label, model in COUNTED_TABLES.items()}


async def seed_database(
    programs_dir: Path = DEFAULT_PROGRAMS_DIR,
    reviews_dir: Optional[Path] = DEFAULT_REVIEWS_DIR,
    with_dummy_users: bool = False,
    target: Optional[AsyncEngine] = None,
    session_factory: Optional[async_sessionmaker] = None,
) -> Dict[str, int]:
    """
    Run all loaders in order and return the final table counts.

    Steps:
        1. schema creation
        2. programs, specializations, courses and links (any failed file aborts the run)
        3. tags
        4. dummy users (optional)
        5. reviews (optional, skipped when reviews_dir is None)
    """
    session_factory = session_factory or AsyncSessionLocal
    started = time.monotonic()

    try:
        logger.info("=" * 60)
        logger.info("STARTING DATABASE SEEDING")
        logger.info("=" * 60)

        logger.info("[1/5] Initializing database...")
        await init_db(target or engine)

        async with session_factory() as db:
            logger.info(f"[2/5] Loading programs from {programs_dir}...")
            report = await load_programs_from_directory(db, programs_dir)
            if not report.ok:
                raise ProgramLoadError(report)

            logger.info("[3/5] Seeding tags...")
            await seed_tags(db)

            if with_dummy_users:
                logger.info("[4/5] Seeding dummy users...")
                await seed_dummy_users(db, report.programs)
            else:
                logger.info("[4/5] Dummy users skipped")

            if reviews_dir is not None:
                logger.info(f"[5/5] Loading reviews from {reviews_dir}...")
                await load_reviews_from_directory(db, reviews_dir)
            else:
                logger.info("[5/5] Reviews skipped")

            counts = await table_counts(db)

        logger.info("Database counts:")
        for label, value in counts.items():
            logger.info(f"   {label}: {value}")

        logger.info("=" * 60)
        logger.info(f"✅ DATABASE SEEDING COMPLETE in {time.monotonic() - started:.2f}s")
        logger.info("=" * 60)
        return counts

    except Exception as e:
        logger.error(f"❌ Seeding failed: {str(e)}", exc_info=True)
        raise
