"""
Seeding and export CLI commands
"""
import asyncio
import logging
from pathlib import Path

from coursereview.database import AsyncSessionLocal, close_db, init_db
from coursereview.seed.review_export import export_reviews
from coursereview.seed.seed_all import seed_database, table_counts

logger = logging.getLogger(__name__)


class SeedCommand:
    """Seed CLI command handler."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def execute(self, args) -> int:
        programs_dir = Path(args.programs_dir)
        reviews_dir = None if args.skip_reviews else Path(args.reviews_dir)

        print("=== Database Seed ===")
        if self.dry_run:
            print(f"[DRY RUN] Would load programs from {programs_dir}")
            print(f"[DRY RUN] Would load reviews from {reviews_dir or '(skipped)'}")
            print(f"[DRY RUN] Dummy users: {'yes' if args.with_dummy_users else 'no'}")
            return 0

        try:
            counts = asyncio.run(self._run(programs_dir, reviews_dir, args.with_dummy_users))
        except Exception as e:
            print(f"Error: {e}")
            return 1

        for label, value in counts.items():
            print(f"  {label}: {value}")
        return 0

    async def _run(self, programs_dir, reviews_dir, with_dummy_users):
        try:
            return await seed_database(
                programs_dir=programs_dir,
                reviews_dir=reviews_dir,
                with_dummy_users=with_dummy_users,
            )
        finally:
            await close_db()


class ExportCommand:
    """Review export CLI command handler."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def execute(self, args) -> int:
        output = Path(args.output)
        print("=== Review Export ===")
        if self.dry_run:
            print(f"[DRY RUN] Would export reviews to {output}")
            return 0

        try:
            written = asyncio.run(self._run(output))
        except Exception as e:
            print(f"Error: {e}")
            return 1

        print(f"Exported {sum(written.values())} reviews to {len(written)} files in {output}")
        return 0

    async def _run(self, output: Path):
        try:
            async with AsyncSessionLocal() as db:
                return await export_reviews(db, output)
        finally:
            await close_db()


class DbCommand:
    """Database CLI command handler."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def execute(self, args) -> int:
        if args.db_action == "init":
            return self._init()
        elif args.db_action == "counts":
            return self._counts()
        else:
            print("Error: Unknown database action")
            return 1

    def _init(self) -> int:
        print("=== Database Init ===")
        if self.dry_run:
            print("[DRY RUN] Would create missing tables")
            return 0
        try:
            asyncio.run(self._async_init())
        except Exception as e:
            print(f"Error: {e}")
            return 1
        print("✓ Tables created")
        return 0

    async def _async_init(self) -> None:
        try:
            await init_db()
        finally:
            await close_db()

    def _counts(self) -> int:
        try:
            counts = asyncio.run(self._async_counts())
        except Exception as e:
            print(f"Error: {e}")
            return 1
        for label, value in counts.items():
            print(f"  {label}: {value}")
        return 0

    async def _async_counts(self):
        try:
            async with AsyncSessionLocal() as db:
                return await table_counts(db)
        finally:
            await close_db()
