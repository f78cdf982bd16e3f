"""
coursereview/seed/program_loader.py
Load programs, specializations, courses and curriculum links from JSON files

Idempotent: programs and courses are upserted by code (names may be
corrected by a re-run), specializations and links are inserted only if
absent. Each file is its own transaction; a bad file is reported and
the remaining files still load.
"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.orm.course import Course, CourseProgram, CourseSpecialization
from coursereview.orm.program import Program, Specialization
from coursereview.seed.schemas import ProgramFile
from coursereview.seed.upsert import dialect_insert

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgramInfo:
    id: int
    code: str
    credits: int


@dataclass
class LoadReport:
    files_processed: int = 0
    programs: List[ProgramInfo] = field(default_factory=list)
    courses: int = 0
    specializations: int = 0
    links: int = 0
    failures: List[Tuple[str, str]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class ProgramLoadError(Exception):
    """Raised by the seeding routine when one or more program files failed to load."""

    def __init__(self, report: LoadReport):
        self.report = report
        names = ", ".join(name for name, _ in report.failures)
        super().__init__(f"{len(report.failures)} program file(s) failed to load: {names}")


def read_program_file(path: Path) -> ProgramFile:
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    return ProgramFile.model_validate(raw)


async def _upsert_program(db: AsyncSession, data: ProgramFile) -> Program:
    header = data.program
    stmt = dialect_insert(db, Program).values(
        code=header.code,
        name=header.name,
        program_type=header.program_type,
        credits=header.credits,
        has_integrated_masters=header.has_integrated_masters,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[Program.code],
        set_={
            "name": stmt.excluded.name,
            "credits": stmt.excluded.credits,
            "has_integrated_masters": stmt.excluded.has_integrated_masters,
            "program_type": stmt.excluded.program_type,
        },
    )
    await db.execute(stmt)
    result = await db.execute(
        select(Program).where(Program.code == header.code).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _ensure_specializations(db: AsyncSession, program_id: int, names: List[str]) -> Dict[str, int]:
    if names:
        stmt = dialect_insert(db, Specialization).values(
            [{"name": name, "program_id": program_id} for name in dict.fromkeys(names)]
        )
        await db.execute(stmt.on_conflict_do_nothing(index_elements=["name", "program_id"]))

    result = await db.execute(
        select(Specialization.name, Specialization.id).where(Specialization.program_id == program_id)
    )
    return dict(result.all())


async def _upsert_courses(db: AsyncSession, data: ProgramFile) -> Dict[str, int]:
    # Last entry wins when a file lists the same code twice
    names_by_code = {course.code: course.name for course in data.courses}
    if not names_by_code:
        return {}

    stmt = dialect_insert(db, Course).values(
        [{"code": code, "name": name} for code, name in names_by_code.items()]
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[Course.code],
        set_={"name": stmt.excluded.name},
    )
    await db.execute(stmt)

    result = await db.execute(
        select(Course.code, Course.id).where(Course.code.in_(list(names_by_code)))
    )
    return dict(result.all())


async def load_program_data(db: AsyncSession, data: ProgramFile, source: str, report: LoadReport) -> ProgramInfo:
    """Write one program file's contents. The caller owns the transaction."""
    program = await _upsert_program(db, data)
    spec_ids = await _ensure_specializations(db, program.id, data.specializations)
    course_ids = await _upsert_courses(db, data)

    program_links = [{"course_id": cid, "program_id": program.id} for cid in course_ids.values()]
    if program_links:
        await db.execute(
            dialect_insert(db, CourseProgram)
            .values(program_links)
            .on_conflict_do_nothing(index_elements=["course_id", "program_id"])
        )

    spec_links = []
    for course in data.courses:
        for spec_name in course.specializations:
            spec_id = spec_ids.get(spec_name)
            if spec_id is None:
                report.warnings.append(
                    f"Specialization '{spec_name}' not found for course {course.code} ({source})"
                )
                continue
            spec_links.append({"course_id": course_ids[course.code], "specialization_id": spec_id})
    if spec_links:
        await db.execute(
            dialect_insert(db, CourseSpecialization)
            .values(spec_links)
            .on_conflict_do_nothing(index_elements=["course_id", "specialization_id"])
        )

    report.courses += len(course_ids)
    report.specializations += len(data.specializations)
    report.links += len(program_links) + len(spec_links)

    logger.info(
        f"  ✓ {source}: {len(course_ids)} courses, {len(data.specializations)} specializations, "
        f"{len(program_links) + len(spec_links)} links"
    )
    return ProgramInfo(id=program.id, code=program.code, credits=program.credits)


async def load_programs_from_directory(db: AsyncSession, directory: Path) -> LoadReport:
    """
    Load every *.json program file in directory, alphabetically.

    Raises:
        FileNotFoundError: directory does not exist
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Data directory not found: {directory}")

    report = LoadReport()
    files = sorted(directory.glob("*.json"))
    if not files:
        logger.warning(f"⚠ No JSON files found in {directory}")
        return report

    logger.info(f"Processing {len(files)} program files...")
    for path in files:
        try:
            data = read_program_file(path)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error(f"✗ Invalid program file {path.name}: {e}")
            report.failures.append((path.name, str(e)))
            continue

        try:
            info = await load_program_data(db, data, path.name, report)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(f"✗ Failed to load {path.name}: {type(e).__name__}: {e}")
            report.failures.append((path.name, f"{type(e).__name__}: {e}"))
            continue

        report.programs.append(info)
        report.files_processed += 1

    for warning in report.warnings:
        logger.warning(f"  ⚠ {warning}")
    logger.info(
        f"✓ Programs: {report.files_processed} loaded, {len(report.failures)} failed"
    )
    return report
