"""
Shared fixtures: an in-memory database per test, a small curriculum,
users, reviews and an HTTP client bound to the same database.

Curriculum:
    CDATE  300hp base, integrated masters, specializations Computer Science / Machine Learning
    TIDAB  180hp base, specializations Software / Hardware
    TCSCM  120hp master, specializations Computer Science / Data Science
    TEBSM  120hp master, no specializations, no courses

    SF1624  CDATE, TIDAB
    DD1337  CDATE
    ID1018  TIDAB
    IS1200  TIDAB/Hardware only
    DD2440  TCSCM and TCSCM/Computer Science
    DD2421  TCSCM/Data Science only
    XX0000  not linked anywhere
"""
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from coursereview.database import build_engine, build_sessionmaker, get_db, init_db
from coursereview.orm.base import utcnow
from coursereview.orm.course import Course, CourseProgram, CourseSpecialization
from coursereview.orm.program import Program, ProgramType, Specialization
from coursereview.orm.review import Review, Tag, WorkloadLevel, post_tags
from coursereview.orm.user import User
from coursereview.security.passwords import hash_password
from coursereview.security.rate_limit import InMemoryRateLimiter, get_feedback_rate_limiter
from coursereview.security.tokens import create_access_token
from coursereview.seed.tag_loader import seed_tags

TEST_PASSWORD = "correct-horse-battery"
_PASSWORD_HASH = hash_password(TEST_PASSWORD)


# =============================================================================
# Database
# =============================================================================

@pytest_asyncio.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# =============================================================================
# Curriculum
# =============================================================================

@pytest_asyncio.fixture
async def catalog(db):
    cdate = Program(code="CDATE", name="Computer Science and Engineering", program_type=ProgramType.bachelor,
                    credits=300, has_integrated_masters=True)
    tidab = Program(code="TIDAB", name="Computer Engineering", program_type=ProgramType.bachelor,
                    credits=180)
    tcscm = Program(code="TCSCM", name="Computer Science", program_type=ProgramType.master, credits=120)
    tebsm = Program(code="TEBSM", name="Embedded Systems", program_type=ProgramType.master, credits=120)
    db.add_all([cdate, tidab, tcscm, tebsm])
    await db.flush()

    specs = {
        "cdate_cs": Specialization(name="Computer Science", program_id=cdate.id),
        "cdate_ml": Specialization(name="Machine Learning", program_id=cdate.id),
        "tidab_sw": Specialization(name="Software", program_id=tidab.id),
        "tidab_hw": Specialization(name="Hardware", program_id=tidab.id),
        "tcscm_cs": Specialization(name="Computer Science", program_id=tcscm.id),
        "tcscm_ds": Specialization(name="Data Science", program_id=tcscm.id),
    }
    db.add_all(specs.values())

    courses = {
        code: Course(code=code, name=name)
        for code, name in [
            ("SF1624", "Algebra and Geometry"),
            ("DD1337", "Programming"),
            ("ID1018", "Programming I"),
            ("IS1200", "Computer Hardware Engineering"),
            ("DD2440", "Advanced Algorithms"),
            ("DD2421", "Machine Learning"),
            ("XX0000", "Unlinked Course"),
        ]
    }
    db.add_all(courses.values())
    await db.flush()

    db.add_all([
        CourseProgram(course_id=courses["SF1624"].id, program_id=cdate.id),
        CourseProgram(course_id=courses["SF1624"].id, program_id=tidab.id),
        CourseProgram(course_id=courses["DD1337"].id, program_id=cdate.id),
        CourseProgram(course_id=courses["ID1018"].id, program_id=tidab.id),
        CourseProgram(course_id=courses["DD2440"].id, program_id=tcscm.id),
        CourseSpecialization(course_id=courses["IS1200"].id, specialization_id=specs["tidab_hw"].id),
        CourseSpecialization(course_id=courses["DD2440"].id, specialization_id=specs["tcscm_cs"].id),
        CourseSpecialization(course_id=courses["DD2421"].id, specialization_id=specs["tcscm_ds"].id),
    ])
    await db.commit()
    await seed_tags(db)

    # Plain ids: a rollback inside a test expires ORM instances
    return SimpleNamespace(
        cdate=cdate.id, tidab=tidab.id, tcscm=tcscm.id, tebsm=tebsm.id,
        specs=SimpleNamespace(**{k: v.id for k, v in specs.items()}),
        courses=SimpleNamespace(**{k: v.id for k, v in courses.items()}),
    )


@pytest_asyncio.fixture
async def tags(db, catalog):
    result = await db.execute(Tag.__table__.select().order_by(Tag.name))
    return {row.name: row.id for row in result}


# =============================================================================
# Users and reviews
# =============================================================================

_user_counter = {"n": 0}


async def make_user(db, email=None, verified=True, **academic_ids) -> User:
    _user_counter["n"] += 1
    for key in ("program_id", "masters_degree_id", "specialization_id", "program_specialization_id"):
        academic_ids.setdefault(key, None)
    n = _user_counter["n"]
    user = User(
        email=email or f"student{n}@kth.se",
        username=f"USER{n:06d}",
        password_hash=_PASSWORD_HASH,
        email_verified_at=utcnow() if verified else None,
        **academic_ids,
    )
    db.add(user)
    await db.commit()
    return user


async def make_review(db, user_id, course_id, professor=4, material=4, peers=4,
                      posted=None, workload=WorkloadLevel.medium, tag_ids=()) -> Review:
    review = Review(
        user_id=user_id,
        course_id=course_id,
        year_taken=2024,
        rating_professor=professor,
        rating_material=material,
        rating_peers=peers,
        rating_workload=workload,
        content="Solid course.",
        date_posted=posted or utcnow(),
    )
    db.add(review)
    await db.flush()
    if tag_ids:
        await db.execute(post_tags.insert(), [{"post_id": review.id, "tag_id": t} for t in tag_ids])
    await db.commit()
    return review


def minutes_ago(n: int) -> datetime:
    return utcnow() - timedelta(minutes=n)


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


# =============================================================================
# Collaborators
# =============================================================================

class RecordingDispatcher:
    """Email dispatcher double that records instead of sending."""

    def __init__(self, result: bool = True):
        self.result = result
        self.sent = []

    async def dispatch(self, recipient, template_kind, variables):
        self.sent.append((recipient, template_kind, dict(variables)))
        return self.result


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


# =============================================================================
# HTTP client
# =============================================================================

@pytest.fixture
def feedback_limiter():
    return InMemoryRateLimiter(max_requests=3, window_seconds=600)


@pytest_asyncio.fixture
async def client(session_factory, feedback_limiter):
    from coursereview.main import app
    from coursereview.routes.auth import limiter

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_feedback_rate_limiter] = lambda: feedback_limiter
    limiter.enabled = False

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    limiter.enabled = True
