"""
Review service tests

Coverage:
- Create: visibility check, unknown course/user, tag validation
- One review per (user, course): pre-check and storage constraint
- Update: ownership, full tag replacement, tags untouched when omitted
- Delete: ownership, tag links cascade
- Read helpers
"""
from unittest.mock import AsyncMock, patch

import pytest
from pydantic import ValidationError
from sqlalchemy import func, insert, select
from sqlalchemy.exc import IntegrityError

from coursereview.exceptions import (
    DuplicateReviewError,
    NotFoundError,
    ReviewNotFoundError,
    UserNotFoundError,
    ValidationFailedError,
)
from coursereview.orm.base import utcnow
from coursereview.orm.review import Review, WorkloadLevel, post_tags
from coursereview.schemas.review import ReviewCreate, ReviewInput, ReviewUpdate
from coursereview.services import review_service
from coursereview.tests.conftest import make_user


def review_input(user_id, course_id, tag_ids=(), **overrides):
    fields = dict(
        user_id=user_id,
        course_id=course_id,
        year_taken=2024,
        rating_professor=4,
        rating_material=3,
        rating_peers=5,
        rating_workload="heavy",
        content="  Hard but worth it.  ",
        tag_ids=list(tag_ids),
    )
    fields.update(overrides)
    return ReviewInput(**fields)


async def _count(db, stmt):
    return (await db.execute(stmt)).scalar()


# =============================================================================
# Create
# =============================================================================

@pytest.mark.asyncio
async def test_create_review_with_tags(db, catalog, tags):
    user = await make_user(db, program_id=catalog.tidab)
    tag_ids = [tags["Helpful TAs"], tags["Lots of Reading"]]

    review_id = await review_service.create_review(
        db, review_input(user.id, catalog.courses.SF1624, tag_ids)
    )

    review = await review_service.get_review_by_id(db, review_id)
    assert review["content"] == "Hard but worth it."
    assert review["overall_rating"] == 4.0
    assert review["rating_workload"] == WorkloadLevel.heavy
    assert {t["id"] for t in review["tags"]} == set(tag_ids)


@pytest.mark.asyncio
async def test_create_review_outside_curriculum_rejected(db, catalog):
    user = await make_user(db, program_id=catalog.tidab)

    with pytest.raises(ValidationFailedError):
        await review_service.create_review(db, review_input(user.id, catalog.courses.DD1337))

    assert await _count(db, select(func.count()).select_from(Review)) == 0


@pytest.mark.asyncio
async def test_create_review_unknown_course(db, catalog):
    user = await make_user(db, program_id=catalog.tidab)

    with pytest.raises(NotFoundError):
        await review_service.create_review(db, review_input(user.id, 99999))


@pytest.mark.asyncio
async def test_create_review_unknown_user(db, catalog):
    with pytest.raises(UserNotFoundError):
        await review_service.create_review(
            db, review_input("00000000-0000-0000-0000-000000000000", catalog.courses.SF1624)
        )


@pytest.mark.asyncio
async def test_create_review_unknown_tag(db, catalog, tags):
    user = await make_user(db, program_id=catalog.tidab)

    with pytest.raises(ValidationFailedError):
        await review_service.create_review(
            db, review_input(user.id, catalog.courses.SF1624, [tags["Helpful TAs"], 4242])
        )


@pytest.mark.asyncio
async def test_second_review_for_same_course_rejected(db, catalog):
    user = await make_user(db, program_id=catalog.tidab)
    await review_service.create_review(db, review_input(user.id, catalog.courses.SF1624))

    with pytest.raises(DuplicateReviewError):
        await review_service.create_review(db, review_input(user.id, catalog.courses.SF1624))


@pytest.mark.asyncio
async def test_duplicate_caught_by_storage_constraint(db, catalog, tags):
    user = await make_user(db, program_id=catalog.tidab)
    user_id = user.id
    await review_service.create_review(db, review_input(user_id, catalog.courses.SF1624))

    # Simulate a concurrent submission that passed the pre-check
    with patch(
        "coursereview.services.review_service.get_user_review_for_course",
        AsyncMock(return_value=None),
    ):
        with pytest.raises(DuplicateReviewError):
            await review_service.create_review(
                db, review_input(user_id, catalog.courses.SF1624, [tags["Helpful TAs"]])
            )

    assert await _count(db, select(func.count()).select_from(Review)) == 1
    assert await _count(db, select(func.count()).select_from(post_tags)) == 0


def test_review_input_limits():
    with pytest.raises(ValidationError):
        ReviewCreate(course_id=1, year_taken=1999, rating_professor=3, rating_material=3,
                     rating_peers=3, rating_workload="light")
    with pytest.raises(ValidationError):
        ReviewCreate(course_id=1, year_taken=2024, rating_professor=6, rating_material=3,
                     rating_peers=3, rating_workload="light")
    with pytest.raises(ValidationError):
        ReviewCreate(course_id=1, year_taken=2024, rating_professor=3, rating_material=3,
                     rating_peers=3, rating_workload="light", tag_ids=[1, 2, 3, 4])
    with pytest.raises(ValidationError):
        ReviewCreate(course_id=1, year_taken=2024, rating_professor=3, rating_material=3,
                     rating_peers=3, rating_workload="light", content="x" * 2001)


def test_review_input_dedupes_tags_and_blanks_content():
    body = ReviewCreate(course_id=1, year_taken=2024, rating_professor=3, rating_material=3,
                        rating_peers=3, rating_workload="light", tag_ids=[2, 2, 1], content="   ")
    assert body.tag_ids == [2, 1]
    assert body.content is None


# =============================================================================
# Update / delete
# =============================================================================

@pytest.mark.asyncio
async def test_update_replaces_tags(db, catalog, tags):
    user = await make_user(db, program_id=catalog.tidab)
    review_id = await review_service.create_review(
        db, review_input(user.id, catalog.courses.SF1624, [tags["Helpful TAs"], tags["Tough Grading"]])
    )

    patch_body = ReviewUpdate(year_taken=2023, rating_professor=2, rating_material=2,
                              rating_peers=2, rating_workload="light",
                              tag_ids=[tags["Outdated Content"]])
    await review_service.update_review(db, review_id, user.id, patch_body)

    edit = await review_service.get_review_for_edit(db, review_id, user.id)
    assert edit["tag_ids"] == [tags["Outdated Content"]]
    assert edit["year_taken"] == 2023
    assert edit["rating_workload"] == WorkloadLevel.light


@pytest.mark.asyncio
async def test_update_without_tags_keeps_them(db, catalog, tags):
    user = await make_user(db, program_id=catalog.tidab)
    review_id = await review_service.create_review(
        db, review_input(user.id, catalog.courses.SF1624, [tags["Helpful TAs"]])
    )

    patch_body = ReviewUpdate(year_taken=2024, rating_professor=5, rating_material=5,
                              rating_peers=5, rating_workload="medium")
    await review_service.update_review(db, review_id, user.id, patch_body)

    edit = await review_service.get_review_for_edit(db, review_id, user.id)
    assert edit["tag_ids"] == [tags["Helpful TAs"]]
    assert edit["rating_professor"] == 5


@pytest.mark.asyncio
async def test_update_and_delete_by_other_user_look_missing(db, catalog):
    owner = await make_user(db, program_id=catalog.tidab)
    intruder = await make_user(db, program_id=catalog.tidab)
    owner_id, intruder_id = owner.id, intruder.id
    review_id = await review_service.create_review(db, review_input(owner_id, catalog.courses.SF1624))

    patch_body = ReviewUpdate(year_taken=2024, rating_professor=1, rating_material=1,
                              rating_peers=1, rating_workload="light")
    with pytest.raises(ReviewNotFoundError):
        await review_service.update_review(db, review_id, intruder_id, patch_body)
    with pytest.raises(ReviewNotFoundError):
        await review_service.delete_review(db, review_id, intruder_id)
    with pytest.raises(ReviewNotFoundError):
        await review_service.delete_review(db, 99999, owner_id)

    assert await review_service.get_review_for_edit(db, review_id, intruder_id) is None


@pytest.mark.asyncio
async def test_delete_removes_tag_links(db, catalog, tags):
    user = await make_user(db, program_id=catalog.tidab)
    review_id = await review_service.create_review(
        db, review_input(user.id, catalog.courses.SF1624, [tags["Helpful TAs"]])
    )

    await review_service.delete_review(db, review_id, user.id)

    assert await review_service.get_review_by_id(db, review_id) is None
    assert await _count(db, select(func.count()).select_from(post_tags)) == 0


# =============================================================================
# Reads
# =============================================================================

@pytest.mark.asyncio
async def test_reviewed_courses_and_lookup(db, catalog):
    user = await make_user(db, program_id=catalog.tidab)
    first = await review_service.create_review(db, review_input(user.id, catalog.courses.SF1624))
    second = await review_service.create_review(db, review_input(user.id, catalog.courses.ID1018))

    assert await review_service.get_user_reviewed_courses(db, user.id) == [
        {"course_id": catalog.courses.SF1624, "review_id": first},
        {"course_id": catalog.courses.ID1018, "review_id": second},
    ]
    assert await review_service.get_user_review_for_course(db, user.id, catalog.courses.ID1018) == second
    assert await review_service.get_user_review_for_course(db, user.id, catalog.courses.IS1200) is None


@pytest.mark.asyncio
async def test_reviews_for_course(db, catalog):
    a = await make_user(db, program_id=catalog.tidab)
    b = await make_user(db, program_id=catalog.cdate)
    await review_service.create_review(db, review_input(a.id, catalog.courses.SF1624))
    await review_service.create_review(db, review_input(b.id, catalog.courses.SF1624))

    reviews = await review_service.get_reviews_for_course(db, catalog.courses.SF1624)

    assert len(reviews) == 2
    assert {r["author"]["username"] for r in reviews} == {a.username, b.username}


@pytest.mark.asyncio
async def test_all_tags_sorted(db, catalog):
    tags = await review_service.get_all_tags(db)

    assert len(tags) == 16
    assert [t.name for t in tags] == sorted(t.name for t in tags)


def test_year_taken_cannot_be_in_the_future():
    with pytest.raises(ValidationError):
        ReviewCreate(course_id=1, year_taken=utcnow().year + 1, rating_professor=3, rating_material=3,
                     rating_peers=3, rating_workload="light")


# =============================================================================
# Storage constraints
# =============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("override", [
    {"rating_professor": 6},
    {"rating_material": 0},
    {"rating_peers": 0},
    {"rating_workload": "extreme"},
])
async def test_rating_checks_hold_below_the_service(db, catalog, override):
    user = await make_user(db, program_id=catalog.tidab)
    row = {
        "user_id": user.id,
        "course_id": catalog.courses.SF1624,
        "date_posted": utcnow(),
        "year_taken": 2024,
        "rating_professor": 3,
        "rating_material": 3,
        "rating_peers": 3,
        "rating_workload": "medium",
    }
    row.update(override)

    with pytest.raises(IntegrityError):
        await db.execute(insert(Review.__table__).values(**row))
    await db.rollback()

    assert await _count(db, select(func.count()).select_from(Review)) == 0
