"""
coursereview/services/visibility_service.py
Course visibility resolution

Answers: "Which courses may this academic identity see?"

The result is a tagged variant, never a nullable list:
- UNFILTERED: no academic identity at all, show everything
- Filtered(course_ids): the union of every curriculum link of the identity.
  An identity that maps to zero courses is Filtered(frozenset()), which
  callers must treat as "show nothing".
"""
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Union

from sqlalchemy import select, union
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.orm.course import CourseProgram, CourseSpecialization


class Unfiltered:
    """Visibility for a guest or a user with no academic affiliation."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def is_unfiltered(self) -> bool:
        return True

    def allows(self, course_id: int) -> bool:
        return True

    def __repr__(self):
        return "UNFILTERED"


UNFILTERED = Unfiltered()


@dataclass(frozen=True)
class Filtered:
    course_ids: FrozenSet[int] = field(default_factory=frozenset)

    @property
    def is_unfiltered(self) -> bool:
        return False

    @property
    def is_empty(self) -> bool:
        return not self.course_ids

    def allows(self, course_id: int) -> bool:
        return course_id in self.course_ids


VisibleCourses = Union[Unfiltered, Filtered]


async def resolve_visible_course_ids(
    db: AsyncSession,
    program_id: Optional[int] = None,
    masters_degree_id: Optional[int] = None,
    specialization_id: Optional[int] = None,
    *,
    program_specialization_id: Optional[int] = None,
) -> VisibleCourses:
    """
    Resolve the set of visible course ids for an academic identity.

    Args:
        program_id: Base program (180/300hp) or None
        masters_degree_id: Masters degree (120hp) or None
        specialization_id: Specialization under the masters degree or None
        program_specialization_id: Specialization under the base program or None

    Returns:
        UNFILTERED when every input is None, otherwise Filtered with the
        union of CourseProgram and CourseSpecialization links.
    """
    program_ids = [pid for pid in (program_id, masters_degree_id) if pid is not None]
    specialization_ids = [
        sid for sid in (specialization_id, program_specialization_id) if sid is not None
    ]

    if not program_ids and not specialization_ids:
        return UNFILTERED

    queries = []
    if program_ids:
        queries.append(
            select(CourseProgram.course_id).where(CourseProgram.program_id.in_(program_ids))
        )
    if specialization_ids:
        queries.append(
            select(CourseSpecialization.course_id).where(
                CourseSpecialization.specialization_id.in_(specialization_ids)
            )
        )

    stmt = queries[0] if len(queries) == 1 else union(*queries)
    result = await db.execute(stmt)
    return Filtered(frozenset(result.scalars().all()))
