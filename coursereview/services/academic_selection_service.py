"""
coursereview/services/academic_selection_service.py
One-time, irreversible academic selections

Two selections exist per user, each a two-state machine UNSET -> SET:
- masters track: masters_degree_id (+ specialization_id under it)
- base-program specialization: program_specialization_id

SET is terminal. Preconditions are checked in a fixed order so every
failure surfaces as its own exception, and the final write is a
conditional UPDATE guarded on the field still being NULL, which makes a
concurrent double submission lose with SelectionAlreadyMadeError.

After a successful selection the caller's session carries stale academic
ids and must be re-issued.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.config import settings
from coursereview.exceptions import (
    InvalidSelectionError,
    NotEligibleError,
    SelectionAlreadyMadeError,
    SpecializationMismatchError,
    SpecializationRequiredError,
    UserNotFoundError,
)
from coursereview.orm.program import (
    BASE_PROGRAM_CREDITS,
    MASTERS_DEGREE_CREDITS,
    Program,
    Specialization,
)
from coursereview.orm.user import User
from coursereview.services.email_service import EmailDispatcher, get_email_dispatcher
from coursereview.services.email_templates import EmailTemplateKind

logger = logging.getLogger(__name__)


class Unset:
    is_set = False

    def __repr__(self):
        return "Unset"


@dataclass(frozen=True)
class Set:
    value: int
    is_set = True


FieldState = Union[Unset, Set]


def _state(value: Optional[int]) -> FieldState:
    return Unset() if value is None else Set(value)


@dataclass(frozen=True)
class SelectionState:
    masters_degree: FieldState
    specialization: FieldState
    program_specialization: FieldState

    @classmethod
    def of(cls, user: User) -> "SelectionState":
        return cls(
            masters_degree=_state(user.masters_degree_id),
            specialization=_state(user.specialization_id),
            program_specialization=_state(user.program_specialization_id),
        )


@dataclass(frozen=True)
class SelectionResult:
    user_id: str
    masters_degree_id: Optional[int] = None
    specialization_id: Optional[int] = None
    program_specialization_id: Optional[int] = None
    session_stale: bool = True


async def _load_user(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(user_id)
    return user


async def _load_program(db: AsyncSession, program_id: Optional[int]) -> Optional[Program]:
    if program_id is None:
        return None
    result = await db.execute(select(Program).where(Program.id == program_id))
    return result.scalar_one_or_none()


async def _send_confirmation(
    dispatcher: Optional[EmailDispatcher],
    user: User,
    selection_name: str,
    specialization_name: Optional[str],
) -> None:
    dispatcher = dispatcher or get_email_dispatcher()
    await dispatcher.dispatch(
        user.email,
        EmailTemplateKind.academic_selection,
        {
            "selection_name": selection_name,
            "specialization_name": specialization_name,
            "url": f"{settings.APP_BASE_URL}/login",
        },
    )


async def get_selection_state(db: AsyncSession, user_id: str) -> SelectionState:
    return SelectionState.of(await _load_user(db, user_id))


async def select_masters_degree(
    db: AsyncSession,
    user_id: str,
    masters_degree_id: int,
    specialization_id: Optional[int] = None,
    dispatcher: Optional[EmailDispatcher] = None,
) -> SelectionResult:
    """
    Record the user's one-time masters degree (and specialization) selection.

    Raises, in check order:
        UserNotFoundError, NotEligibleError, SelectionAlreadyMadeError,
        InvalidSelectionError, SpecializationRequiredError,
        InvalidSelectionError (unknown specialization),
        SpecializationMismatchError, SelectionAlreadyMadeError (lost race)
    """
    try:
        user = await _load_user(db, user_id)

        base_program = await _load_program(db, user.program_id)
        if (
            base_program is None
            or base_program.credits not in BASE_PROGRAM_CREDITS
            or base_program.has_integrated_masters
        ):
            raise NotEligibleError("Not eligible for master's degree selection")

        if SelectionState.of(user).masters_degree.is_set:
            raise SelectionAlreadyMadeError("Academic selection already made")

        target = await _load_program(db, masters_degree_id)
        if target is None:
            raise InvalidSelectionError("Invalid master's degree")
        if target.credits != MASTERS_DEGREE_CREDITS:
            raise InvalidSelectionError("Selected program is not a master's degree")

        spec_result = await db.execute(
            select(Specialization.id).where(Specialization.program_id == masters_degree_id)
        )
        target_specialization_ids = set(spec_result.scalars().all())
        if target_specialization_ids and specialization_id is None:
            raise SpecializationRequiredError("Please select a specialization")

        specialization = None
        if specialization_id is not None:
            specialization = await db.get(Specialization, specialization_id)
            if specialization is None:
                raise InvalidSelectionError("Specialization not found")
            if specialization.program_id != masters_degree_id:
                raise SpecializationMismatchError(
                    "Specialization does not belong to the selected degree"
                )

        result = await db.execute(
            update(User)
            .where(User.id == user_id, User.masters_degree_id.is_(None))
            .values(masters_degree_id=masters_degree_id, specialization_id=specialization_id)
        )
        if result.rowcount == 0:
            raise SelectionAlreadyMadeError("Academic selection already made")

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        f"[SELECTION SUCCESS] user={user_id} masters_degree={masters_degree_id} "
        f"specialization={specialization_id}"
    )
    await _send_confirmation(
        dispatcher,
        user,
        target.name,
        specialization.name if specialization else None,
    )
    return SelectionResult(
        user_id=user_id,
        masters_degree_id=masters_degree_id,
        specialization_id=specialization_id,
        program_specialization_id=user.program_specialization_id,
    )


async def select_program_specialization(
    db: AsyncSession,
    user_id: str,
    specialization_id: int,
    dispatcher: Optional[EmailDispatcher] = None,
) -> SelectionResult:
    """Record the user's one-time specialization within their base program."""
    try:
        user = await _load_user(db, user_id)

        if user.program_id is None:
            raise NotEligibleError("Only students enrolled in a base program can select a program specialization")

        if SelectionState.of(user).program_specialization.is_set:
            raise SelectionAlreadyMadeError("Program specialization already selected")

        specialization = await db.get(Specialization, specialization_id)
        if specialization is None:
            raise InvalidSelectionError("Specialization not found")
        if specialization.program_id != user.program_id:
            raise SpecializationMismatchError("Specialization does not belong to your program")

        result = await db.execute(
            update(User)
            .where(User.id == user_id, User.program_specialization_id.is_(None))
            .values(program_specialization_id=specialization_id)
        )
        if result.rowcount == 0:
            raise SelectionAlreadyMadeError("Program specialization already selected")

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"[SELECTION SUCCESS] user={user_id} program_specialization={specialization_id}")
    program = await _load_program(db, user.program_id)
    await _send_confirmation(
        dispatcher,
        user,
        program.name if program else "your program",
        specialization.name,
    )
    return SelectionResult(
        user_id=user_id,
        masters_degree_id=user.masters_degree_id,
        specialization_id=user.specialization_id,
        program_specialization_id=specialization_id,
    )


async def get_user_with_eligibility(db: AsyncSession, user_id: str) -> Dict[str, Any]:
    """
    Account view: affiliation names plus which selections are still open.
    """
    user = await _load_user(db, user_id)
    program = await _load_program(db, user.program_id)
    state = SelectionState.of(user)
    masters = await _load_program(db, user.masters_degree_id)
    specialization = (
        await db.get(Specialization, user.specialization_id) if user.specialization_id else None
    )
    program_specialization = (
        await db.get(Specialization, user.program_specialization_id)
        if user.program_specialization_id
        else None
    )

    eligible_for_masters = (
        program is not None
        and program.credits in BASE_PROGRAM_CREDITS
        and not program.has_integrated_masters
    )

    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "program_id": user.program_id,
        "program_name": program.name if program else None,
        "program_code": program.code if program else None,
        "program_credits": program.credits if program else None,
        "masters_degree_id": user.masters_degree_id,
        "masters_degree_name": masters.name if masters else None,
        "masters_degree_code": masters.code if masters else None,
        "specialization_id": user.specialization_id,
        "specialization_name": specialization.name if specialization else None,
        "program_specialization_id": user.program_specialization_id,
        "program_specialization_name": program_specialization.name if program_specialization else None,
        "can_select_masters_degree": eligible_for_masters and not state.masters_degree.is_set,
        "can_select_program_specialization": (
            program is not None and not state.program_specialization.is_set
        ),
    }
