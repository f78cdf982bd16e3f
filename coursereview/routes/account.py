"""
coursereview/routes/account.py
Account view and the one-time academic selections
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.database import get_db
from coursereview.orm.user import User
from coursereview.routes.dependencies import get_current_user
from coursereview.schemas.academic import (
    AccountResponse,
    MastersSelectionRequest,
    ProgramSpecializationRequest,
    SelectionResponse,
)
from coursereview.services import academic_selection_service

router = APIRouter(prefix="/account", tags=["Account"])

SIGN_IN_AGAIN = "Selection saved. Please sign in again to refresh your session."


@router.get("", response_model=AccountResponse)
async def get_account(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await academic_selection_service.get_user_with_eligibility(db, user.id)


@router.post("/masters-degree", response_model=SelectionResponse)
async def select_masters_degree(
    body: MastersSelectionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await academic_selection_service.select_masters_degree(
        db, user.id, body.masters_degree_id, body.specialization_id
    )
    return {
        "masters_degree_id": result.masters_degree_id,
        "specialization_id": result.specialization_id,
        "program_specialization_id": result.program_specialization_id,
        "session_stale": result.session_stale,
        "message": SIGN_IN_AGAIN,
    }


@router.post("/program-specialization", response_model=SelectionResponse)
async def select_program_specialization(
    body: ProgramSpecializationRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await academic_selection_service.select_program_specialization(
        db, user.id, body.specialization_id
    )
    return {
        "masters_degree_id": result.masters_degree_id,
        "specialization_id": result.specialization_id,
        "program_specialization_id": result.program_specialization_id,
        "session_stale": result.session_stale,
        "message": SIGN_IN_AGAIN,
    }
