"""
coursereview/routes/programs.py
Program catalog: base programs, masters degrees and their specializations
"""
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.database import get_db
from coursereview.exceptions import NotFoundError, ValidationFailedError
from coursereview.schemas.academic import ProgramResponse, SpecializationResponse
from coursereview.services import program_service

router = APIRouter(prefix="/programs", tags=["Programs"])


@router.get("", response_model=List[ProgramResponse])
async def list_programs(db: AsyncSession = Depends(get_db)):
    return await program_service.get_all_programs(db)


@router.get("/base", response_model=List[ProgramResponse])
async def list_base_programs(db: AsyncSession = Depends(get_db)):
    return await program_service.get_base_programs(db)


@router.get("/masters", response_model=List[ProgramResponse])
async def list_masters_degrees(db: AsyncSession = Depends(get_db)):
    return await program_service.get_masters_degrees(db)


@router.get("/masters/search", response_model=List[ProgramResponse])
async def search_masters_degrees(
    q: str = Query("", max_length=200),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await program_service.search_masters_degrees(db, q)
    except ValueError as e:
        raise ValidationFailedError(str(e), {"field": "q"}) from e


@router.get("/{program_id}/specializations", response_model=List[SpecializationResponse])
async def list_specializations(program_id: int, db: AsyncSession = Depends(get_db)):
    if await program_service.get_program_by_id(db, program_id) is None:
        raise NotFoundError("Program", program_id)
    return await program_service.get_specializations_by_program_id(db, program_id)
