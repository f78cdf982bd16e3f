"""
coursereview/schemas/academic.py
Schemas for programs, specializations, courses and academic selection
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from coursereview.orm.program import ProgramType


class ProgramResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    code: str
    program_type: ProgramType
    credits: int
    has_integrated_masters: bool = False


class SpecializationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    program_id: int


class CourseWithStats(BaseModel):
    id: int
    name: str
    code: str
    review_count: int = 0
    average_rating: Optional[float] = None


class MastersSelectionRequest(BaseModel):
    masters_degree_id: int = Field(..., gt=0)
    specialization_id: Optional[int] = Field(None, gt=0)


class ProgramSpecializationRequest(BaseModel):
    specialization_id: int = Field(..., gt=0)


class SelectionResponse(BaseModel):
    """
    Result of a one-time selection.

    session_stale is always true: the caller must sign in again so the
    issued token carries the new academic ids.
    """
    masters_degree_id: Optional[int] = None
    specialization_id: Optional[int] = None
    program_specialization_id: Optional[int] = None
    session_stale: bool = True
    message: str


class AccountResponse(BaseModel):
    id: str
    email: str
    username: Optional[str] = None
    program_id: Optional[int] = None
    program_name: Optional[str] = None
    program_code: Optional[str] = None
    program_credits: Optional[int] = None
    masters_degree_id: Optional[int] = None
    masters_degree_name: Optional[str] = None
    masters_degree_code: Optional[str] = None
    specialization_id: Optional[int] = None
    specialization_name: Optional[str] = None
    program_specialization_id: Optional[int] = None
    program_specialization_name: Optional[str] = None
    can_select_masters_degree: bool
    can_select_program_specialization: bool
