"""
coursereview/seed/schemas.py
File formats of the bulk loader

Program file (one per program):
{
    "program": {"code", "name", "credits", "programType", "hasIntegratedMasters"?},
    "specializations": ["name", ...],          (optional)
    "courses": [{"code", "name", "specializations": ["name", ...]?}, ...]
}

Review file (one per user):
{
    "email": "...",
    "reviews": [{"courseCode", "yearTaken", "ratingProfessor", "ratingMaterial",
                 "ratingPeers", "ratingWorkload", "content"?, "tagNames", "datePosted"}]
}
"""
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from coursereview.orm.program import ProgramType
from coursereview.orm.review import WorkloadLevel
from coursereview.schemas.review import YearTaken


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProgramHeader(CamelModel):
    code: str = Field(..., min_length=2, max_length=20)
    name: str = Field(..., min_length=1, max_length=100)
    program_type: ProgramType
    credits: Literal[120, 180, 300]
    has_integrated_masters: bool = False


class CourseEntry(CamelModel):
    code: str = Field(..., min_length=2, max_length=20)
    name: str = Field(..., min_length=1, max_length=150)
    specializations: List[str] = []


class ProgramFile(CamelModel):
    program: ProgramHeader
    specializations: List[str] = []
    courses: List[CourseEntry] = []


class ReviewEntry(CamelModel):
    course_code: str
    year_taken: YearTaken
    rating_professor: int = Field(..., ge=1, le=5)
    rating_material: int = Field(..., ge=1, le=5)
    rating_peers: int = Field(..., ge=1, le=5)
    rating_workload: WorkloadLevel
    content: Optional[str] = None
    tag_names: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("tagNames", "tag_names", "tags"),
    )
    date_posted: datetime

    @field_validator("date_posted")
    @classmethod
    def to_naive_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class ReviewFile(CamelModel):
    email: str = Field(..., validation_alias=AliasChoices("email", "userEmail"))
    reviews: List[dict] = []
