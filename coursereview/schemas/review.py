"""
coursereview/schemas/review.py
Request/Response schemas for reviews, tags and the feed
"""
from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from coursereview.orm.base import utcnow
from coursereview.orm.review import TagSentiment, WorkloadLevel

MAX_TAGS_PER_REVIEW = 3
MAX_CONTENT_LENGTH = 2000
MIN_YEAR_TAKEN = 2000

FeedSortOption = Literal["newest", "top-rated", "professor", "material", "peers"]


def _validate_year_taken(v: int) -> int:
    if v > utcnow().year:
        raise ValueError("Year cannot be in the future")
    return v


def _validate_tag_ids(v: Optional[List[int]]) -> Optional[List[int]]:
    if v is None:
        return v
    # Order-preserving dedupe
    return list(dict.fromkeys(v))


def _normalize_content(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    stripped = v.strip()
    return stripped or None


YearTaken = Annotated[int, Field(ge=MIN_YEAR_TAKEN), AfterValidator(_validate_year_taken)]
ReviewContent = Annotated[
    Optional[str], Field(max_length=MAX_CONTENT_LENGTH), AfterValidator(_normalize_content)
]
TagIds = Annotated[List[int], Field(max_length=MAX_TAGS_PER_REVIEW), AfterValidator(_validate_tag_ids)]


class ReviewFields(BaseModel):
    year_taken: YearTaken
    rating_professor: int = Field(..., ge=1, le=5)
    rating_material: int = Field(..., ge=1, le=5)
    rating_peers: int = Field(..., ge=1, le=5)
    rating_workload: WorkloadLevel
    content: ReviewContent = None


class ReviewCreate(ReviewFields):
    """Request to create a review"""
    course_id: int = Field(..., gt=0)
    tag_ids: TagIds = Field(default_factory=list)


class ReviewInput(ReviewCreate):
    """A review creation on behalf of an authenticated user"""
    user_id: str


class ReviewUpdate(ReviewFields):
    """
    Request to update a review.

    tag_ids omitted (None) leaves tags untouched; a list replaces them.
    """
    tag_ids: Optional[TagIds] = None


class TagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    sentiment: TagSentiment


class ReviewCourse(BaseModel):
    id: int
    name: str
    code: str


class ReviewAuthor(BaseModel):
    username: Optional[str] = None


class ReviewDisplay(BaseModel):
    """A review as shown in the feed and on course pages"""
    id: int
    date_posted: datetime
    year_taken: int
    rating_professor: int
    rating_material: int
    rating_peers: int
    rating_workload: WorkloadLevel
    content: Optional[str] = None
    overall_rating: float
    author_id: Optional[str] = None
    course: ReviewCourse
    author: ReviewAuthor
    tags: List[TagResponse] = []


class ReviewForEdit(BaseModel):
    id: int
    course_id: int
    course_name: str
    course_code: str
    year_taken: int
    rating_professor: int
    rating_material: int
    rating_peers: int
    rating_workload: WorkloadLevel
    content: Optional[str] = None
    tag_ids: List[int] = []


class ReviewCreatedResponse(BaseModel):
    id: int


class MyReviewResponse(BaseModel):
    review_id: Optional[int] = None


class ReviewedCourse(BaseModel):
    course_id: int
    review_id: int


class FeedPageResponse(BaseModel):
    items: List[ReviewDisplay]
    page: int
    page_size: int
    has_more: bool
