"""
coursereview/schemas/feedback.py
"""
from pydantic import BaseModel, Field, field_validator

MAX_FEEDBACK_LENGTH = 1000


class FeedbackCreate(BaseModel):
    content: str = Field(..., max_length=MAX_FEEDBACK_LENGTH)

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Feedback cannot be empty")
        return stripped
