from .base import Base

from .program import Program, ProgramType, Specialization
from .course import Course, CourseProgram, CourseSpecialization
from .user import User
from .review import Review, Tag, TagSentiment, WorkloadLevel, post_tags
from .account import VerificationToken, PasswordResetToken, Feedback

__all__ = [
    "Base",
    "Program",
    "ProgramType",
    "Specialization",
    "Course",
    "CourseProgram",
    "CourseSpecialization",
    "User",
    "Review",
    "Tag",
    "TagSentiment",
    "WorkloadLevel",
    "post_tags",
    "VerificationToken",
    "PasswordResetToken",
    "Feedback",
]
