"""
coursereview/exceptions.py
Typed domain exceptions for the course review core

Every failure a caller can act on has its own class:
- Conflicts (duplicate review, selection already made, email taken)
- Eligibility and selection failures of the academic workflow
- Referential integrity failures (specialization not under the program)
- Ownership failures, reported as not-found so existence never leaks
"""
from typing import Any, Dict, Optional


class CourseReviewException(Exception):
    """Base exception for the course review core"""
    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        if status_code:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ValidationFailedError(CourseReviewException):
    """Raised when input fails a business rule the boundary could not express."""
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Invalid input", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, self.status_code, details)


class ConflictError(CourseReviewException):
    status_code = 409
    code = "CONFLICT"

    def __init__(self, message: str = "Conflict", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, self.status_code, details)


class DuplicateReviewError(ConflictError):
    """
    Raised when a user already has a review for the course.

    Covers both the pre-check and the lost race against the
    one_review_per_course constraint.
    """
    code = "DUPLICATE_REVIEW"

    def __init__(self, message: str = "You have already reviewed this course"):
        super().__init__(message)


class SelectionAlreadyMadeError(ConflictError):
    """Raised when a one-time academic selection has already been recorded."""
    code = "SELECTION_ALREADY_MADE"

    def __init__(self, message: str = "This selection has already been made and cannot be changed"):
        super().__init__(message)


class EmailAlreadyRegisteredError(ConflictError):
    code = "EMAIL_ALREADY_REGISTERED"

    def __init__(self, message: str = "Email already registered"):
        super().__init__(message, {"field": "email"})


class ReviewNotFoundError(CourseReviewException):
    """
    Raised when a review does not exist OR is not owned by the caller.

    The two cases are indistinguishable to the caller.
    """
    status_code = 404
    code = "REVIEW_NOT_FOUND"

    def __init__(self, message: str = "Review not found or you do not have permission"):
        super().__init__(message, self.status_code)


class NotFoundError(CourseReviewException):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} '{identifier}' not found"
        super().__init__(message, self.status_code)


class UserNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"

    def __init__(self, user_id: Any = None):
        super().__init__("User", user_id)


class ReferentialIntegrityError(CourseReviewException):
    """Raised when a referenced row exists but sits under the wrong parent."""
    status_code = 400
    code = "REFERENTIAL_INTEGRITY"

    def __init__(self, message: str = "Referenced entity does not belong here"):
        super().__init__(message, self.status_code)


class SpecializationMismatchError(ReferentialIntegrityError):
    code = "SPECIALIZATION_MISMATCH"

    def __init__(self, message: str = "Invalid specialization for this program"):
        super().__init__(message)


class NotEligibleError(CourseReviewException):
    """
    Raised when the user's enrollment shape does not allow the selection.

    Examples:
    - Masters selection for a user without a 180/300hp base program
    - Masters selection for a program with an integrated master's
    - Program specialization for a direct-master's user
    """
    status_code = 403
    code = "NOT_ELIGIBLE"

    def __init__(self, message: str = "You are not eligible for this selection"):
        super().__init__(message, self.status_code)


class InvalidSelectionError(CourseReviewException):
    status_code = 400
    code = "INVALID_SELECTION"

    def __init__(self, message: str = "Invalid selection"):
        super().__init__(message, self.status_code)


class SpecializationRequiredError(CourseReviewException):
    status_code = 400
    code = "SPECIALIZATION_REQUIRED"

    def __init__(self, message: str = "A specialization is required for this master's degree"):
        super().__init__(message, self.status_code)


class RateLimitExceededError(CourseReviewException):
    status_code = 429
    code = "RATE_LIMITED"

    def __init__(self, retry_after_seconds: int, message: str = "Rate limit exceeded. Please try again later."):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(message, self.status_code, {"retry_after_seconds": retry_after_seconds})


class InvalidTokenError(CourseReviewException):
    """Raised for unknown, expired or already consumed single-use tokens."""
    status_code = 400
    code = "INVALID_TOKEN"

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message, self.status_code)


class InvalidCredentialsError(CourseReviewException):
    status_code = 401
    code = "AUTH_INVALID"

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, self.status_code)


class RegistrationError(CourseReviewException):
    """Raised when an account cannot be created for a reason the user cannot fix."""
    status_code = 500
    code = "REGISTRATION_FAILED"

    def __init__(self, message: str = "Could not complete registration. Please try again later."):
        super().__init__(message, self.status_code)
