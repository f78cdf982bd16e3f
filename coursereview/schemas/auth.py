"""
coursereview/schemas/auth.py
Registration, login, verification and password reset schemas
"""
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, EmailStr, Field, model_validator

MIN_PASSWORD_LENGTH = 8


def _normalize_email(v):
    if isinstance(v, str):
        return v.strip().lower()
    return v


NormalizedEmail = Annotated[EmailStr, BeforeValidator(_normalize_email)]


class RegisterRequest(BaseModel):
    """
    Registration under exactly one enrollment shape:
    - program_id: base program (180/300hp)
    - masters_degree_id (+ optional specialization_id): direct master's
    """
    email: NormalizedEmail
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)
    confirm_password: str
    program_id: Optional[int] = Field(None, gt=0)
    masters_degree_id: Optional[int] = Field(None, gt=0)
    specialization_id: Optional[int] = Field(None, gt=0)

    @model_validator(mode="after")
    def validate_shape(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        if (self.program_id is None) == (self.masters_degree_id is None):
            raise ValueError("Please select either a Base Program or a Master's Degree.")
        if self.specialization_id is not None and self.masters_degree_id is None:
            raise ValueError("A specialization can only be chosen together with a master's degree")
        return self


class RegisterResponse(BaseModel):
    id: str
    username: str
    email: str
    message: str = "Account created! Please check your inbox to verify your email."


class LoginRequest(BaseModel):
    email: NormalizedEmail
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    username: Optional[str] = None


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., min_length=1)


class PasswordResetRequest(BaseModel):
    email: NormalizedEmail


class PasswordResetConfirm(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class MessageResponse(BaseModel):
    success: bool = True
    message: str
