"""
coursereview/routes/auth.py
Registration, login, email verification and password reset
"""
import logging

from fastapi import APIRouter, Depends, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.config import settings
from coursereview.database import get_db
from coursereview.schemas.auth import (
    LoginRequest,
    MessageResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    VerifyEmailRequest,
)
from coursereview.security.tokens import create_access_token
from coursereview.services import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])
limiter = Limiter(key_func=get_remote_address, default_limits=[settings.API_RATE_LIMIT])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def register(
    request: Request,  # Required by slowapi
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    logger.info(f"Registration attempt for email: {body.email}")
    user = await user_service.register_user(db, body)
    return {"id": user.id, "username": user.username, "email": user.email}


@router.post("/login", response_model=TokenResponse)
@limiter.limit("20/minute")
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.authenticate_user(db, body.email, body.password)
    return {
        "access_token": create_access_token(user.id),
        "token_type": "bearer",
        "user_id": user.id,
        "username": user.username,
    }


@router.post("/verify", response_model=MessageResponse)
async def verify_email(body: VerifyEmailRequest, db: AsyncSession = Depends(get_db)):
    await user_service.verify_email(db, body.token)
    return {"message": "Email verified successfully! You can now log in."}


@router.post("/verify/resend", response_model=MessageResponse)
@limiter.limit("5/minute")
async def resend_verification(
    request: Request,
    body: PasswordResetRequest,
    db: AsyncSession = Depends(get_db),
):
    await user_service.resend_verification(db, body.email)
    return {"message": "If the account exists and is unverified, a new link has been sent."}


@router.post("/password-reset/request", response_model=MessageResponse)
@limiter.limit("5/minute")
async def request_password_reset(
    request: Request,
    body: PasswordResetRequest,
    db: AsyncSession = Depends(get_db),
):
    await user_service.request_password_reset(db, body.email)
    return {"message": "If an account exists for that email, a reset link has been sent."}


@router.post("/password-reset/confirm", response_model=MessageResponse)
async def confirm_password_reset(body: PasswordResetConfirm, db: AsyncSession = Depends(get_db)):
    await user_service.reset_password(db, body.token, body.password)
    return {"message": "Password reset successfully! You can now log in with your new password."}
