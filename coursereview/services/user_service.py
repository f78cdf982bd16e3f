"""
coursereview/services/user_service.py
Account lifecycle: registration, email verification, login and password reset

Registration creates a user under exactly one enrollment shape and a
single-use verification token. Usernames are the program code plus a
short random suffix; a collision on the unique username is retried with
a fresh suffix a bounded number of times.
"""
import logging
import secrets
import uuid
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.config import settings
from coursereview.exceptions import (
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    InvalidSelectionError,
    InvalidTokenError,
    RegistrationError,
    SpecializationMismatchError,
    ValidationFailedError,
)
from coursereview.orm.account import PasswordResetToken, VerificationToken
from coursereview.orm.base import utcnow
from coursereview.orm.program import Program, Specialization
from coursereview.orm.user import User
from coursereview.schemas.auth import RegisterRequest
from coursereview.security.passwords import hash_password_async, verify_password_async
from coursereview.services.email_service import EmailDispatcher, get_email_dispatcher
from coursereview.services.email_templates import EmailTemplateKind

logger = logging.getLogger(__name__)

USERNAME_SUFFIX_LENGTH = 6


def generate_username(program_code: str) -> str:
    return f"{program_code}{uuid.uuid4().hex[:USERNAME_SUFFIX_LENGTH]}"


def generate_token() -> str:
    return secrets.token_urlsafe(32)


def _is_username_collision(error: IntegrityError) -> bool:
    message = str(error.orig)
    return "user_username_key" in message or "user.username" in message


def _check_email_domain(email: str) -> None:
    domain = settings.ALLOWED_EMAIL_DOMAIN
    if domain and not email.lower().endswith("@" + domain.lower().lstrip("@")):
        raise ValidationFailedError(f"Only @{domain.lstrip('@')} emails are allowed.", {"field": "email"})


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def _resolve_enrollment_program(db: AsyncSession, data: RegisterRequest) -> Program:
    """Validate the enrollment shape and return the program that names the user."""
    if data.program_id is not None:
        program = await db.get(Program, data.program_id)
        if program is None or not program.is_base_program:
            raise InvalidSelectionError("Invalid program")
        return program

    masters = await db.get(Program, data.masters_degree_id)
    if masters is None or not masters.is_masters_degree:
        raise InvalidSelectionError("Invalid master's degree")

    if data.specialization_id is not None:
        specialization = await db.get(Specialization, data.specialization_id)
        if specialization is None:
            raise InvalidSelectionError("Specialization not found")
        if specialization.program_id != masters.id:
            raise SpecializationMismatchError(
                "Specialization does not belong to the selected degree"
            )
    return masters


async def _send_verification(dispatcher: Optional[EmailDispatcher], email: str, token: str) -> None:
    dispatcher = dispatcher or get_email_dispatcher()
    await dispatcher.dispatch(
        email,
        EmailTemplateKind.verify_email,
        {"url": f"{settings.APP_BASE_URL}/verify?token={token}"},
    )


async def register_user(
    db: AsyncSession,
    data: RegisterRequest,
    dispatcher: Optional[EmailDispatcher] = None,
) -> User:
    """
    Create an unverified account and email a verification link.

    Raises:
        ValidationFailedError: email outside the allowed domain
        EmailAlreadyRegisteredError: email taken
        InvalidSelectionError / SpecializationMismatchError: bad enrollment
        RegistrationError: no free username after USERNAME_MAX_ATTEMPTS tries
    """
    email = data.email.strip().lower()
    _check_email_domain(email)

    if await get_user_by_email(db, email) is not None:
        raise EmailAlreadyRegisteredError()

    program = await _resolve_enrollment_program(db, data)
    # Rollbacks below expire every loaded instance
    program_code = program.code
    password_hash = await hash_password_async(data.password)
    token = generate_token()

    for attempt in range(1, settings.USERNAME_MAX_ATTEMPTS + 1):
        user = User(
            email=email,
            username=generate_username(program_code),
            password_hash=password_hash,
            program_id=data.program_id,
            masters_degree_id=data.masters_degree_id,
            specialization_id=data.specialization_id,
            program_specialization_id=None,
            email_verified_at=None,
        )
        try:
            db.add(user)
            db.add(
                VerificationToken(
                    identifier=email,
                    token=token,
                    expires=utcnow() + timedelta(hours=settings.VERIFICATION_TOKEN_TTL_HOURS),
                )
            )
            await db.commit()
            break
        except IntegrityError as e:
            await db.rollback()
            if _is_username_collision(e):
                logger.warning(f"[USERNAME COLLISION] attempt {attempt} for {email}")
                continue
            if "email" in str(e.orig):
                raise EmailAlreadyRegisteredError() from e
            raise
    else:
        logger.error(f"[REGISTRATION FAILED] no free username after {settings.USERNAME_MAX_ATTEMPTS} attempts")
        raise RegistrationError()

    logger.info(f"[USER REGISTERED] user={user.id} username={user.username}")
    await _send_verification(dispatcher, email, token)
    return user


async def verify_email(db: AsyncSession, token: str) -> User:
    """Consume a verification token and mark the account verified."""
    result = await db.execute(select(VerificationToken).where(VerificationToken.token == token))
    record = result.scalar_one_or_none()
    if record is None:
        raise InvalidTokenError("Invalid or expired verification link. Please request a new one.")

    try:
        if record.expires < utcnow():
            await db.delete(record)
            await db.commit()
            raise InvalidTokenError("Invalid or expired verification link. Please request a new one.")

        user = await get_user_by_email(db, record.identifier)
        if user is None:
            raise InvalidTokenError()

        if user.email_verified_at is None:
            user.email_verified_at = utcnow()
        await db.delete(record)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"[EMAIL VERIFIED] user={user.id}")
    return user


async def resend_verification(
    db: AsyncSession,
    email: str,
    dispatcher: Optional[EmailDispatcher] = None,
) -> None:
    """Issue a fresh verification link. Silent for unknown or verified accounts."""
    user = await get_user_by_email(db, email)
    if user is None or user.is_verified:
        return

    token = generate_token()
    try:
        await db.execute(delete(VerificationToken).where(VerificationToken.identifier == user.email))
        db.add(
            VerificationToken(
                identifier=user.email,
                token=token,
                expires=utcnow() + timedelta(hours=settings.VERIFICATION_TOKEN_TTL_HOURS),
            )
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await _send_verification(dispatcher, user.email, token)


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """Return the user for valid credentials of a verified account."""
    user = await get_user_by_email(db, email)
    if user is None or not await verify_password_async(password, user.password_hash):
        raise InvalidCredentialsError("Invalid credentials or account not verified.")
    if not user.is_verified:
        raise InvalidCredentialsError("Invalid credentials or account not verified.")
    return user


async def request_password_reset(
    db: AsyncSession,
    email: str,
    dispatcher: Optional[EmailDispatcher] = None,
) -> None:
    """
    Email a password reset link if the account exists.

    Always returns normally so callers cannot probe which emails exist.
    """
    user = await get_user_by_email(db, email)
    if user is None:
        logger.info("[PASSWORD RESET] requested for unknown email")
        return

    token = generate_token()
    try:
        await db.execute(delete(PasswordResetToken).where(PasswordResetToken.identifier == user.email))
        db.add(
            PasswordResetToken(
                identifier=user.email,
                token=token,
                expires=utcnow() + timedelta(minutes=settings.PASSWORD_RESET_TOKEN_TTL_MINUTES),
            )
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"[PASSWORD RESET] token issued for user={user.id}")
    dispatcher = dispatcher or get_email_dispatcher()
    await dispatcher.dispatch(
        user.email,
        EmailTemplateKind.password_reset,
        {"url": f"{settings.APP_BASE_URL}/reset-password?token={token}"},
    )


async def reset_password(db: AsyncSession, token: str, new_password: str) -> None:
    """Consume a reset token and set the new password in one transaction."""
    result = await db.execute(select(PasswordResetToken).where(PasswordResetToken.token == token))
    record = result.scalar_one_or_none()
    if record is None or record.expires < utcnow():
        raise InvalidTokenError("Invalid or expired reset link. Please request a new one.")

    user = await get_user_by_email(db, record.identifier)
    if user is None:
        raise InvalidTokenError("Invalid or expired reset link. Please request a new one.")

    password_hash = await hash_password_async(new_password)
    try:
        user.password_hash = password_hash
        await db.execute(delete(PasswordResetToken).where(PasswordResetToken.identifier == user.email))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"[PASSWORD RESET] password changed for user={user.id}")
