"""
Account lifecycle tests

Coverage:
- Registration shapes, duplicate email, allowed email domain
- Username collision retry and exhaustion
- Email verification tokens (single use, expiry)
- Login requires a verified account
- Password reset request and confirmation
"""
from datetime import timedelta
from unittest.mock import patch

import pytest
from pydantic import ValidationError
from sqlalchemy import select

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
from coursereview.schemas.auth import RegisterRequest
from coursereview.security.tokens import create_access_token, decode_token
from coursereview.services import user_service
from coursereview.services.email_templates import EmailTemplateKind
from coursereview.tests.conftest import TEST_PASSWORD, make_user


def register_request(email="new.student@kth.se", **shape):
    return RegisterRequest(
        email=email,
        password="long-enough-pw",
        confirm_password="long-enough-pw",
        **shape,
    )


async def _token_for(db, model, email):
    result = await db.execute(select(model.token).where(model.identifier == email))
    return result.scalar_one()


# =============================================================================
# Registration
# =============================================================================

@pytest.mark.asyncio
async def test_register_base_program(db, catalog, dispatcher):
    user = await user_service.register_user(
        db, register_request(email="  New.Student@KTH.se ", program_id=catalog.tidab), dispatcher
    )

    assert user.email == "new.student@kth.se"
    assert user.username.startswith("TIDAB")
    assert len(user.username) == len("TIDAB") + user_service.USERNAME_SUFFIX_LENGTH
    assert user.program_id == catalog.tidab
    assert not user.is_verified

    recipient, kind, variables = dispatcher.sent[0]
    assert recipient == "new.student@kth.se"
    assert kind == EmailTemplateKind.verify_email
    token = await _token_for(db, VerificationToken, "new.student@kth.se")
    assert variables["url"].endswith(f"/verify?token={token}")


@pytest.mark.asyncio
async def test_register_direct_masters_with_specialization(db, catalog, dispatcher):
    user = await user_service.register_user(
        db,
        register_request(masters_degree_id=catalog.tcscm, specialization_id=catalog.specs.tcscm_cs),
        dispatcher,
    )

    assert user.program_id is None
    assert user.masters_degree_id == catalog.tcscm
    assert user.specialization_id == catalog.specs.tcscm_cs
    assert user.username.startswith("TCSCM")


@pytest.mark.asyncio
async def test_register_rejects_mismatched_specialization(db, catalog, dispatcher):
    with pytest.raises(SpecializationMismatchError):
        await user_service.register_user(
            db,
            register_request(masters_degree_id=catalog.tcscm, specialization_id=catalog.specs.tidab_sw),
            dispatcher,
        )


@pytest.mark.asyncio
async def test_register_rejects_wrong_program_kind(db, catalog, dispatcher):
    with pytest.raises(InvalidSelectionError):
        await user_service.register_user(db, register_request(program_id=catalog.tcscm), dispatcher)
    with pytest.raises(InvalidSelectionError):
        await user_service.register_user(db, register_request(masters_degree_id=catalog.tidab), dispatcher)


def test_register_request_requires_exactly_one_shape():
    with pytest.raises(ValidationError):
        register_request()
    with pytest.raises(ValidationError):
        register_request(program_id=1, masters_degree_id=2)
    with pytest.raises(ValidationError):
        register_request(program_id=1, specialization_id=3)
    with pytest.raises(ValidationError):
        RegisterRequest(email="a.b@kth.se", password="long-enough-pw",
                        confirm_password="different-pw", program_id=1)


@pytest.mark.asyncio
async def test_register_duplicate_email(db, catalog, dispatcher):
    await make_user(db, email="taken@kth.se", program_id=catalog.tidab)

    with pytest.raises(EmailAlreadyRegisteredError):
        await user_service.register_user(
            db, register_request(email="Taken@kth.se", program_id=catalog.tidab), dispatcher
        )


@pytest.mark.asyncio
async def test_register_enforces_allowed_domain(db, catalog, dispatcher, monkeypatch):
    monkeypatch.setattr(settings, "ALLOWED_EMAIL_DOMAIN", "kth.se")

    with pytest.raises(ValidationFailedError):
        await user_service.register_user(
            db, register_request(email="someone@gmail.com", program_id=catalog.tidab), dispatcher
        )


@pytest.mark.asyncio
async def test_username_collision_is_retried(db, catalog, dispatcher):
    existing = await make_user(db, program_id=catalog.tidab)
    taken = existing.username

    with patch(
        "coursereview.services.user_service.generate_username",
        side_effect=[taken, "TIDABfresh1"],
    ):
        user = await user_service.register_user(
            db, register_request(program_id=catalog.tidab), dispatcher
        )

    assert user.username == "TIDABfresh1"


@pytest.mark.asyncio
async def test_username_collision_gives_up(db, catalog, dispatcher):
    existing = await make_user(db, program_id=catalog.tidab)
    taken = existing.username

    with patch("coursereview.services.user_service.generate_username", return_value=taken):
        with pytest.raises(RegistrationError):
            await user_service.register_user(
                db, register_request(program_id=catalog.tidab), dispatcher
            )

    assert dispatcher.sent == []


# =============================================================================
# Verification and login
# =============================================================================

@pytest.mark.asyncio
async def test_verify_email_consumes_token(db, catalog, dispatcher):
    await user_service.register_user(db, register_request(program_id=catalog.tidab), dispatcher)
    token = await _token_for(db, VerificationToken, "new.student@kth.se")

    user = await user_service.verify_email(db, token)

    assert user.is_verified
    with pytest.raises(InvalidTokenError):
        await user_service.verify_email(db, token)


@pytest.mark.asyncio
async def test_expired_verification_token(db, catalog):
    await make_user(db, email="late@kth.se", verified=False, program_id=catalog.tidab)
    db.add(VerificationToken(identifier="late@kth.se", token="expired-token",
                             expires=utcnow() - timedelta(minutes=1)))
    await db.commit()

    with pytest.raises(InvalidTokenError):
        await user_service.verify_email(db, "expired-token")


@pytest.mark.asyncio
async def test_login_requires_verification(db, catalog):
    await make_user(db, email="pending@kth.se", verified=False, program_id=catalog.tidab)
    await make_user(db, email="ready@kth.se", program_id=catalog.tidab)

    with pytest.raises(InvalidCredentialsError):
        await user_service.authenticate_user(db, "pending@kth.se", TEST_PASSWORD)
    with pytest.raises(InvalidCredentialsError):
        await user_service.authenticate_user(db, "ready@kth.se", "wrong-password")
    with pytest.raises(InvalidCredentialsError):
        await user_service.authenticate_user(db, "nobody@kth.se", TEST_PASSWORD)

    user = await user_service.authenticate_user(db, "Ready@KTH.se", TEST_PASSWORD)
    assert user.email == "ready@kth.se"


@pytest.mark.asyncio
async def test_resend_verification_replaces_token(db, catalog, dispatcher):
    await user_service.register_user(db, register_request(program_id=catalog.tidab), dispatcher)
    first = await _token_for(db, VerificationToken, "new.student@kth.se")

    await user_service.resend_verification(db, "new.student@kth.se", dispatcher)
    second = await _token_for(db, VerificationToken, "new.student@kth.se")

    assert second != first
    assert len(dispatcher.sent) == 2


# =============================================================================
# Password reset
# =============================================================================

@pytest.mark.asyncio
async def test_password_reset_flow(db, catalog, dispatcher):
    await make_user(db, email="forgetful@kth.se", program_id=catalog.tidab)

    await user_service.request_password_reset(db, "forgetful@kth.se", dispatcher)
    token = await _token_for(db, PasswordResetToken, "forgetful@kth.se")
    assert dispatcher.sent[0][1] == EmailTemplateKind.password_reset

    await user_service.reset_password(db, token, "brand-new-password")

    user = await user_service.authenticate_user(db, "forgetful@kth.se", "brand-new-password")
    assert user.email == "forgetful@kth.se"
    with pytest.raises(InvalidTokenError):
        await user_service.reset_password(db, token, "another-password")


@pytest.mark.asyncio
async def test_password_reset_unknown_email_is_silent(db, catalog, dispatcher):
    await user_service.request_password_reset(db, "ghost@kth.se", dispatcher)

    assert dispatcher.sent == []


# =============================================================================
# Access tokens
# =============================================================================

def test_access_token_round_trip_and_expiry():
    assert decode_token(create_access_token("user-1")) == "user-1"
    assert decode_token(create_access_token("user-1", timedelta(minutes=5))) == "user-1"
    assert decode_token(create_access_token("user-1", timedelta(seconds=-30))) is None
