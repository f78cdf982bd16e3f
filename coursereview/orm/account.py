"""
coursereview/orm/account.py
Single-use tokens (email verification, password reset) and user feedback
"""
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, PrimaryKeyConstraint, String, Text

from coursereview.orm.base import Base, utcnow


class VerificationToken(Base):
    __tablename__ = "verification_token"

    identifier = Column(String(120), nullable=False)
    token = Column(String(128), nullable=False)
    expires = Column(DateTime, nullable=False)

    __table_args__ = (
        PrimaryKeyConstraint("identifier", "token", name="verification_token_pkey"),
        Index("ix_verification_token", "token"),
    )


class PasswordResetToken(Base):
    __tablename__ = "password_reset_token"

    identifier = Column(String(120), nullable=False)  # email
    token = Column(String(128), nullable=False)
    expires = Column(DateTime, nullable=False)

    __table_args__ = (
        PrimaryKeyConstraint("identifier", "token", name="password_reset_token_pkey"),
        Index("ix_password_reset_token", "token"),
    )


class Feedback(Base):
    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
