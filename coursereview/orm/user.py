"""
coursereview/orm/user.py
User model with academic affiliation

Exactly one enrollment shape holds:
- Base-program shape: program_id set (180/300hp). masters_degree_id,
  specialization_id and program_specialization_id may each be set ONCE later.
- Direct-master's shape: masters_degree_id set at registration (120hp),
  program_id null, optional specialization_id chosen at registration.

Specialization references are validated against the owning program by the
service layer before every write.
"""
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from coursereview.orm.base import Base, utcnow


def new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "user"

    id = Column(String(36), primary_key=True, default=new_user_id)
    email = Column(String(120), nullable=False)
    username = Column(String(30), nullable=True)
    password_hash = Column(String(200), nullable=False)
    email_verified_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Academic affiliation
    program_id = Column(
        Integer, ForeignKey("program.id", name="user_program_id_fkey"), nullable=True
    )
    masters_degree_id = Column(
        Integer, ForeignKey("program.id", name="user_masters_degree_id_fkey"), nullable=True
    )
    specialization_id = Column(
        Integer, ForeignKey("specialization.id", name="user_specialization_id_fkey"), nullable=True
    )
    program_specialization_id = Column(
        Integer,
        ForeignKey("specialization.id", name="user_program_specialization_id_fkey"),
        nullable=True,
    )

    program = relationship("Program", foreign_keys=[program_id])
    masters_degree = relationship("Program", foreign_keys=[masters_degree_id])
    specialization = relationship("Specialization", foreign_keys=[specialization_id])
    program_specialization = relationship("Specialization", foreign_keys=[program_specialization_id])

    reviews = relationship("Review", back_populates="user", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("email", name="user_email_key"),
        UniqueConstraint("username", name="user_username_key"),
    )

    @property
    def is_verified(self) -> bool:
        return self.email_verified_at is not None

    def __repr__(self):
        return f"<User(id='{self.id}', username='{self.username}')>"
