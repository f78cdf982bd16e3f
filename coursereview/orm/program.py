"""
coursereview/orm/program.py
Academic programs and their specializations
"""
from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from coursereview.orm.base import Base

BASE_PROGRAM_CREDITS = frozenset({180, 300})
MASTERS_DEGREE_CREDITS = 120


class ProgramType(str, Enum):
    bachelor = "bachelor"
    master = "master"


class Program(Base):
    """
    A degree program.

    Credits partition programs:
    - 180 / 300 = base program (enrolled in directly, may later gate a
      masters-track or specialization selection)
    - 120 = standalone masters degree

    Created by the bulk loader (upsert by code), effectively immutable afterward.
    """
    __tablename__ = "program"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    code = Column(String(20), nullable=False)
    program_type = Column(
        SQLEnum(ProgramType, name="program_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    credits = Column(Integer, nullable=False)
    has_integrated_masters = Column(Boolean, nullable=False, default=False)

    specializations = relationship(
        "Specialization",
        back_populates="program",
        order_by="Specialization.name",
    )

    __table_args__ = (
        UniqueConstraint("code", name="program_code_key"),
    )

    @property
    def is_base_program(self) -> bool:
        return self.credits in BASE_PROGRAM_CREDITS

    @property
    def is_masters_degree(self) -> bool:
        return self.credits == MASTERS_DEGREE_CREDITS

    def __repr__(self):
        return f"<Program(id={self.id}, code='{self.code}', credits={self.credits})>"


class Specialization(Base):
    """A named track under exactly one program."""
    __tablename__ = "specialization"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    program_id = Column(
        Integer,
        ForeignKey("program.id", name="specialization_program_id_fkey"),
        nullable=False,
        index=True,
    )

    program = relationship("Program", back_populates="specializations")

    __table_args__ = (
        UniqueConstraint("name", "program_id", name="unique_spec_name_program"),
    )

    def __repr__(self):
        return f"<Specialization(id={self.id}, name='{self.name}', program_id={self.program_id})>"
