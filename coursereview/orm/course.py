"""
coursereview/orm/course.py
Courses and the curriculum graph linking them to programs and specializations

The two link tables answer the question:
"Which courses are in scope for THIS academic identity?"

- course__program: course belongs to a program's (or masters degree's) curriculum
- course__specialization: course belongs to a specialization track

Both links are unique per pair and cascade-delete from either side.
"""
from sqlalchemy import Column, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from coursereview.orm.base import Base


class Course(Base):
    __tablename__ = "course"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(150), nullable=False, index=True)
    code = Column(String(20), nullable=False)

    reviews = relationship("Review", back_populates="course", passive_deletes=True)

    __table_args__ = (
        Index("ix_course_code", "code", unique=True),
    )

    def __repr__(self):
        return f"<Course(id={self.id}, code='{self.code}')>"


class CourseProgram(Base):
    __tablename__ = "course__program"

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(
        Integer,
        ForeignKey("course.id", ondelete="CASCADE", name="course__program_course_id_fkey"),
        nullable=False,
    )
    program_id = Column(
        Integer,
        ForeignKey("program.id", ondelete="CASCADE", name="course__program_program_id_fkey"),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("course_id", "program_id", name="unique_course_program"),
        Index("ix_course_program_program_id", "program_id"),
    )

    def __repr__(self):
        return f"<CourseProgram(course_id={self.course_id}, program_id={self.program_id})>"


class CourseSpecialization(Base):
    __tablename__ = "course__specialization"

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(
        Integer,
        ForeignKey("course.id", ondelete="CASCADE", name="course__specialization_course_id_fkey"),
        nullable=False,
    )
    specialization_id = Column(
        Integer,
        ForeignKey(
            "specialization.id",
            ondelete="CASCADE",
            name="course__specialization_specialization_id_fkey",
        ),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("course_id", "specialization_id", name="unique_course_specialization"),
        Index("ix_course_specialization_specialization_id", "specialization_id"),
    )

    def __repr__(self):
        return (
            f"<CourseSpecialization(course_id={self.course_id}, "
            f"specialization_id={self.specialization_id})>"
        )
