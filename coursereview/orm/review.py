"""
coursereview/orm/review.py
Reviews ("posts"), tags and the post_tags association

Invariants held by the storage layer itself:
- one review per (user_id, course_id)
- every rating is an integer in [1, 5]
- workload is one of light | medium | heavy
- tag links disappear with their review
"""
from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from coursereview.orm.base import Base, utcnow


class WorkloadLevel(str, Enum):
    light = "light"
    medium = "medium"
    heavy = "heavy"


class TagSentiment(str, Enum):
    positive = "positive"
    negative = "negative"


post_tags = Table(
    "post_tags",
    Base.metadata,
    Column(
        "post_id",
        Integer,
        ForeignKey("post.id", ondelete="CASCADE", name="post_tags_post_id_fkey"),
        nullable=False,
    ),
    Column(
        "tag_id",
        Integer,
        ForeignKey("tag.id", ondelete="CASCADE", name="post_tags_tag_id_fkey"),
        nullable=False,
    ),
    PrimaryKeyConstraint("post_id", "tag_id", name="post_tags_pkey"),
)


class Tag(Base):
    __tablename__ = "tag"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    sentiment = Column(
        SQLEnum(TagSentiment, name="tagsentiment", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("name", name="tag_name_key"),
    )

    def __repr__(self):
        return f"<Tag(id={self.id}, name='{self.name}')>"


class Review(Base):
    __tablename__ = "post"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        String(36), ForeignKey("user.id", name="post_user_id_fkey"), nullable=False
    )
    course_id = Column(
        Integer, ForeignKey("course.id", name="post_course_id_fkey"), nullable=False
    )
    date_posted = Column(DateTime, nullable=False, default=utcnow)
    year_taken = Column(Integer, nullable=False)
    rating_professor = Column(Integer, nullable=False)
    rating_material = Column(Integer, nullable=False)
    rating_peers = Column(Integer, nullable=False)
    rating_workload = Column(
        SQLEnum(
            WorkloadLevel,
            name="workloadlevel",
            values_callable=lambda e: [m.value for m in e],
            create_constraint=True,
        ),
        nullable=False,
    )
    content = Column(Text, nullable=True)

    user = relationship("User", back_populates="reviews")
    course = relationship("Course", back_populates="reviews")
    tags = relationship("Tag", secondary=post_tags, order_by="Tag.name")

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="one_review_per_course"),
        CheckConstraint("rating_professor >= 1 AND rating_professor <= 5", name="rating_professor_check"),
        CheckConstraint("rating_material >= 1 AND rating_material <= 5", name="rating_material_check"),
        CheckConstraint("rating_peers >= 1 AND rating_peers <= 5", name="rating_peers_check"),
        Index("ix_post_course_id", "course_id"),
        Index("ix_post_date_posted", "date_posted"),
        Index("ix_post_user_id", "user_id"),
    )

    def __repr__(self):
        return f"<Review(id={self.id}, user_id='{self.user_id}', course_id={self.course_id})>"
