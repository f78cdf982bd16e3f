"""
coursereview/routes/reviews.py
Review CRUD for the signed-in author, public review detail and tags
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.database import get_db
from coursereview.exceptions import NotFoundError, ReviewNotFoundError
from coursereview.orm.user import User
from coursereview.routes.dependencies import get_current_user
from coursereview.schemas.auth import MessageResponse
from coursereview.schemas.review import (
    MyReviewResponse,
    ReviewCreate,
    ReviewCreatedResponse,
    ReviewDisplay,
    ReviewedCourse,
    ReviewForEdit,
    ReviewInput,
    ReviewUpdate,
    TagResponse,
)
from coursereview.services import review_service

router = APIRouter(prefix="/reviews", tags=["Reviews"])
tags_router = APIRouter(tags=["Reviews"])


@router.post("", response_model=ReviewCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    body: ReviewCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    review_id = await review_service.create_review(
        db, ReviewInput(user_id=user.id, **body.model_dump())
    )
    return {"id": review_id}


@router.get("/mine", response_model=List[ReviewedCourse])
async def my_reviewed_courses(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await review_service.get_user_reviewed_courses(db, user.id)


@router.get("/mine/{course_id}", response_model=MyReviewResponse)
async def my_review_for_course(
    course_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Existing review id for the course, used to redirect to the edit form."""
    return {"review_id": await review_service.get_user_review_for_course(db, user.id, course_id)}


@router.get("/{review_id}", response_model=ReviewDisplay)
async def get_review(review_id: int, db: AsyncSession = Depends(get_db)):
    review = await review_service.get_review_by_id(db, review_id)
    if review is None:
        raise NotFoundError("Review", review_id)
    return review


@router.get("/{review_id}/edit", response_model=ReviewForEdit)
async def get_review_for_edit(
    review_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    review = await review_service.get_review_for_edit(db, review_id, user.id)
    if review is None:
        raise ReviewNotFoundError()
    return review


@router.put("/{review_id}", response_model=MessageResponse)
async def update_review(
    review_id: int,
    body: ReviewUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await review_service.update_review(db, review_id, user.id, body)
    return {"message": "Your review has been updated!"}


@router.delete("/{review_id}", response_model=MessageResponse)
async def delete_review(
    review_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await review_service.delete_review(db, review_id, user.id)
    return {"message": "Review deleted"}


@tags_router.get("/tags", response_model=List[TagResponse])
async def list_tags(db: AsyncSession = Depends(get_db)):
    return await review_service.get_all_tags(db)
