"""
coursereview/routes/feedback.py
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.database import get_db
from coursereview.schemas.auth import MessageResponse
from coursereview.schemas.feedback import FeedbackCreate
from coursereview.security.rate_limit import RateLimiter, get_feedback_rate_limiter
from coursereview.orm.user import User
from coursereview.routes.dependencies import get_optional_user
from coursereview.services import feedback_service

router = APIRouter(tags=["Feedback"])


@router.post("/feedback", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    request: Request,
    body: FeedbackCreate,
    user: Optional[User] = Depends(get_optional_user),
    limiter: RateLimiter = Depends(get_feedback_rate_limiter),
    db: AsyncSession = Depends(get_db),
):
    client_ip = request.client.host if request.client else None
    await feedback_service.create_feedback(
        db, body.content, user_id=user.id if user else None, client_ip=client_ip, limiter=limiter
    )
    return {"message": "Thank you for your feedback!"}
