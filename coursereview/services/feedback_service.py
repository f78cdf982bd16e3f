"""
coursereview/services/feedback_service.py
Feedback intake, anonymous or authenticated, rate limited per submitter
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from coursereview.exceptions import RateLimitExceededError
from coursereview.orm.account import Feedback
from coursereview.security.rate_limit import RateLimiter, get_feedback_rate_limiter

logger = logging.getLogger(__name__)


def feedback_rate_key(user_id: Optional[str], client_ip: Optional[str]) -> str:
    if user_id:
        return f"feedback:user:{user_id}"
    return f"feedback:ip:{client_ip or 'unknown'}"


async def create_feedback(
    db: AsyncSession,
    content: str,
    user_id: Optional[str] = None,
    client_ip: Optional[str] = None,
    limiter: Optional[RateLimiter] = None,
) -> Feedback:
    """
    Store one feedback entry.

    Raises:
        RateLimitExceededError: the submitter exceeded the window quota
    """
    limiter = limiter or get_feedback_rate_limiter()
    decision = await limiter.check(feedback_rate_key(user_id, client_ip))
    if not decision.allowed:
        logger.warning(f"[RATE LIMITED] feedback from user={user_id} ip={client_ip}")
        raise RateLimitExceededError(decision.retry_after_seconds)

    feedback = Feedback(content=content, user_id=user_id)
    try:
        db.add(feedback)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"[FEEDBACK RECEIVED] id={feedback.id} authenticated={user_id is not None}")
    return feedback
