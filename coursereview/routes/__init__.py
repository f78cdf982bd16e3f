"""
coursereview/routes/__init__.py
Route registration
"""
from fastapi import APIRouter

from coursereview.routes import account, auth, courses, feed, feedback, programs, reviews

router = APIRouter()

router.include_router(feed.router)
router.include_router(courses.router)
router.include_router(programs.router)
router.include_router(reviews.router)
router.include_router(reviews.tags_router)
router.include_router(account.router)
router.include_router(auth.router)
router.include_router(feedback.router)
