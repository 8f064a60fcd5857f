"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from event_scheduler.api.routes import posts, sessions

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(posts.router)
api_router.include_router(sessions.router)
