"""
Backend API package initialization.

This package contains FastAPI router modules for the Team Insights backend:
- insights: Insight generation, service status and cache invalidation
"""

from fastapi import APIRouter

from insight_backend.api.insights import router as insights_router

# Create main API router
api_router = APIRouter()
api_router.include_router(insights_router, tags=["insights"])  # insights router has its own prefix

__all__ = [
    "api_router",
    "insights_router",
]
