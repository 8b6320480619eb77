"""
Backend API package initialization.

Router modules for the attribution backend, all mounted under /api:
- sales: sale attribution (POST /analyze-sale)
- history: previously computed attributions (GET /history)
- events: click event ingestion (POST /events, POST /events/upload)
- jobs: daily Slack digest trigger and status
"""

from fastapi import APIRouter

from backend.api.sales import router as sales_router
from backend.api.history import router as history_router
from backend.api.events import router as events_router
from backend.api.jobs import router as jobs_router

# Create main API router
api_router = APIRouter()

api_router.include_router(sales_router, tags=["sales"])
api_router.include_router(history_router, tags=["history"])
api_router.include_router(events_router, tags=["events"])
api_router.include_router(jobs_router, tags=["jobs"])

__all__ = [
    "api_router",
    "sales_router",
    "history_router",
    "events_router",
    "jobs_router",
]
