"""
FastAPI router for attribution history.

GET /history lists previously computed attributions newest first, shaped as
{ data: [...] } for the dashboard's history table.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from backend.core.dependencies import SettingsDep
from backend.models import HistoryListResponse
from backend.services.history import list_history

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/history", response_model=HistoryListResponse)
async def get_history(
    settings: SettingsDep,
    limit: Optional[int] = Query(default=None, ge=1, description="Maximum number of records"),
    search: Optional[str] = Query(default=None, description="Filter by campaign, creative or client id"),
) -> HistoryListResponse:
    """
    List attribution history.

    limit defaults to HISTORY_LIST_LIMIT and is capped at MAX_HISTORY_LIST_LIMIT.
    """
    effective_limit = min(limit or settings.history_list_limit, settings.max_history_list_limit)

    try:
        items = await list_history(limit=effective_limit, search=search)
    except Exception as e:
        logger.exception("Error listing attribution history")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to list history: {str(e)}"
        )

    return HistoryListResponse(data=items)
