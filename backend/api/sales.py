"""
FastAPI router for sale attribution.

POST /analyze-sale takes the raw payment bot notification and returns the
ranked campaign/creative candidates for it:

    { sale_data, estimated_click_time, analysis, top_result, events_found }

Errors are rendered by the application's AttributionError handler as
{"error": "<message>"}:
- 400 blank message
- 503 click event store unreachable
- 502 click event store returned unreadable records

Any other failure is logged and returned as HTTPException(500).

The history row is written in a background task after the response is sent.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException

from backend.core.dependencies import EventSourceDep, SettingsDep
from backend.core.exceptions import AttributionError, InvalidSaleMessage
from backend.models import AnalysisResponse, AnalyzeSaleRequest, HistoryRecord
from backend.services.attribution import analyze_sale
from backend.services.history import save_history_record

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/analyze-sale", response_model=AnalysisResponse)
async def analyze_sale_endpoint(
    request: AnalyzeSaleRequest,
    background_tasks: BackgroundTasks,
    settings: SettingsDep,
    event_source: EventSourceDep,
) -> AnalysisResponse:
    """
    Attribute a sale notification to the campaign/creative that most likely
    drove it.

    Args:
        request: Body with the raw notification message.
        background_tasks: Used to persist the history record.
        settings: Matching window, thresholds and timezone.
        event_source: Click event source to match against.

    Returns:
        AnalysisResponse; analysis is empty when no clicks fall in the window.
    """
    if not request.message or not request.message.strip():
        raise InvalidSaleMessage("Message is required")

    def schedule_history(record: HistoryRecord) -> None:
        background_tasks.add_task(save_history_record, record)

    try:
        return await analyze_sale(
            request.message,
            event_source,
            settings=settings,
            history_sink=schedule_history,
        )
    except AttributionError:
        raise
    except Exception as e:
        logger.exception("Error analyzing sale")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to analyze sale: {str(e)}"
        )
