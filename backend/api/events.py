"""
FastAPI router for click event ingestion.

Keeps the click_event table populated from exported click logs:
- POST /events         JSON body { rows: [...] }
- POST /events/upload  multipart CSV upload

Both return an EventIngestionResult. Validation problems come back with
success=false and row-numbered errors (HTTP 200), the same way batch
uploads report data issues elsewhere in the API; database failures are 500.
"""

import logging

from fastapi import APIRouter, File, HTTPException, UploadFile

from backend.core.dependencies import SettingsDep
from backend.models import EventIngestionRequest, EventIngestionResult, IngestionSource
from backend.services.event_ingestion import ingest_click_events

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/events", response_model=EventIngestionResult)
async def ingest_events(
    request: EventIngestionRequest,
    settings: SettingsDep,
) -> EventIngestionResult:
    """Ingest click events sent as JSON rows."""
    try:
        return await ingest_click_events(
            IngestionSource.JSON,
            rows=request.rows,
            default_tz=settings.tzinfo,
        )
    except Exception as e:
        logger.exception("Error ingesting click events")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to ingest click events: {str(e)}"
        )


@router.post("/events/upload", response_model=EventIngestionResult)
async def upload_events(
    settings: SettingsDep,
    file: UploadFile = File(..., description="Click log CSV"),
) -> EventIngestionResult:
    """Ingest click events from an uploaded CSV file."""
    logger.info(f"Received click log upload {file.filename}")
    try:
        return await ingest_click_events(
            IngestionSource.CSV,
            file=file.file,
            default_tz=settings.tzinfo,
        )
    except Exception as e:
        logger.exception(f"Error ingesting click log {file.filename}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to ingest click events: {str(e)}"
        )
