"""
FastAPI router for scheduled jobs.

Lets a scheduler (cron, Cloud Scheduler, ...) trigger the daily Slack digest
over HTTP and check its state.
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Query

from backend.jobs.slack_digest import get_digest_status, send_slack_digest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/jobs/slack-digest")
async def trigger_slack_digest(
    digest_date: Optional[date] = Query(default=None, description="Day to summarise (default: yesterday)"),
    force: bool = Query(default=False, description="Re-send even if already sent"),
) -> Dict[str, Any]:
    """Run the daily attribution digest; the result dict reports skip/failure."""
    result = await send_slack_digest(digest_date=digest_date, force=force)
    if not result.get('success'):
        logger.error(f"Slack digest failed: {result.get('error')}")
    return result


@router.get("/jobs/slack-digest")
async def slack_digest_status() -> Dict[str, Any]:
    """Recent digest sends and whether a webhook is configured."""
    return await get_digest_status()
