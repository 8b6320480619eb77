"""
Attribution History Service

Insert-only log of attribution runs in the sale_analysis table. Rows get a
server-assigned id and created_at, so concurrent runs never conflict.

save_history_record is scheduled as a FastAPI background task after the
response is built; a failed insert is logged and does not reach the caller.
"""

import logging
from typing import List, Optional

from backend.core.database import get_db_pool
from backend.models import HistoryItem, HistoryRecord
from backend.sql import INSERT_SALE_ANALYSIS, get_history_query, like_pattern

logger = logging.getLogger(__name__)


async def insert_history_record(record: HistoryRecord) -> int:
    """
    Insert one history row.

    Returns:
        The id assigned by the database.

    Raises:
        asyncpg.PostgresError: If the insert fails.
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        new_id = await conn.fetchval(
            INSERT_SALE_ANALYSIS,
            record.client_id,
            record.plan,
            record.value,
            record.purchase_datetime,
            record.conversion_seconds,
            record.estimated_click_time,
            record.campaign,
            record.creative,
            record.utm_source,
            record.utm_medium,
            record.confidence.value if record.confidence else None,
            record.click_count,
            record.events_found,
        )

    logger.info(f"Saved attribution history record {new_id} for client {record.client_id}")
    return new_id


async def save_history_record(record: HistoryRecord) -> Optional[int]:
    """
    Background-task wrapper around insert_history_record.

    Returns:
        The new row id, or None if the insert failed (the failure is logged).
    """
    try:
        return await insert_history_record(record)
    except Exception:
        logger.exception(f"Failed to save attribution history for client {record.client_id}")
        return None


async def list_history(limit: int = 50, search: Optional[str] = None) -> List[HistoryItem]:
    """
    List previously computed attributions, newest first.

    Args:
        limit: Maximum number of rows to return.
        search: Optional term matched against campaign, creative and client id.

    Returns:
        List of HistoryItem.
    """
    term = search.strip() if search else None
    sql = get_history_query(term)
    params = (like_pattern(term), limit) if term else (limit,)

    pool = await get_db_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch(sql, *params)

    return [HistoryItem.from_record(row) for row in rows]
