"""
SQL Query Module for the attribution backend.

Provides the parameterized statements used by the services layer, keeping
business logic separate from data access:

    from backend.sql import CLICK_EVENTS_IN_WINDOW, get_history_query

Submodules:
    attribution_queries: click_event reads/inserts, sale_analysis history,
                         and daily digest state.
"""

from backend.sql.attribution_queries import (
    CLICK_EVENTS_IN_WINDOW,
    INSERT_CLICK_EVENT,
    INSERT_SALE_ANALYSIS,
    get_history_query,
    like_pattern,
    SALES_FOR_DAY,
    DIGEST_ALREADY_SENT,
    MARK_DIGEST_SENT,
    RECENT_DIGESTS,
)

__all__ = [
    'CLICK_EVENTS_IN_WINDOW',
    'INSERT_CLICK_EVENT',
    'INSERT_SALE_ANALYSIS',
    'get_history_query',
    'like_pattern',
    'SALES_FOR_DAY',
    'DIGEST_ALREADY_SENT',
    'MARK_DIGEST_SENT',
    'RECENT_DIGESTS',
]
