"""
Backend Services Module

Business logic for sale attribution. Each service is stateless; the database
pool and settings are looked up at call time so tests can patch them.

Services:
- message_parser: payment bot notification -> SaleData
- click_time: estimated click time and matching window
- event_store: ClickEventSource protocol with Postgres and in-memory sources
- scoring: window filter, grouping, confidence and ranking
- attribution: end-to-end orchestration of one analysis
- history: insert-only attribution history
- event_ingestion: click log CSV/JSON ingestion with pandas validation
"""

# =============================================================================
# Parsing and Estimation
# =============================================================================

from backend.services.message_parser import (
    parse_sale_message,
    missing_sale_fields,
    render_sale_message,
)
from backend.services.click_time import (
    estimate_click_time,
    format_click_time,
    matching_window,
)

# =============================================================================
# Event Sources and Scoring
# =============================================================================

from backend.services.event_store import (
    ClickEventSource,
    PostgresClickEventSource,
    InMemoryClickEventSource,
)
from backend.services.scoring import (
    CandidateGroup,
    confidence_for_clicks,
    filter_window,
    group_candidates,
    rank_groups,
    score_candidates,
)

# =============================================================================
# Orchestration and Persistence
# =============================================================================

from backend.services.attribution import analyze_sale
from backend.services.history import (
    insert_history_record,
    save_history_record,
    list_history,
)
from backend.services.event_ingestion import (
    ingest_click_events,
    prepare_click_events,
    insert_click_events,
    REQUIRED_COLUMNS,
)

__all__ = [
    # message_parser
    'parse_sale_message',
    'missing_sale_fields',
    'render_sale_message',
    # click_time
    'estimate_click_time',
    'format_click_time',
    'matching_window',
    # event_store
    'ClickEventSource',
    'PostgresClickEventSource',
    'InMemoryClickEventSource',
    # scoring
    'CandidateGroup',
    'confidence_for_clicks',
    'filter_window',
    'group_candidates',
    'rank_groups',
    'score_candidates',
    # attribution
    'analyze_sale',
    # history
    'insert_history_record',
    'save_history_record',
    'list_history',
    # event_ingestion
    'ingest_click_events',
    'prepare_click_events',
    'insert_click_events',
    'REQUIRED_COLUMNS',
]
