"""
Sale Attribution Orchestrator

Runs one attribution end to end:

    message --parse--> SaleData --estimate--> click time
            --fetch [t - window, t + window]--> ClickEvents
            --score--> ranked AnalysisResults + events_found

Outcomes:
- No purchase time in the message, or a conversion time too large to
  subtract from it: an empty response carrying the parsed sale data. Not
  an error; the operator still sees what was extracted.
- No clicks in the window: an empty analysis with events_found = 0. Not an
  error either.
- Event source failure: SourceUnavailable / SourceMalformed propagate to the
  caller. No partial response is built, because missing event data is not
  the same thing as no matching clicks.

After every successful run a HistoryRecord is handed to the optional
history_sink. The sink is fire-and-forget: the API schedules the insert as a
background task, and the response never depends on it.
"""

import logging
from typing import Callable, Optional

from backend.core.config import Settings, get_settings
from backend.models import AnalysisIssue, AnalysisResponse, HistoryRecord
from backend.services.click_time import estimate_click_time, format_click_time, matching_window
from backend.services.event_store import ClickEventSource
from backend.services.message_parser import missing_sale_fields, parse_sale_message
from backend.services.scoring import score_candidates

logger = logging.getLogger(__name__)

HistorySink = Callable[[HistoryRecord], None]


async def analyze_sale(
    message: str,
    event_source: ClickEventSource,
    settings: Optional[Settings] = None,
    history_sink: Optional[HistorySink] = None,
) -> AnalysisResponse:
    """
    Attribute one sale notification to the most likely campaign and creative.

    Args:
        message: Raw payment bot notification.
        event_source: Where candidate click events are fetched from.
        settings: Matching window, confidence thresholds and timezone.
            Defaults to the application settings.
        history_sink: Called with the HistoryRecord of a successful run.

    Returns:
        AnalysisResponse with ranked candidates; top_result is the first one.

    Raises:
        SourceUnavailable: The event source could not be reached.
        SourceMalformed: The event source returned unreadable records.
    """
    settings = settings or get_settings()

    sale = parse_sale_message(message)
    missing = missing_sale_fields(sale)
    if missing:
        logger.warning(
            f"{AnalysisIssue.PARSE_INCOMPLETE.value}: sale message missing {', '.join(missing)}"
        )

    estimated = estimate_click_time(sale, settings.match_window)
    if estimated is None:
        logger.warning(
            f"{AnalysisIssue.NO_TIME_ANCHOR.value}: no usable purchase time for client "
            f"{sale.client_id or 'unknown'}, skipping click matching"
        )
        response = AnalysisResponse(sale_data=sale)
        _emit_history(history_sink, HistoryRecord.from_response(response))
        return response

    # Bot times are local wall-clock; anchor them before querying the store
    anchored = estimated.replace(tzinfo=settings.tzinfo)
    window_start, window_end = matching_window(anchored, settings.match_window)

    events = await event_source.fetch(window_start, window_end)

    analysis, events_found = score_candidates(
        anchored,
        events,
        settings.match_window,
        high_min_clicks=settings.high_confidence_min_clicks,
        medium_min_clicks=settings.medium_confidence_min_clicks,
    )

    response = AnalysisResponse(
        sale_data=sale,
        estimated_click_time=format_click_time(estimated),
        analysis=analysis,
        top_result=analysis[0] if analysis else None,
        events_found=events_found,
    )

    if response.top_result:
        top = response.top_result
        logger.info(
            f"Attributed sale {sale.client_id or 'unknown'} to {top.campaign!r}/{top.creative!r} "
            f"({top.confidence.value}, {top.click_count} clicks, {events_found} events)"
        )
    else:
        logger.info(
            f"No clicks within {settings.match_window_seconds}s of "
            f"{response.estimated_click_time} for sale {sale.client_id or 'unknown'}"
        )

    _emit_history(history_sink, HistoryRecord.from_response(response, estimated))
    return response


def _emit_history(history_sink: Optional[HistorySink], record: HistoryRecord) -> None:
    if history_sink is not None:
        history_sink(record)
