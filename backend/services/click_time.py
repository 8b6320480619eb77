"""
Click-time estimation.

The bot reports when the purchase happened and how long the buyer took to
convert; the click we are looking for therefore happened at
``purchase_datetime - conversion_time``.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from backend.models import SaleData

logger = logging.getLogger(__name__)

CLICK_TIME_FORMAT = '%Y-%m-%d %H:%M:%S'


def estimate_click_time(sale: SaleData, window: Optional[timedelta] = None) -> Optional[datetime]:
    """
    Estimate when the ad click that led to this sale happened.

    Args:
        sale: Parsed sale data.
        window: Matching window the estimate will be widened by. When given,
            an estimate whose window would fall outside the datetime range is
            treated as no estimate.

    Returns:
        purchase_datetime minus conversion_time (a missing conversion time
        counts as zero), or None when there is no purchase_datetime to anchor
        the estimate or the conversion time is too large to subtract.
    """
    if sale.purchase_datetime is None:
        return None
    try:
        estimated = sale.purchase_datetime
        if sale.conversion_time is not None:
            estimated = estimated - sale.conversion_time.to_timedelta()
        if window is not None:
            matching_window(estimated, window)
    except OverflowError:
        logger.warning(
            f"Conversion time {sale.conversion_time} before {sale.purchase_datetime} "
            f"is out of range, no click time estimated"
        )
        return None
    return estimated


def format_click_time(moment: Optional[datetime]) -> str:
    """Render an estimated click time, or '' when there is none."""
    if moment is None:
        return ''
    return moment.strftime(CLICK_TIME_FORMAT)


def matching_window(estimated: datetime, window: timedelta) -> Tuple[datetime, datetime]:
    """Inclusive [estimated - window, estimated + window] bounds."""
    return estimated - window, estimated + window
