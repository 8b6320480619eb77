"""
Slack daily attribution digest.

Posts one Block Kit message per day summarising the sales analysed that day:
how many were attributed, the revenue they carried, the confidence mix and
the campaigns/creatives that won the most attributions. Messages go out
through slack_sdk's WebhookClient.

Idempotency:
- One digest per date, tracked in job_digest_state (job_type='attribution_digest')
- force=True re-sends and bumps digest_count

Environment:
- SLACK_WEBHOOK_URL: incoming webhook, https://hooks.slack.com/services/xxx/yyy/zzz

Usage:
    # Yesterday's digest (default)
    result = await send_slack_digest()

    # A specific day, even if already sent
    result = await send_slack_digest(digest_date=date(2025, 6, 27), force=True)
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from slack_sdk.webhook import WebhookClient

from backend.core.config import get_settings
from backend.core.database import get_db_pool
from backend.models import Confidence
from backend.sql import DIGEST_ALREADY_SENT, MARK_DIGEST_SENT, RECENT_DIGESTS, SALES_FOR_DAY

logger = logging.getLogger(__name__)

JOB_TYPE = 'attribution_digest'

# Rows listed in the top campaigns / top creatives sections
TOP_N = 5

SUMMARY_COLUMNS = ['client_id', 'value', 'campaign', 'creative', 'confidence', 'click_count']


# =============================================================================
# Idempotency
# =============================================================================

async def check_already_sent(digest_date: date) -> bool:
    """
    Check whether the digest for digest_date has already been posted.

    Args:
        digest_date: Day the digest summarises.

    Returns:
        True if job_digest_state has a row for this date.
    """
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow(DIGEST_ALREADY_SENT, JOB_TYPE, digest_date)
    return row is not None


async def mark_digest_sent(digest_date: date) -> None:
    """Record a successful send (upsert; forced re-sends bump digest_count)."""
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        await conn.execute(MARK_DIGEST_SENT, JOB_TYPE, digest_date)


# =============================================================================
# Aggregation
# =============================================================================

def _empty_summary() -> Dict[str, Any]:
    return {
        'total_sales': 0,
        'attributed_sales': 0,
        'unattributed_sales': 0,
        'total_value': 0.0,
        'attributed_value': 0.0,
        'by_confidence': {c.value: 0 for c in Confidence},
        'top_campaigns': [],
        'top_creatives': [],
    }


def _to_float(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def summarize_sales(rows: Sequence[Any]) -> Dict[str, Any]:
    """
    Aggregate one day's sale_analysis rows.

    A sale counts as attributed when its run produced a top result (a
    confidence is stored). Campaigns and creatives are ranked by number of
    attributed sales, then attributed value, then name.

    Args:
        rows: Mapping-like rows with the SUMMARY_COLUMNS keys.

    Returns:
        Dict with totals, confidence breakdown and top campaigns/creatives.
    """
    if not rows:
        return _empty_summary()

    df = pd.DataFrame([dict(row) for row in rows], columns=SUMMARY_COLUMNS)
    df['value'] = df['value'].map(_to_float)

    attributed = df[df['confidence'].notna()].copy()
    attributed['campaign'] = attributed['campaign'].fillna('')
    attributed['creative'] = attributed['creative'].fillna('')

    by_confidence = {c.value: 0 for c in Confidence}
    for level, count in attributed['confidence'].value_counts().items():
        by_confidence[level] = int(count)

    top_campaigns: List[Dict[str, Any]] = []
    top_creatives: List[Dict[str, Any]] = []

    if not attributed.empty:
        campaigns = (
            attributed.groupby('campaign')
            .agg(sales=('client_id', 'size'), value=('value', 'sum'))
            .reset_index()
            .sort_values(['sales', 'value', 'campaign'], ascending=[False, False, True])
            .head(TOP_N)
        )
        top_campaigns = [
            {'campaign': row.campaign, 'sales': int(row.sales), 'value': round(float(row.value), 2)}
            for row in campaigns.itertuples(index=False)
        ]

        creatives = (
            attributed.groupby(['campaign', 'creative'])
            .agg(sales=('client_id', 'size'), clicks=('click_count', 'sum'))
            .reset_index()
            .sort_values(['sales', 'clicks', 'campaign', 'creative'], ascending=[False, False, True, True])
            .head(TOP_N)
        )
        top_creatives = [
            {
                'campaign': row.campaign,
                'creative': row.creative,
                'sales': int(row.sales),
                'clicks': int(row.clicks),
            }
            for row in creatives.itertuples(index=False)
        ]

    total_sales = len(df)
    attributed_sales = len(attributed)

    return {
        'total_sales': total_sales,
        'attributed_sales': attributed_sales,
        'unattributed_sales': total_sales - attributed_sales,
        'total_value': round(float(df['value'].sum()), 2),
        'attributed_value': round(float(attributed['value'].sum()), 2),
        'by_confidence': by_confidence,
        'top_campaigns': top_campaigns,
        'top_creatives': top_creatives,
    }


async def fetch_daily_attribution_summary(target_date: date, timezone_name: str) -> Dict[str, Any]:
    """
    Load every sale analysed on target_date (local day in timezone_name) and
    summarise it. Runs without a purchase time are included as unattributed.
    """
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch(SALES_FOR_DAY, target_date, timezone_name)

    logger.info(f"Loaded {len(rows)} analysed sales for {target_date}")
    return summarize_sales(rows)


# =============================================================================
# Slack Message Formatting
# =============================================================================

def format_brl(value: float) -> str:
    """Format an amount as Brazilian currency, e.g. R$ 1.234,56."""
    text = f"{value:,.2f}"
    return "R$ " + text.replace(',', '_').replace('.', ',').replace('_', '.')


def format_slack_message(target_date: date, summary: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Build the Block Kit payload for one day's digest.

    Args:
        target_date: Day being summarised.
        summary: Output of summarize_sales().

    Returns:
        List of Block Kit blocks for WebhookClient.send(blocks=...).
    """
    blocks: List[Dict[str, Any]] = []

    blocks.append({
        "type": "header",
        "text": {
            "type": "plain_text",
            "text": f"📈 Sale Attribution Digest - {target_date.strftime('%d/%m/%Y')}",
            "emoji": True
        }
    })
    blocks.append({"type": "divider"})

    total = summary['total_sales']
    attributed = summary['attributed_sales']
    rate = (attributed / total * 100) if total else 0.0
    confidence = summary['by_confidence']

    blocks.append({
        "type": "section",
        "text": {
            "type": "mrkdwn",
            "text": (
                f"*📊 Overview*\n\n"
                f"Sales analysed: *{total:,}*  |  Attributed: *{attributed:,}* ({rate:.1f}%)\n"
                f"Revenue: *{format_brl(summary['total_value'])}*  |  "
                f"Attributed revenue: *{format_brl(summary['attributed_value'])}*\n\n"
                f"🟢 High: *{confidence.get(Confidence.HIGH.value, 0)}*  |  "
                f"🟡 Medium: *{confidence.get(Confidence.MEDIUM.value, 0)}*  |  "
                f"⚪ Low: *{confidence.get(Confidence.LOW.value, 0)}*"
            )
        }
    })

    if summary['top_campaigns']:
        lines = [
            f"{i}. *{item['campaign'] or '(no campaign)'}* - {item['sales']} sales | {format_brl(item['value'])}"
            for i, item in enumerate(summary['top_campaigns'], 1)
        ]
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": "*🏆 Top Campaigns*\n\n" + "\n".join(lines)}
        })

    if summary['top_creatives']:
        lines = [
            f"{i}. *{item['creative'] or '(no creative)'}* ({item['campaign'] or '(no campaign)'}) - "
            f"{item['sales']} sales | {item['clicks']} clicks"
            for i, item in enumerate(summary['top_creatives'], 1)
        ]
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": "*🎨 Top Creatives*\n\n" + "\n".join(lines)}
        })

    if summary['unattributed_sales']:
        blocks.append({
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": f"⚠️ *{summary['unattributed_sales']}* sales could not be attributed (no purchase time or no clicks in their matching window)."
            }
        })

    blocks.append({"type": "divider"})
    timestamp = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')
    blocks.append({
        "type": "context",
        "elements": [{"type": "mrkdwn", "text": f"📅 Generated at {timestamp}"}]
    })

    return blocks


# =============================================================================
# Main Entry Points
# =============================================================================

async def send_slack_digest(
    digest_date: Optional[date] = None,
    force: bool = False
) -> Dict[str, Any]:
    """
    Send the daily attribution digest.

    Args:
        digest_date: Day to summarise (default: yesterday).
        force: Send even if this date was already sent.

    Returns:
        Dict with:
        - success: True if the digest was sent or skipped appropriately
        - skipped / reason: set when nothing was posted
        - date: the digest date
        - error: failure message when success is False

    Errors are reported in the returned dict, never raised.
    """
    settings = get_settings()

    if not settings.slack_webhook_url:
        return {
            'success': False,
            'error': 'SLACK_WEBHOOK_URL not configured. Set this environment variable to enable Slack digests.'
        }

    target_date = digest_date or (date.today() - timedelta(days=1))

    if not force:
        try:
            if await check_already_sent(target_date):
                return {
                    'success': True,
                    'skipped': True,
                    'reason': f'Digest already sent for {target_date}',
                    'date': str(target_date)
                }
        except Exception:
            # First run may predate job_digest_state
            logger.warning(f"Could not check digest state for {target_date}, sending anyway", exc_info=True)

    try:
        summary = await fetch_daily_attribution_summary(target_date, settings.app_timezone)
    except Exception as e:
        logger.exception(f"Failed to build attribution summary for {target_date}")
        return {
            'success': False,
            'error': f'Failed to fetch attribution summary: {str(e)}',
            'date': str(target_date)
        }

    if summary['total_sales'] == 0:
        return {
            'success': True,
            'skipped': True,
            'reason': f'No analysed sales for {target_date}',
            'date': str(target_date)
        }

    blocks = format_slack_message(target_date, summary)

    try:
        client = WebhookClient(settings.slack_webhook_url)
        response = client.send(text=f"Sale attribution digest for {target_date}", blocks=blocks)
    except Exception as e:
        logger.exception("Slack webhook request failed")
        return {
            'success': False,
            'error': f'Failed to send Slack message: {str(e)}',
            'date': str(target_date)
        }

    if response.status_code != 200:
        logger.error(f"Slack webhook returned {response.status_code}: {response.body}")
        return {
            'success': False,
            'error': f'Slack API returned status {response.status_code}: {response.body}',
            'date': str(target_date)
        }

    try:
        await mark_digest_sent(target_date)
    except Exception:
        # Message is out; worst case is a duplicate on retry
        logger.warning(f"Digest for {target_date} sent but state was not recorded", exc_info=True)

    logger.info(f"Sent attribution digest for {target_date} ({summary['total_sales']} sales)")
    return {
        'success': True,
        'date': str(target_date),
        'total_sales': summary['total_sales'],
        'attributed_sales': summary['attributed_sales'],
        'total_value': summary['total_value']
    }


async def get_digest_status(limit: int = 7) -> Dict[str, Any]:
    """
    Report recent digest sends.

    Returns:
        Dict with last_successful_date, recent_dates and configured.
    """
    settings = get_settings()
    configured = bool(settings.slack_webhook_url)

    try:
        pool = await get_db_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(RECENT_DIGESTS, JOB_TYPE, limit)
    except Exception:
        logger.warning("Digest state table unavailable", exc_info=True)
        return {
            'last_successful_date': None,
            'recent_dates': [],
            'configured': configured,
            'note': 'Digest state table may not be initialized yet'
        }

    recent = [
        {
            'date': str(row['digest_date']),
            'sent_at': row['sent_at'].isoformat() if row['sent_at'] else None,
            'digest_count': row['digest_count']
        }
        for row in rows
    ]

    return {
        'last_successful_date': recent[0]['date'] if recent else None,
        'recent_dates': recent,
        'configured': configured
    }
