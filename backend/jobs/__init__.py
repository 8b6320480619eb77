"""
Scheduled jobs for the attribution backend.

- slack_digest: daily Slack summary of attributed sales, idempotent per date
  through the job_digest_state table (force=True re-sends).

Usage:
    from backend.jobs import send_slack_digest
    result = await send_slack_digest()
"""

from backend.jobs.slack_digest import (
    check_already_sent,
    fetch_daily_attribution_summary,
    format_slack_message,
    get_digest_status,
    mark_digest_sent,
    send_slack_digest,
    summarize_sales,
)

__all__ = [
    'check_already_sent',
    'fetch_daily_attribution_summary',
    'format_slack_message',
    'get_digest_status',
    'mark_digest_sent',
    'send_slack_digest',
    'summarize_sales',
]
