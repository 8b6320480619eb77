"""
Attribution Queries Module.

Parameterized PostgreSQL statements for the tables the attribution backend
reads and writes. All statements use asyncpg positional placeholders
($1, $2, ...); values are never interpolated into the SQL text.

Tables:
    click_event
        event_id TEXT PRIMARY KEY, clicked_at TIMESTAMPTZ NOT NULL,
        campaign TEXT, creative TEXT, utm_source TEXT, utm_medium TEXT,
        created_at TIMESTAMPTZ DEFAULT NOW()
        Index on clicked_at; the window query is a range scan on it.

    sale_analysis  (insert-only history, one row per attribution run)
        id BIGSERIAL PRIMARY KEY, client_id TEXT, plan TEXT, value NUMERIC(12,2),
        purchase_datetime TIMESTAMP, conversion_seconds INTEGER,
        estimated_click_time TIMESTAMP, campaign TEXT, creative TEXT,
        utm_source TEXT, utm_medium TEXT, confidence TEXT,
        click_count INTEGER, events_found INTEGER,
        created_at TIMESTAMPTZ DEFAULT NOW()

    job_digest_state
        job_type TEXT, digest_date DATE, sent_at TIMESTAMPTZ,
        digest_count INTEGER, PRIMARY KEY (job_type, digest_date)
"""

from typing import List, Optional


# =============================================================================
# CLICK EVENTS
# =============================================================================

# NULL text columns come back as '' so empty and unknown group together
CLICK_EVENTS_IN_WINDOW = """
    SELECT
        event_id,
        clicked_at AS timestamp,
        COALESCE(campaign, '') AS campaign,
        COALESCE(creative, '') AS creative,
        COALESCE(utm_source, '') AS utm_source,
        COALESCE(utm_medium, '') AS utm_medium
    FROM click_event
    WHERE clicked_at BETWEEN $1 AND $2
    ORDER BY clicked_at
"""

INSERT_CLICK_EVENT = """
    INSERT INTO click_event (
        event_id, clicked_at, campaign, creative, utm_source, utm_medium, created_at
    )
    SELECT event_id, clicked_at, campaign, creative, utm_source, utm_medium, NOW()
    FROM unnest(
        $1::text[], $2::timestamptz[], $3::text[], $4::text[], $5::text[], $6::text[]
    ) AS batch(event_id, clicked_at, campaign, creative, utm_source, utm_medium)
    ON CONFLICT (event_id) DO NOTHING
    RETURNING event_id
"""


# =============================================================================
# SALE ANALYSIS HISTORY
# =============================================================================

INSERT_SALE_ANALYSIS = """
    INSERT INTO sale_analysis (
        client_id, plan, value, purchase_datetime, conversion_seconds,
        estimated_click_time, campaign, creative, utm_source, utm_medium,
        confidence, click_count, events_found, created_at
    ) VALUES (
        $1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, NOW()
    )
    RETURNING id
"""

_HISTORY_COLUMNS = """
        id, client_id, plan, value, purchase_datetime, estimated_click_time,
        campaign, creative, utm_source, utm_medium, confidence,
        click_count, events_found, created_at
"""


def get_history_query(search: Optional[str] = None) -> str:
    """
    Build the history listing query, newest first.

    Args:
        search: Optional term matched case-insensitively against campaign and
            creative, and as a substring of client_id.

    Returns:
        SQL string. With a search term the parameters are
        ($1=pattern, $2=limit); without it ($1=limit).
    """
    if search:
        sql = f"""
    SELECT {_HISTORY_COLUMNS}
    FROM sale_analysis
    WHERE campaign ILIKE $1
       OR creative ILIKE $1
       OR client_id LIKE $1
    ORDER BY created_at DESC, id DESC
    LIMIT $2
"""
        return sql

    sql = f"""
    SELECT {_HISTORY_COLUMNS}
    FROM sale_analysis
    ORDER BY created_at DESC, id DESC
    LIMIT $1
"""
    return sql


def like_pattern(term: str) -> str:
    """Escape LIKE wildcards in a user search term and wrap it in %...%."""
    escaped = term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f"%{escaped}%"


# =============================================================================
# DAILY DIGEST
# =============================================================================

# Runs analysed on local day $1 in timezone $2, including runs with no purchase time
SALES_FOR_DAY = """
    SELECT
        client_id, value, campaign, creative, confidence, click_count
    FROM sale_analysis
    WHERE created_at >= ($1::date::timestamp AT TIME ZONE $2)
      AND created_at < (($1::date + 1)::timestamp AT TIME ZONE $2)
"""

DIGEST_ALREADY_SENT = """
    SELECT 1
    FROM job_digest_state
    WHERE job_type = $1 AND digest_date = $2
    LIMIT 1
"""

MARK_DIGEST_SENT = """
    INSERT INTO job_digest_state (job_type, digest_date, sent_at, digest_count)
    VALUES ($1, $2, NOW(), 1)
    ON CONFLICT (job_type, digest_date)
    DO UPDATE SET
        sent_at = NOW(),
        digest_count = job_digest_state.digest_count + 1
"""

RECENT_DIGESTS = """
    SELECT digest_date, sent_at, digest_count
    FROM job_digest_state
    WHERE job_type = $1
    ORDER BY digest_date DESC
    LIMIT $2
"""


__all__: List[str] = [
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
