"""
Click Event Ingestion Service

Loads ad click logs into the click_event table so the attribution pipeline has
something to match against. Batches arrive either as a CSV export or as JSON
rows; both go through the same pandas validation before insert.

Required columns: timestamp, campaign, creative, utm_source, utm_medium
Optional column:  event_id (a uuid4 is assigned when missing or blank)

Rules:
- Column names are matched case-insensitively and trimmed
- Empty/missing text cells become '' (a valid "unknown" grouping value)
- Timestamps must parse as ISO 8601 or day-first dd/mm/yyyy; naive ones are
  read in the configured app timezone
- event_id must be unique within a batch; rows already stored are skipped
"""

import io
import logging
from datetime import datetime, tzinfo
from typing import Any, BinaryIO, Dict, List, Optional, Tuple
from uuid import uuid4

import pandas as pd

from backend.core.config import get_settings
from backend.core.database import get_db_pool
from backend.models import EventIngestionResult, IngestionSource, ValidationError
from backend.sql import INSERT_CLICK_EVENT

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

REQUIRED_COLUMNS: List[str] = [
    'timestamp',
    'campaign',
    'creative',
    'utm_source',
    'utm_medium',
]

TEXT_COLUMNS: List[str] = ['campaign', 'creative', 'utm_source', 'utm_medium']

# Number of offending row numbers quoted in an error message
MAX_REPORTED_ROWS: int = 5

# ISO 8601 first, then day-first local formats; never guessed per cell
TIMESTAMP_FORMATS: List[str] = [
    'ISO8601',
    '%d/%m/%Y %H:%M:%S',
    '%d/%m/%Y %H:%M',
    '%d/%m/%Y',
]


# =============================================================================
# VALIDATION
# =============================================================================


def validate_columns(df: pd.DataFrame) -> List[ValidationError]:
    """
    Check that every required column is present (case-insensitive).

    Args:
        df: The pandas DataFrame to validate

    Returns:
        List of ValidationError objects for any missing columns
    """
    errors: List[ValidationError] = []
    df_columns = set(df.columns.astype(str).str.strip().str.lower())
    for col in REQUIRED_COLUMNS:
        if col not in df_columns:
            errors.append(ValidationError(
                field=col,
                message=f"Required column '{col}' is missing",
                row_number=None
            ))
    return errors


def _normalize_dataframe(df: pd.DataFrame) -> pd.DataFrame:
    """Lower-case column names, blank-fill text columns and assign event ids."""
    df_normalized = df.copy()
    df_normalized.columns = df_normalized.columns.astype(str).str.strip().str.lower()

    for col in TEXT_COLUMNS:
        df_normalized[col] = df_normalized[col].fillna('').astype(str).str.strip()

    if 'event_id' not in df_normalized.columns:
        df_normalized['event_id'] = None
    event_ids = df_normalized['event_id'].fillna('').astype(str).str.strip()
    df_normalized['event_id'] = [value or str(uuid4()) for value in event_ids]

    return df_normalized.reset_index(drop=True)


def _parse_timestamp(value: Any, default_tz: tzinfo) -> Optional[datetime]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    text = value.strip() if isinstance(value, str) else value
    for fmt in TIMESTAMP_FORMATS:
        parsed = pd.to_datetime(text, format=fmt, errors='coerce')
        if not pd.isna(parsed):
            break
    else:
        return None
    moment = parsed.to_pydatetime()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=default_tz)
    return moment


def validate_timestamps(
    df: pd.DataFrame,
    default_tz: tzinfo
) -> Tuple[pd.DataFrame, List[ValidationError]]:
    """
    Parse the timestamp column into timezone-aware datetimes.

    Args:
        df: Normalized DataFrame
        default_tz: Timezone applied to timestamps without an offset

    Returns:
        Tuple of (DataFrame with parsed 'timestamp', list of errors)
    """
    errors: List[ValidationError] = []
    parsed = [_parse_timestamp(value, default_tz) for value in df['timestamp']]
    invalid_indices = [index for index, value in enumerate(parsed) if value is None]

    if invalid_indices:
        reported = [index + 1 for index in invalid_indices[:MAX_REPORTED_ROWS]]
        errors.append(ValidationError(
            field='timestamp',
            message=(
                f"Found {len(invalid_indices)} invalid timestamp values. "
                f"First invalid rows: {reported}"
            ),
            row_number=reported[0]
        ))

    df_parsed = df.copy()
    df_parsed['timestamp'] = pd.Series(parsed, index=df.index, dtype=object)
    return df_parsed, errors


def validate_event_id_uniqueness(df: pd.DataFrame) -> List[ValidationError]:
    """Flag event_id values repeated within the batch."""
    duplicated_mask = df.duplicated(subset=['event_id'], keep=False)
    duplicate_count = int(duplicated_mask.sum())
    if duplicate_count == 0:
        return []

    duplicate_indices = df[duplicated_mask].index.tolist()[:MAX_REPORTED_ROWS]
    return [ValidationError(
        field='event_id',
        message=(
            f"Found {duplicate_count} rows sharing an event_id. "
            f"First duplicate rows: {[index + 1 for index in duplicate_indices]}"
        ),
        row_number=duplicate_indices[0] + 1
    )]


def prepare_click_events(
    df: pd.DataFrame,
    default_tz: Optional[tzinfo] = None
) -> Tuple[Optional[pd.DataFrame], List[ValidationError]]:
    """
    Validate and normalize a raw click event DataFrame.

    Args:
        df: Raw rows as loaded from CSV or JSON
        default_tz: Timezone for naive timestamps (defaults to the app timezone)

    Returns:
        Tuple of (insert-ready DataFrame or None, list of validation errors)
    """
    if df.empty:
        return None, [ValidationError(
            field='rows',
            message='No click event rows to ingest',
            row_number=None
        )]

    column_errors = validate_columns(df)
    if column_errors:
        return None, column_errors

    default_tz = default_tz or get_settings().tzinfo
    df = _normalize_dataframe(df)
    df, errors = validate_timestamps(df, default_tz)
    errors.extend(validate_event_id_uniqueness(df))

    if errors:
        return None, errors

    return df[['event_id', 'timestamp'] + TEXT_COLUMNS], []


def load_csv(file: BinaryIO) -> Tuple[Optional[pd.DataFrame], List[ValidationError]]:
    """
    Read a click log CSV into a DataFrame with every cell as text.

    Args:
        file: Binary or text file object containing CSV data

    Returns:
        Tuple of (DataFrame or None, list of errors)
    """
    try:
        content = file.read()
        file_like = io.BytesIO(content) if isinstance(content, bytes) else io.StringIO(content)
        df = pd.read_csv(file_like, dtype=str, keep_default_na=False)
    except (ValueError, UnicodeDecodeError, pd.errors.ParserError) as e:
        return None, [ValidationError(
            field='file',
            message=f'Failed to parse CSV file: {str(e)}',
            row_number=None
        )]

    logger.info(f"Parsed click log CSV with {len(df)} rows and {len(df.columns)} columns")
    return df, []


# =============================================================================
# PERSISTENCE
# =============================================================================


async def insert_click_events(df: pd.DataFrame) -> int:
    """
    Insert prepared click events, skipping event_ids that already exist.

    Args:
        df: DataFrame returned by prepare_click_events

    Returns:
        Number of rows actually inserted
    """
    if df.empty:
        return 0

    columns = [
        df['event_id'].tolist(),
        df['timestamp'].tolist(),
        df['campaign'].tolist(),
        df['creative'].tolist(),
        df['utm_source'].tolist(),
        df['utm_medium'].tolist(),
    ]

    pool = await get_db_pool()
    async with pool.acquire() as conn:
        inserted_rows = await conn.fetch(INSERT_CLICK_EVENT, *columns)

    inserted = len(inserted_rows)
    logger.info(f"Inserted {inserted} of {len(df)} click events ({len(df) - inserted} already stored)")
    return inserted


async def ingest_click_events(
    source: IngestionSource,
    file: Optional[BinaryIO] = None,
    rows: Optional[List[Dict[str, Any]]] = None,
    default_tz: Optional[tzinfo] = None
) -> EventIngestionResult:
    """
    Main ingestion entry point for click event batches.

    Args:
        source: IngestionSource.CSV (requires file) or IngestionSource.JSON (requires rows)
        file: CSV file object
        rows: List of row dicts
        default_tz: Timezone for naive timestamps

    Returns:
        EventIngestionResult with row counts and any validation errors
    """
    logger.info(f"Starting click event ingestion from {source.value}")

    if source == IngestionSource.CSV:
        if file is None:
            return _failed('file', "File is required for CSV ingestion")
        df, errors = load_csv(file)
        if errors:
            return EventIngestionResult(success=False, rows_processed=0, rows_inserted=0, errors=errors)
    else:
        if rows is None:
            return _failed('rows', "Rows are required for JSON ingestion")
        df = pd.DataFrame(rows)

    prepared, errors = prepare_click_events(df, default_tz)
    if errors or prepared is None:
        return EventIngestionResult(success=False, rows_processed=0, rows_inserted=0, errors=errors)

    rows_processed = len(prepared)
    inserted = await insert_click_events(prepared)

    return EventIngestionResult(
        success=True,
        rows_processed=rows_processed,
        rows_inserted=inserted,
        errors=[]
    )


def _failed(field: str, message: str) -> EventIngestionResult:
    return EventIngestionResult(
        success=False,
        rows_processed=0,
        rows_inserted=0,
        errors=[ValidationError(field=field, message=message, row_number=None)]
    )
