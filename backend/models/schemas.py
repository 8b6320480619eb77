"""
Pydantic request/response models for the attribution backend.

This module provides type-safe data validation and serialization for the
attribution pipeline and its API contracts:

- Sale data extracted from payment bot notifications (SaleData, ConversionTime)
- Ad click events read from the event store (ClickEvent)
- Ranked attribution candidates and the analysis response
- History records persisted after each run and the history listing
- Click-event ingestion results

Domain models that flow through the pipeline are frozen: they are created once
per attribution run and never mutated afterwards.

All models use Pydantic v2 syntax.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, model_validator

from backend.models.enums import Confidence


# Currency amounts are exact Decimals internally and plain JSON numbers on the wire
Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used='json'),
]


# =============================================================================
# Sale Data
# =============================================================================


class ConversionTime(BaseModel):
    """
    Operator-reported time between the ad click and the completed purchase.

    Decomposed the way the bot prints it: ``0d 0h 3m 51s``.
    """
    model_config = ConfigDict(frozen=True)

    days: int = Field(default=0, ge=0)
    hours: int = Field(default=0, ge=0)
    minutes: int = Field(default=0, ge=0)
    seconds: int = Field(default=0, ge=0)

    def to_timedelta(self) -> timedelta:
        return timedelta(
            days=self.days,
            hours=self.hours,
            minutes=self.minutes,
            seconds=self.seconds,
        )

    @property
    def total_seconds(self) -> int:
        # Plain arithmetic; timedelta overflows past 999999999 days
        return ((self.days * 24 + self.hours) * 60 + self.minutes) * 60 + self.seconds


class SaleData(BaseModel):
    """
    Structured sale extracted from a payment bot notification.

    Every field is optional: the parser is best effort and a missing field is
    represented as None rather than an empty string. A sale without
    purchase_datetime cannot be attributed; a sale without conversion_time is
    attributed as if the click happened at the moment of purchase.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "client_id": "2054698907",
                "plan": "Plano Mensal",
                "value": 29.9,
                "purchase_datetime": "2025-06-27T22:58:00",
                "conversion_time": {"days": 0, "hours": 0, "minutes": 3, "seconds": 51},
            }
        }
    )

    client_id: Optional[str] = Field(
        default=None,
        description="Opaque client identifier reported by the bot"
    )
    plan: Optional[str] = Field(
        default=None,
        description="Purchased plan name"
    )
    value: Optional[Money] = Field(
        default=None,
        description="Sale amount"
    )
    purchase_datetime: Optional[datetime] = Field(
        default=None,
        description="Local wall-clock purchase time (day-first in the source message)"
    )
    conversion_time: Optional[ConversionTime] = Field(
        default=None,
        description="Time between click and purchase"
    )


# =============================================================================
# Click Events
# =============================================================================


class ClickEvent(BaseModel):
    """
    One ad click read from the event store.

    Read-only to the attribution pipeline. Empty strings are legitimate
    "unknown" values and are kept as such so they group on their own.
    """
    model_config = ConfigDict(frozen=True)

    event_id: Optional[str] = Field(
        default=None,
        description="Identifying key of the click in the event store"
    )
    timestamp: datetime = Field(
        ...,
        description="When the click happened"
    )
    campaign: str = Field(default="")
    creative: str = Field(default="")
    utm_source: str = Field(default="")
    utm_medium: str = Field(default="")


# =============================================================================
# Attribution Results
# =============================================================================


class AnalysisResult(BaseModel):
    """
    One ranked attribution candidate: a (campaign, creative, utm_source,
    utm_medium) group of click events near the estimated click time.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "campaign": "Campanha Junho",
                "creative": "Video 03",
                "utm_source": "facebook",
                "utm_medium": "cpc",
                "confidence": "High",
                "click_count": 3,
            }
        }
    )

    campaign: str
    creative: str
    utm_source: str
    utm_medium: str
    confidence: Confidence
    click_count: int = Field(..., ge=1)


class AnalysisResponse(BaseModel):
    """
    Response of one attribution run.

    Invariants:
    - events_found == 0 implies an empty analysis and no top_result
    - top_result is analysis[0] whenever analysis is non-empty
    """
    model_config = ConfigDict(frozen=True)

    sale_data: SaleData
    estimated_click_time: str = Field(
        default="",
        description="Estimated click time as 'YYYY-MM-DD HH:MM:SS', empty when no estimate"
    )
    analysis: List[AnalysisResult] = Field(default_factory=list)
    top_result: Optional[AnalysisResult] = None
    events_found: int = Field(
        default=0,
        ge=0,
        description="Raw click events inside the matching window, before grouping"
    )

    @model_validator(mode='after')
    def _check_ranking_invariants(self) -> 'AnalysisResponse':
        if self.events_found == 0 and self.analysis:
            raise ValueError("analysis must be empty when no events were found")
        expected_top = self.analysis[0] if self.analysis else None
        if self.top_result != expected_top:
            raise ValueError("top_result must be the first ranked analysis result")
        return self


class AnalyzeSaleRequest(BaseModel):
    """Request body for POST /api/analyze-sale."""
    message: str = Field(
        ...,
        description="Raw payment bot notification text"
    )


# =============================================================================
# History
# =============================================================================

# sale_analysis.conversion_seconds is a Postgres INTEGER
MAX_STORED_CONVERSION_SECONDS = 2**31 - 1


def _storable_seconds(conversion_time: Optional[ConversionTime]) -> Optional[int]:
    if conversion_time is None:
        return None
    seconds = conversion_time.total_seconds
    return seconds if seconds <= MAX_STORED_CONVERSION_SECONDS else None


class HistoryRecord(BaseModel):
    """
    Row written to the sale_analysis history table after a successful run.

    The id and created_at are assigned by the database on insert.
    """
    model_config = ConfigDict(frozen=True)

    client_id: Optional[str] = None
    plan: Optional[str] = None
    value: Optional[Money] = None
    purchase_datetime: Optional[datetime] = None
    conversion_seconds: Optional[int] = None
    estimated_click_time: Optional[datetime] = None
    campaign: Optional[str] = None
    creative: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    confidence: Optional[Confidence] = None
    click_count: int = 0
    events_found: int = 0

    @classmethod
    def from_response(
        cls,
        response: AnalysisResponse,
        estimated_click_time: Optional[datetime] = None,
    ) -> 'HistoryRecord':
        sale = response.sale_data
        top = response.top_result
        return cls(
            client_id=sale.client_id,
            plan=sale.plan,
            value=sale.value,
            purchase_datetime=sale.purchase_datetime,
            conversion_seconds=_storable_seconds(sale.conversion_time),
            estimated_click_time=estimated_click_time,
            campaign=top.campaign if top else None,
            creative=top.creative if top else None,
            utm_source=top.utm_source if top else None,
            utm_medium=top.utm_medium if top else None,
            confidence=top.confidence if top else None,
            click_count=top.click_count if top else 0,
            events_found=response.events_found,
        )


class HistoryItem(BaseModel):
    """One previously computed attribution as listed by GET /api/history."""
    id: int
    client_id: Optional[str] = None
    plan: Optional[str] = None
    value: Optional[Money] = None
    purchase_datetime: Optional[datetime] = None
    estimated_click_time: Optional[datetime] = None
    campaign: Optional[str] = None
    creative: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    confidence: Optional[Confidence] = None
    click_count: int = 0
    events_found: int = 0
    created_at: datetime

    @classmethod
    def from_record(cls, record: Any) -> 'HistoryItem':
        """Build from an asyncpg.Record (or dict) of the sale_analysis table."""
        row = dict(record)
        return cls(**{key: row[key] for key in cls.model_fields if key in row})


class HistoryListResponse(BaseModel):
    """Response envelope for GET /api/history: { data: [...] }."""
    data: List[HistoryItem] = Field(default_factory=list)


# =============================================================================
# Click Event Ingestion
# =============================================================================


class ValidationError(BaseModel):
    """
    Validation error detail.

    Used for reporting data validation issues during click-event ingestion.
    """
    field: str = Field(
        ...,
        description="Field with validation error"
    )
    message: str = Field(
        ...,
        description="Error message"
    )
    row_number: Optional[int] = Field(
        default=None,
        ge=1,
        description="Row number where error occurred"
    )


class EventIngestionRequest(BaseModel):
    """JSON body for POST /api/events."""
    rows: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="Click event rows with timestamp, campaign, creative, utm_source, utm_medium"
    )


class EventIngestionResult(BaseModel):
    """
    Result of a click-event ingestion batch.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "rows_processed": 120,
                "rows_inserted": 118,
                "errors": []
            }
        }
    )

    success: bool = Field(
        ...,
        description="Whether ingestion was successful"
    )
    rows_processed: int = Field(
        ...,
        ge=0,
        description="Number of rows that passed validation"
    )
    rows_inserted: int = Field(
        ...,
        ge=0,
        description="Number of rows written (duplicates by event_id are skipped)"
    )
    errors: List[ValidationError] = Field(
        default_factory=list,
        description="Validation errors, empty on success"
    )
