"""
Package initialization file for backend models.

Re-exports all Pydantic schemas and enumerations from schemas.py and enums.py
so other modules can import them from backend.models directly:

    from backend.models import SaleData, ClickEvent, AnalysisResponse, Confidence
"""

# =============================================================================
# Enums
# =============================================================================

from backend.models.enums import (
    Confidence,
    AnalysisIssue,
    IngestionSource,
)


# =============================================================================
# Schemas
# =============================================================================

from backend.models.schemas import (
    # Sale data
    ConversionTime,
    SaleData,
    # Click events
    ClickEvent,
    # Attribution results
    AnalysisResult,
    AnalysisResponse,
    AnalyzeSaleRequest,
    # History
    HistoryRecord,
    HistoryItem,
    HistoryListResponse,
    # Click event ingestion
    ValidationError,
    EventIngestionRequest,
    EventIngestionResult,
)


__all__ = [
    # Enums
    'Confidence',
    'AnalysisIssue',
    'IngestionSource',
    # Schemas
    'ConversionTime',
    'SaleData',
    'ClickEvent',
    'AnalysisResult',
    'AnalysisResponse',
    'AnalyzeSaleRequest',
    'HistoryRecord',
    'HistoryItem',
    'HistoryListResponse',
    'ValidationError',
    'EventIngestionRequest',
    'EventIngestionResult',
]
