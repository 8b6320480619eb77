"""
Enumeration definitions for the attribution backend.

All enums inherit from both `str` and `Enum` so Pydantic serializes them as
their plain string values in API responses.
"""

from enum import Enum


class Confidence(str, Enum):
    """
    Confidence label of an attribution candidate.

    A pure function of the group's click count (see
    backend.services.scoring.confidence_for_clicks). With default settings:
    - HIGH: three or more clicks support the campaign/creative
    - MEDIUM: exactly two clicks
    - LOW: a single click

    Localized display labels (Alta/Média/Baixa) belong to the dashboard.
    """
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class AnalysisIssue(str, Enum):
    """
    Non-fatal conditions met during an attribution run.

    These never fail a request; they are logged and the run continues with
    whatever was extracted.
    - PARSE_INCOMPLETE: one or more sale fields were not found in the message
    - NO_TIME_ANCHOR: no purchase timestamp, so no click time can be estimated
    """
    PARSE_INCOMPLETE = "parse_incomplete"
    NO_TIME_ANCHOR = "no_time_anchor"


class IngestionSource(str, Enum):
    """Where a batch of click events came from."""
    CSV = "csv"
    JSON = "json"
