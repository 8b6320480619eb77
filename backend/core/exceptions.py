"""
Error taxonomy for the attribution backend.

A blank request is rejected up front; after that only event source failures
are fatal to an attribution run. Incomplete parses and sales without a
purchase time are absorbed into partial results and are named by
backend.models.enums.AnalysisIssue instead of being raised.

Hierarchy:
    AttributionError
    ├── InvalidSaleMessage  (HTTP 400) request carried no message text
    └── EventSourceError
        ├── SourceUnavailable   (HTTP 503) upstream event store unreachable
        └── SourceMalformed     (HTTP 502) records could not become ClickEvent
"""


class AttributionError(Exception):
    """Base class for errors that abort an attribution run."""

    status_code: int = 500


class InvalidSaleMessage(AttributionError):
    """The analyze request carried an empty or blank message."""

    status_code = 400


class EventSourceError(AttributionError):
    """The click event source failed; the run cannot be completed."""

    status_code = 502


class SourceUnavailable(EventSourceError):
    """The upstream click event store could not be reached."""

    status_code = 503


class SourceMalformed(EventSourceError):
    """Records returned by the click event store could not be parsed."""

    status_code = 502
