"""
Core infrastructure package for the FastAPI backend.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL database connectivity via asyncpg
- The attribution error taxonomy

Re-exports the configuration, pool lifecycle and error types so other modules
can write:

    from backend.core import get_settings, get_db_pool, SourceUnavailable

FastAPI dependencies live in backend.core.dependencies and are imported from
there directly; they depend on the services layer.
"""

from backend.core.config import Settings, get_settings
from backend.core.database import init_db, close_db, get_db_pool
from backend.core.exceptions import (
    AttributionError,
    EventSourceError,
    InvalidSaleMessage,
    SourceMalformed,
    SourceUnavailable,
)

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Database pool lifecycle (from database.py)
    'init_db',
    'close_db',
    'get_db_pool',
    # Error taxonomy (from exceptions.py)
    'AttributionError',
    'EventSourceError',
    'InvalidSaleMessage',
    'SourceMalformed',
    'SourceUnavailable',
]
