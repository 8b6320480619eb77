"""
FastAPI dependency injection module for the attribution backend.

Provides reusable dependencies so endpoint handlers never construct their
infrastructure directly, which keeps them overridable in tests via
``app.dependency_overrides``.

Key Dependencies Provided:
- get_settings_dependency: Returns the cached Settings singleton
- get_event_source: Returns the click event source used for attribution
- SettingsDep / EventSourceDep: Annotated aliases

Usage:
    @router.post("/analyze-sale")
    async def analyze(
        request: AnalyzeSaleRequest,
        settings: SettingsDep,
        event_source: EventSourceDep,
    ) -> AnalysisResponse:
        ...
"""

from typing import Annotated

from fastapi import Depends

from backend.core.config import Settings, get_settings
from backend.services.event_store import ClickEventSource, PostgresClickEventSource


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can do:

        app.dependency_overrides[get_settings_dependency] = lambda: test_settings
    """
    return get_settings()


# =============================================================================
# Event Source Dependency
# =============================================================================

def get_event_source() -> ClickEventSource:
    """Return the click event source backing attribution runs."""
    return PostgresClickEventSource()


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]
EventSourceDep = Annotated[ClickEventSource, Depends(get_event_source)]
