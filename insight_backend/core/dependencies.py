"""
FastAPI dependency injection module for the Team Insights backend.

Provides reusable dependencies for configuration access and for the
process-wide InsightService built in the application lifespan.

Key Dependencies Provided:
- get_settings_dependency: Returns the cached Settings singleton
- get_insight_service: Returns the InsightService stored on app.state
- SettingsDep: Type alias for injecting Settings into endpoints
- InsightServiceDep: Type alias for injecting the InsightService into endpoints

Usage Examples:
    @router.get("/insights/status")
    async def status(service: InsightServiceDep) -> ServiceStatus:
        return service.status()

In tests, either override a dependency:

    app.dependency_overrides[get_insight_service] = lambda: fake_service

or place a service on `app.state.insight_service` directly.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from insight_backend.core.config import Settings, get_settings
from insight_backend.services.insight_service import InsightService


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can replace it through
    app.dependency_overrides.
    """
    return get_settings()


# =============================================================================
# Insight Service Dependency
# =============================================================================

def get_insight_service(request: Request) -> InsightService:
    """
    Return the InsightService created during application startup.

    Raises:
        HTTPException 503: If the application lifespan has not built one.
    """
    service = getattr(request.app.state, "insight_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Insight service is not ready")
    return service


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

# Usage: async def endpoint(settings: SettingsDep)
SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

# Usage: async def endpoint(service: InsightServiceDep)
InsightServiceDep = Annotated[InsightService, Depends(get_insight_service)]
