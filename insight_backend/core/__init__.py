"""
Core infrastructure package for the Team Insights backend.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL database connectivity via asyncpg
- FastAPI dependency injection utilities

Re-exports key components so other modules can write:

    from insight_backend.core import get_settings, init_db, InsightServiceDep

Components Re-exported:
    Settings: Pydantic settings class with all configuration parameters
    get_settings: Function returning the cached Settings singleton
    init_db / close_db / get_db_pool: Connection pool lifecycle
    get_settings_dependency / get_insight_service: FastAPI dependencies
    SettingsDep / InsightServiceDep: Annotated dependency aliases
"""

# =============================================================================
# Re-exports from insight_backend.core.config
# =============================================================================
from insight_backend.core.config import Settings, get_settings

# =============================================================================
# Re-exports from insight_backend.core.database
# =============================================================================
from insight_backend.core.database import (
    DatabaseNotConfiguredError,
    close_db,
    get_db_pool,
    init_db,
)

# =============================================================================
# Re-exports from insight_backend.core.dependencies
# =============================================================================
from insight_backend.core.dependencies import (
    InsightServiceDep,
    SettingsDep,
    get_insight_service,
    get_settings_dependency,
)

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Database pool lifecycle (from database.py)
    'DatabaseNotConfiguredError',
    'init_db',
    'close_db',
    'get_db_pool',
    # FastAPI dependency injection (from dependencies.py)
    'get_settings_dependency',
    'get_insight_service',
    'SettingsDep',
    'InsightServiceDep',
]
