"""
FastAPI application entry point for the Team Insights API.

Configures logging and CORS, builds the process-wide insight service (one rate
limiter, one cache, one model client) during startup, and registers the API
routers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from insight_backend.api.insights import router as insights_router
from insight_backend.core.config import Settings, get_settings
from insight_backend.core.database import init_db, close_db
from insight_backend.services.insight_cache import InsightCache
from insight_backend.services.insight_service import InsightService
from insight_backend.services.llm_client import OpenAIChatClient
from insight_backend.services.rate_limiter import RateLimiter

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_insight_service(settings: Settings) -> InsightService:
    """Construct the insight service and its collaborators from settings."""
    rate_limiter = RateLimiter(
        min_interval_seconds=settings.insights_min_request_interval_seconds,
        window_seconds=settings.insights_rate_limit_window_seconds,
        max_requests=settings.insights_max_requests_per_window,
    )
    cache = InsightCache(ttl_seconds=settings.insights_cache_ttl_seconds)
    client = OpenAIChatClient(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        temperature=settings.insights_temperature,
        max_tokens=settings.insights_max_tokens,
    )
    return InsightService(
        client=client,
        rate_limiter=rate_limiter,
        cache=cache,
        default_model=settings.insights_default_model,
        request_timeout_seconds=settings.insights_request_timeout_seconds,
        debounce_seconds=settings.insights_debounce_seconds,
        default_confidence=settings.insights_default_confidence,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown events.

    On startup:
        - Initialize database connection pool
        - Build the insight service and start the cache sweeper

    On shutdown:
        - Cancel running insight requests and stop the sweeper
        - Close the model client and the database connection pool
    """
    # Startup
    logger.info("Team Insights API starting")
    settings = get_settings()
    try:
        await init_db()
        logger.info("Database connection pool initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        # Continue startup even if DB fails - /insights/generate does not need it

    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; insights will use fallback content")

    service = build_insight_service(settings)
    service.cache.start_sweeper()
    app.state.insight_service = service

    yield

    # Shutdown
    logger.info("Team Insights API shutting down")
    await service.shutdown()
    await service.cache.stop_sweeper()
    if isinstance(service.client, OpenAIChatClient):
        await service.client.close()
    try:
        await close_db()
        logger.info("Database connection pool closed")
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


# Create FastAPI application
app = FastAPI(
    title="Team Insights API",
    version="1.0.0",
    description=(
        "FastAPI backend that generates coaching insights from athlete and "
        "team performance data, with rate limiting, caching and fallback content."
    ),
    lifespan=lifespan,
)

# Configure CORS middleware for the dashboard front-end
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(insights_router, tags=["insights"])  # Has its own /insights prefix


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancer probes.

    Returns:
        Dict with status 'healthy'
    """
    return {"status": "healthy"}


@app.get("/")
async def root():
    """
    Root endpoint providing API information.

    Returns:
        Dict with API name and version
    """
    return {
        "name": "Team Insights API",
        "version": "1.0.0",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "insight_backend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
