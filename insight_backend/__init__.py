"""
Team Insights Backend Package.

FastAPI service layer that turns athlete and team performance data into
short coaching insights, using a chat-completion model when available and
deterministic fallback content when not.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, database, and dependencies
    - models: Pydantic schemas and enums
    - services: Business logic services
    - sql: Parameterized SQL queries
"""

__version__ = "1.0.0"
