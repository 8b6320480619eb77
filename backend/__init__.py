"""
Sale Attribution Backend Package.

FastAPI service that attributes payment bot sale notifications to the ad
campaign and creative whose clicks best match the estimated click time.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, database, dependencies and error types
    - models: Pydantic schemas and enums
    - services: Parsing, click-time estimation, scoring and persistence
    - jobs: Daily Slack digest
    - sql: Parameterized SQL queries
"""

__version__ = "1.0.0"
