"""Database package."""

from .connection import (
    close_database,
    db_healthcheck,
    get_async_database_url,
    get_session,
    get_session_factory,
)

__all__ = [
    "close_database",
    "db_healthcheck",
    "get_async_database_url",
    "get_session",
    "get_session_factory",
]
