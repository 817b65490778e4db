"""FastAPI dependencies."""

from __future__ import annotations

import secrets

from fastapi import Header

from filingscore.core.config import settings
from filingscore.core.exceptions import AuthenticationError
from filingscore.database.connection import get_session_factory
from filingscore.repositories import Repositories, build_orm_repositories


async def get_repositories() -> Repositories:
    """Repositories wired to the application database."""
    return build_orm_repositories(await get_session_factory())


async def require_internal_secret(
    x_internal_secret: str | None = Header(default=None, alias="X-Internal-Secret"),
) -> None:
    """Reject calls without the shared internal secret.

    With no secret configured every call is rejected.
    """
    expected = settings.internal_api_secret
    if not expected or not x_internal_secret:
        raise AuthenticationError()
    if not secrets.compare_digest(x_internal_secret, expected):
        raise AuthenticationError()
