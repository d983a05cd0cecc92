"""Shared service dependencies for the route handlers.

The application lifespan builds every long-lived service once and stores it
on ``app.state``.  The functions here hand those services to route handlers
through ``Depends`` so tests can replace any of them with
``app.dependency_overrides``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from animegen.core.accounts import AccountService, CredentialStore
from animegen.core.errors import AuthenticationError
from animegen.core.orchestrator import GenerationOrchestrator
from animegen.core.styles import StyleCatalog

bearer_scheme = HTTPBearer(auto_error=False)


def get_catalog(request: Request) -> StyleCatalog:
    return request.app.state.catalog


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    return request.app.state.orchestrator


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.session_factory() as session:
        yield session


def get_account_service(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> AccountService:
    return AccountService(
        CredentialStore(session),
        request.app.state.password_hasher,
        request.app.state.token_issuer,
    )


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """Return the bearer token from the ``Authorization`` header.

    Raises:
        AuthenticationError: If the header is missing or not a bearer token.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authenticated")
    return credentials.credentials
