"""Account routes mounted under ``/api/v1/user``.

Signup and signin always answer 200 with a ``message``; the front end tells
outcomes apart by the exact text.  A successful signin also returns a bearer
token accepted by ``GET /api/v1/user/me``.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from animegen.api.deps import get_account_service, get_bearer_token
from animegen.api.models import CredentialsRequest
from animegen.core.accounts import AccountService

router = APIRouter(prefix="/api/v1/user", tags=["user"])


@router.post("/signup")
async def signup(
    req: CredentialsRequest,
    accounts: AccountService = Depends(get_account_service),
) -> dict:
    """Create an account.

    Returns:
        ``{"message": "user created successfully", "user": {...}}`` or
        ``{"message": "user already exists"}``.
    """
    return await accounts.signup(req.username, req.password)


@router.post("/signin")
async def signin(
    req: CredentialsRequest,
    accounts: AccountService = Depends(get_account_service),
) -> dict:
    """Check credentials and issue an access token.

    Returns:
        ``{"message": "user signed in successfully", "access_token": ...,
        "token_type": "bearer"}``, or a message naming why signin failed.
    """
    return await accounts.signin(req.username, req.password)


@router.get("/me")
async def me(
    token: str = Depends(get_bearer_token),
    accounts: AccountService = Depends(get_account_service),
) -> dict:
    """Return the profile of the account owning the bearer token."""
    account = await accounts.current_account(token)
    return account.to_dict()
