"""User accounts: ORM model, credential store and account service.

Outcomes of signup and signin are reported as message strings rather than
HTTP errors; the front end switches on the exact text.  The messages are
module constants so both sides of that contract live in one place.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import Integer, String, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column
from starlette.concurrency import run_in_threadpool

from animegen.core.database import Base
from animegen.core.errors import AuthenticationError
from animegen.core.security import PasswordHasher, TokenIssuer

logger = logging.getLogger(__name__)

USER_EXISTS = "user already exists"
USER_CREATED = "user created successfully"
USER_CREATE_FAILED = "internal error creating user"
USER_NOT_FOUND = "user does not exist"
INCORRECT_PASSWORD = "incorrect password"
SIGNED_IN = "user signed in successfully"


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(150), unique=True, index=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    images: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def to_dict(self) -> dict[str, Any]:
        """Public view of the account.  The password hash is never included."""
        return {"id": self.id, "username": self.username, "images": self.images}


class CredentialStore:
    """Lookup and creation of accounts within one database session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_username(self, username: str) -> Account | None:
        result = await self._session.execute(select(Account).where(Account.username == username))
        return result.scalar_one_or_none()

    async def find_by_id(self, account_id: int) -> Account | None:
        return await self._session.get(Account, account_id)

    async def create(self, username: str, password_hash: str) -> Account:
        """Insert a new account with a zeroed usage counter.

        Raises:
            IntegrityError: If the username was taken concurrently.
            SQLAlchemyError: On any other database failure.
        """
        account = Account(username=username, password=password_hash, images=0)
        self._session.add(account)
        try:
            await self._session.commit()
        except SQLAlchemyError:
            await self._session.rollback()
            raise
        await self._session.refresh(account)
        return account


class AccountService:
    """Signup, signin and token resolution on top of a :class:`CredentialStore`."""

    def __init__(self, store: CredentialStore, hasher: PasswordHasher, tokens: TokenIssuer) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens

    async def signup(self, username: str, password: str) -> dict[str, Any]:
        if await self.store.find_by_username(username) is not None:
            return {"message": USER_EXISTS}

        # bcrypt is CPU bound; keep it off the event loop.
        password_hash = await run_in_threadpool(self.hasher.hash, password)

        try:
            account = await self.store.create(username, password_hash)
        except IntegrityError:
            logger.info(f"Signup raced with an existing account: {username}")
            return {"message": USER_EXISTS}
        except SQLAlchemyError:
            logger.exception(f"Failed to create account {username}")
            return {"message": USER_CREATE_FAILED}

        logger.info(f"Created account {account.id} ({username})")
        return {"message": USER_CREATED, "user": account.to_dict()}

    async def signin(self, username: str, password: str) -> dict[str, Any]:
        account = await self.store.find_by_username(username)
        if account is None:
            return {"message": USER_NOT_FOUND}

        matches = await run_in_threadpool(self.hasher.verify, password, account.password)
        if not matches:
            return {"message": INCORRECT_PASSWORD}

        return {
            "message": SIGNED_IN,
            "access_token": self.tokens.create_access_token(account.id, account.username),
            "token_type": "bearer",
        }

    async def current_account(self, token: str) -> Account:
        """Resolve an access token to its account.

        Raises:
            AuthenticationError: If the token is invalid or the account no
                longer exists.
        """
        claims = self.tokens.decode(token)
        try:
            account_id = int(claims["sub"])
        except ValueError as exc:
            raise AuthenticationError("Invalid or expired token") from exc

        account = await self.store.find_by_id(account_id)
        if account is None:
            raise AuthenticationError("Invalid or expired token")
        return account
