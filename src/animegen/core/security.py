"""Password hashing and access tokens.

Passwords are hashed with bcrypt through passlib.  The cost factor comes
from configuration (10 by default).

Signin issues a signed JWT so that a successful login actually establishes
an authenticated identity.  Tokens carry the account id in ``sub`` and the
username, and expire after ``access_token_expire_minutes``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from animegen.core.errors import AuthenticationError


class PasswordHasher:
    """bcrypt hashing with a fixed cost factor."""

    def __init__(self, rounds: int = 10) -> None:
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        """Hash plain password with bcrypt"""
        return self._context.hash(password)

    def verify(self, password: str, hashed_password: str) -> bool:
        """Verify plain password against hashed password"""
        return self._context.verify(password, hashed_password)


class TokenIssuer:
    """Creates and validates HMAC-signed access tokens."""

    def __init__(self, secret: str, *, algorithm: str = "HS256", expire_minutes: int = 60) -> None:
        self._secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def create_access_token(self, account_id: int, username: str) -> str:
        expire = datetime.now(timezone.utc) + timedelta(minutes=self.expire_minutes)
        payload = {"sub": str(account_id), "username": username, "exp": expire, "type": "access"}
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def decode(self, token: str) -> dict[str, Any]:
        """Validate *token* and return its claims.

        Raises:
            AuthenticationError: If the signature is invalid, the token has
                expired, or it is not an access token.
        """
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except JWTError as exc:
            raise AuthenticationError("Invalid or expired token") from exc
        if claims.get("type") != "access" or "sub" not in claims:
            raise AuthenticationError("Invalid or expired token")
        return claims
