"""JWT issue/verify shared by the REST and WebSocket transports."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from pydantic import ValidationError

from app.errors import AuthRejected

from .schemas import Principal

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


class TokenService:
    """Signs and verifies bearer tokens with a shared secret.

    Args:
        secret_key: HMAC secret.
        algorithm: JWT algorithm (HS256 by default).
        expire_minutes: Lifetime of issued tokens.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 480):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expire_minutes = expire_minutes

    def issue(self, principal: Principal, expires_in: Optional[timedelta] = None) -> str:
        """Mint a token carrying ``{sub, id, name, role, email}``."""
        now = datetime.now(timezone.utc)
        lifetime = expires_in if expires_in is not None else timedelta(minutes=self._expire_minutes)
        claims = {
            "sub": principal.id,
            "id": principal.id,
            "name": principal.name,
            "role": principal.role.value,
            "email": principal.email,
            "iat": now,
            "exp": now + lifetime,
        }
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: Optional[str]) -> Principal:
        """Verify signature and expiry and return the identity claims.

        Raises:
            AuthRejected: If the token is missing, invalid or expired.
        """
        if not token:
            raise AuthRejected("Auth error (No token provided)")
        try:
            claims = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"require": ["exp", "id"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthRejected("Auth error (Token expired)")
        except jwt.InvalidTokenError as e:
            logger.debug("JWT decode failed: %s", e)
            raise AuthRejected("Auth error (Invalid token)")

        try:
            return Principal(
                id=str(claims["id"]),
                name=claims.get("name", ""),
                role=claims.get("role", "revisor"),
                email=claims.get("email", ""),
            )
        except ValidationError:
            raise AuthRejected("Auth error (Invalid token)")


def extract_bearer(authorization: Optional[str]) -> Optional[str]:
    """Pull the token out of an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):].strip() or None
