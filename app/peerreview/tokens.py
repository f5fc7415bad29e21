"""
Session token issuance.

Tokens are compact HS256 JWTs carrying the caller's payload under `data`,
an optional `role`, and the standard `exp`/`iss` claims. The signing secret
is looked up on every call so a rotated JWT_SECRET takes effect without a
restart. Verification happens in whichever consumer checks requests.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt
from jose.exceptions import JOSEError

from app.peerreview.config import current_jwt_issuer, current_jwt_secret
from app.peerreview.errors import SigningError

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
DEFAULT_ISSUER = "test"
DEFAULT_TTL = timedelta(seconds=15000)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    def __init__(
        self,
        secret_getter: Callable[[], str] = current_jwt_secret,
        *,
        issuer: str = DEFAULT_ISSUER,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.secret_getter = secret_getter
        self.issuer = issuer
        self.ttl = ttl
        self.clock = clock

    def claims_for(self, payload: Any, role: str | None = None) -> dict[str, Any]:
        claims: dict[str, Any] = {"data": payload}
        if role:
            claims["role"] = role
        claims["exp"] = int((self.clock() + self.ttl).timestamp())
        claims["iss"] = self.issuer
        return claims

    def issue(self, payload: Any, role: str | None = None) -> str:
        """
        Sign `payload` into a token.

        Raises:
            SigningError: secret missing, payload missing or not JSON
                serializable, or the signer failed. Logged before raising.
        """
        try:
            if payload is None:
                raise SigningError("token payload is required")
            secret = self.secret_getter()
            if not secret:
                raise SigningError("JWT_SECRET is not configured")
            try:
                return jwt.encode(self.claims_for(payload, role), secret, algorithm=JWT_ALGORITHM)
            except (JOSEError, TypeError, ValueError) as e:
                raise SigningError(f"could not sign token: {e}") from e
        except SigningError as e:
            logger.error("Something went wrong generating JWT: %s", e)
            raise


def generate_jwt(payload: Any, role: str | None = None, *, issuer: str | None = None) -> str:
    """Sign with the process-wide secret, issuer (JWT_ISSUER) and default lifetime."""
    return TokenIssuer(issuer=issuer or current_jwt_issuer()).issue(payload, role)
