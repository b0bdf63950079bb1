"""Token codec and password hashing."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from enum import StrEnum
from typing import Any, Callable
from uuid import uuid4

import bcrypt
from jose import JWTError, jwt

from dam.core.constants import TokenType

logger = logging.getLogger(__name__)

# Claims that would leak credential material into a bearer token.
FORBIDDEN_CLAIMS = frozenset({"password", "password_hash", "hashed_password", "secret"})


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password using bcrypt."""
    password_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    try:
        password_bytes = password.encode("utf-8")
        hashed_bytes = hashed_password.encode("utf-8")
        return bcrypt.checkpw(password_bytes, hashed_bytes)
    except (ValueError, TypeError):
        return False


class TokenStatus(StrEnum):
    VALID = "valid"
    EXPIRED = "expired"
    INVALID = "invalid"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    """Signs and verifies access/refresh JWTs.

    Access and refresh tokens are signed with different keys so a leaked
    access token can never be replayed as a refresh token. Expiry is checked
    against ``clock`` rather than the library's wall clock, which lets tests
    move time forward.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        *,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh tokens must use different signing keys")
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self._clock = clock or _utcnow

    def _now(self) -> datetime:
        return self._clock()

    def _sign(self, claims: dict[str, Any], token_type: TokenType, secret: str, ttl: timedelta) -> str:
        leaked = FORBIDDEN_CLAIMS.intersection(claims)
        if leaked:
            raise ValueError(f"Refusing to sign credential material in claims: {sorted(leaked)}")
        if not claims.get("sub"):
            raise ValueError("Token claims must carry an identity in 'sub'")

        now = self._now()
        payload = dict(claims)
        payload.update({
            "type": token_type.value,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "jti": uuid4().hex,
        })
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def issue_access_token(self, claims: dict[str, Any]) -> str:
        """Create a short-lived access token."""
        return self._sign(claims, TokenType.ACCESS, self.access_secret, self.access_ttl)

    def issue_refresh_token(self, claims: dict[str, Any]) -> str:
        """Create a long-lived refresh token."""
        return self._sign(claims, TokenType.REFRESH, self.refresh_secret, self.refresh_ttl)

    def _inspect(self, token: str | None, key: str) -> tuple[TokenStatus, dict[str, Any] | None]:
        if not token:
            return TokenStatus.INVALID, None
        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_aud": False},
            )
        except JWTError:
            return TokenStatus.INVALID, None

        exp = claims.get("exp")
        if not isinstance(exp, (int, float)):
            return TokenStatus.INVALID, None
        if exp <= self._now().timestamp():
            return TokenStatus.EXPIRED, None
        return TokenStatus.VALID, claims

    def verify(self, token: str | None, key: str) -> dict[str, Any] | None:
        """Return the claims if the signature and expiry check out, else None."""
        status, claims = self._inspect(token, key)
        if status is not TokenStatus.VALID:
            logger.debug(f"Token verification failed: {status}")
            return None
        return claims

    def inspect_access(self, token: str | None) -> tuple[TokenStatus, dict[str, Any] | None]:
        """Classify an access token as valid, expired, or invalid."""
        status, claims = self._inspect(token, self.access_secret)
        if status is TokenStatus.VALID and claims.get("type") != TokenType.ACCESS:
            return TokenStatus.INVALID, None
        return status, claims

    def verify_access(self, token: str | None) -> dict[str, Any] | None:
        status, claims = self.inspect_access(token)
        return claims if status is TokenStatus.VALID else None

    def verify_refresh(self, token: str | None) -> dict[str, Any] | None:
        claims = self.verify(token, self.refresh_secret)
        if claims is None or claims.get("type") != TokenType.REFRESH:
            return None
        return claims

    @staticmethod
    def decode_unsafe(token: str | None) -> dict[str, Any] | None:
        """Read claims without checking the signature. Never use for trust decisions."""
        if not token:
            return None
        try:
            return jwt.get_unverified_claims(token)
        except JWTError:
            return None

    def seconds_until_expiry(self, token: str | None) -> int | None:
        claims = self.decode_unsafe(token)
        if not claims or not isinstance(claims.get("exp"), (int, float)):
            return None
        return int(claims["exp"] - self._now().timestamp())

    def is_expired(self, token: str | None) -> bool:
        remaining = self.seconds_until_expiry(token)
        return remaining is not None and remaining <= 0

    @staticmethod
    def extract_bearer(authorization: str | None) -> str | None:
        """Pull the token out of an ``Authorization: Bearer <token>`` header."""
        if not authorization or not authorization.startswith("Bearer "):
            return None
        token = authorization[len("Bearer "):].strip()
        return token or None
