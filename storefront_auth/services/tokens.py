from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt

from storefront_auth.services.otp import utcnow

TOKEN_TYPE = "session"


class TokenError(ValueError):
    pass


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class SessionClaims:
    user_id: int
    is_admin: bool
    issued_at: datetime
    expires_at: datetime


class SessionIssuer:
    """Signs session JWTs binding a user id and its admin flag at issue time.

    The secret is process-wide; changing it invalidates every outstanding
    session.
    """

    def __init__(
        self,
        secret: str,
        ttl: timedelta,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if not secret:
            raise TokenError("JWT secret is not configured")
        self._secret = secret
        self._ttl = ttl
        self._algorithm = algorithm
        self._clock = clock

    def issue(self, user) -> IssuedToken:
        now = self._clock()
        expires_at = now + self._ttl
        payload = {
            "sub": str(user.id),
            "is_admin": bool(user.is_admin),
            "type": TOKEN_TYPE,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return IssuedToken(token=token, expires_at=expires_at)

    def verify(self, token: str) -> SessionClaims:
        if not token:
            raise TokenError("Token is missing")
        try:
            # Time claims are checked against our clock below, not the wall clock.
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["exp", "iat", "sub"],
                },
            )
        except jwt.InvalidTokenError as exc:
            raise TokenError("Invalid token") from exc
        if payload.get("type") != TOKEN_TYPE:
            raise TokenError("Invalid token type")
        expires_at = _from_timestamp(payload["exp"])
        if expires_at <= self._clock():
            raise TokenError("Token has expired")
        return SessionClaims(
            user_id=_parse_subject(payload),
            is_admin=payload.get("is_admin") is True,
            issued_at=_from_timestamp(payload["iat"]),
            expires_at=expires_at,
        )


def _from_timestamp(value) -> datetime:
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError) as exc:
        raise TokenError("Invalid token timestamp") from exc


def _parse_subject(payload: dict) -> int:
    subject = payload.get("sub")
    if not subject:
        raise TokenError("Token subject is missing")
    try:
        return int(subject)
    except (TypeError, ValueError) as exc:
        raise TokenError("Invalid token subject") from exc
