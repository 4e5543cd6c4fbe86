"""Session tokens: signed, time-limited JWTs asserting a user id.

The server keeps no token table. A token carries authority only while its
signature verifies against the configured secret and its `exp` is in the
future; logging out is a client-side operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

from gestionpro.errors import ExpiredTokenError, InsecureSecretError, InvalidTokenError
from gestionpro.util.time import parse_duration, utcnow


_JWT_ALG = "HS256"

# Values shipped in sample .env files; a deployment must never sign with these.
PLACEHOLDER_SECRETS = frozenset(
    {
        "VOTRE_SECRET_JWT_TRES_COMPLEXE_ET_DIFFICILE_A_DEVINER",
        "change_me",
        "changeme",
        "dev_change_me",
        "secret",
    }
)


def ensure_secure_secret(secret: str | None) -> str:
    """Return `secret` or raise InsecureSecretError if unset or a placeholder."""
    s = (secret or "").strip()
    if not s:
        raise InsecureSecretError("JWT_SECRET is not set")
    if s in PLACEHOLDER_SECRETS:
        raise InsecureSecretError("JWT_SECRET uses a placeholder value")
    return s


@dataclass(frozen=True)
class TokenPayload:
    user_id: int
    issued_at: datetime
    expires_at: datetime


class TokenService:
    def __init__(self, secret: str, expires_in: str | int | timedelta = "1d") -> None:
        self._secret = ensure_secure_secret(secret)
        self.expires_in = parse_duration(expires_in)

    @property
    def max_age_seconds(self) -> int:
        return int(self.expires_in.total_seconds())

    def issue(self, user_id: int, *, now: datetime | None = None) -> str:
        iat = now or utcnow()
        exp = iat + self.expires_in
        payload: Dict[str, Any] = {
            "sub": str(int(user_id)),
            "iat": int(iat.timestamp()),
            "exp": int(exp.timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=_JWT_ALG)

    def verify(self, token: str) -> TokenPayload:
        if not token:
            raise InvalidTokenError()
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_JWT_ALG],
                options={"require": ["sub", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError()
        except jwt.InvalidTokenError:
            raise InvalidTokenError()

        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError):
            raise InvalidTokenError()

        return TokenPayload(
            user_id=user_id,
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )
