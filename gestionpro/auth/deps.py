from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from gestionpro.db import connect
from gestionpro.errors import AuthenticationError, AuthorizationError, InvalidTokenError
from gestionpro.schema import ROLES

from .crud import get_user_by_id, public_user


_bearer = HTTPBearer(auto_error=False)


def _state(request: Request, name: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"app.state.{name} is not configured")
    return value


def extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> str | None:
    """Bearer header first, then the session cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    cfg = _state(request, "cfg")
    return request.cookies.get(cfg.AUTH_COOKIE_NAME) or None


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Dict[str, Any]:
    """Authenticate a request.

    Supports both:
      - Authorization: Bearer <jwt>
      - Cookie-based sessions (httpOnly `jwt` cookie set by /auth/login)

    The resolved public user is returned and also stored on
    `request.state.user` for handlers that read the request directly.
    """

    cfg = _state(request, "cfg")
    tokens = _state(request, "tokens")

    token = extract_token(request, credentials)
    if not token:
        raise AuthenticationError("Unauthorized. Please log in.")

    try:
        payload = tokens.verify(token)
    except InvalidTokenError:
        raise AuthenticationError("Invalid or expired token. Please log in again.")

    with connect(cfg.DB_DSN) as conn:
        row = get_user_by_id(conn, payload.user_id)
    if row is None:
        raise AuthenticationError("The user belonging to this token no longer exists.")

    user = public_user(row)
    if not user["active"]:
        raise AuthorizationError("Your account has been disabled.")

    request.state.user = user
    return user


def authorize(*roles: str) -> Callable[..., Dict[str, Any]]:
    """Build a dependency that admits only users whose role is in `roles`.

    Always runs after get_current_user, so an unauthenticated request is
    rejected with 401 before the role is ever looked at.
    """
    allowed = frozenset(roles)
    unknown = allowed.difference(ROLES)
    if not allowed or unknown:
        raise ValueError(f"invalid_roles: {sorted(unknown) or 'none given'}")

    def _check(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if user.get("role") not in allowed:
            raise AuthorizationError()
        return user

    return _check


require_admin = authorize("Admin")
