from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .session import SessionState, SessionStatus


LOGIN_PATH = "/login"

PUBLIC_ROUTES = frozenset({"/login", "/register"})

# Everything under the main layout; new business pages are added here.
PROTECTED_ROUTES = frozenset(
    {
        "/",
        "/ventes",
        "/clients",
        "/produits",
        "/comptabilite",
        "/rapports",
        "/parametres",
    }
)


class GuardAction(str, Enum):
    LOADING = "loading"
    REDIRECT = "redirect"
    RENDER = "render"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class GuardDecision:
    action: GuardAction
    path: Optional[str] = None
    # True means replace the history entry, so "back" cannot loop to the guard.
    replace: bool = False


def guard(state: SessionState) -> GuardDecision:
    """Decide what a protected route shows for the current session."""
    status = state.status
    if status is SessionStatus.LOADING:
        return GuardDecision(GuardAction.LOADING)
    if status is SessionStatus.AUTHENTICATED:
        return GuardDecision(GuardAction.RENDER)
    return GuardDecision(GuardAction.REDIRECT, path=LOGIN_PATH, replace=True)


def _normalize(path: str) -> str:
    p = "/" + (path or "").split("?", 1)[0].split("#", 1)[0].strip("/")
    return p


def resolve_route(path: str, state: SessionState) -> GuardDecision:
    p = _normalize(path)
    if p in PUBLIC_ROUTES:
        return GuardDecision(GuardAction.RENDER, path=p)
    if p in PROTECTED_ROUTES:
        decision = guard(state)
        if decision.action is GuardAction.RENDER:
            return GuardDecision(GuardAction.RENDER, path=p)
        return decision
    return GuardDecision(GuardAction.NOT_FOUND, path=p)
