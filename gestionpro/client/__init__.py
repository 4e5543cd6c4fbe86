"""Client side of the auth core: session store, API client and route guard.

Typical wiring::

    api = ApiClient("https://gestionpro.example.com/api")
    store = SessionStore(api, FileTokenStorage("~/.gestionpro/token"))
    store.initialize()
    decision = resolve_route("/ventes", store.state)
"""

from .api import ApiClient, ApiError
from .guard import GuardAction, GuardDecision, guard, resolve_route
from .session import SessionState, SessionStatus, SessionStore
from .storage import FileTokenStorage, MemoryTokenStorage

__all__ = [
    "ApiClient",
    "ApiError",
    "FileTokenStorage",
    "GuardAction",
    "GuardDecision",
    "guard",
    "MemoryTokenStorage",
    "resolve_route",
    "SessionState",
    "SessionStatus",
    "SessionStore",
]
