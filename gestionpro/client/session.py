"""Client-side session store.

Single source of truth for the client's auth state. Only the store's own
methods mutate it; views read immutable `SessionState` snapshots (directly
or through `subscribe`). Build one store per application (or per test) and
hand it to whatever needs it; there is no module-level instance.

Lifecycle:

- `initialize()` restores a persisted token by asking the server who it
  belongs to. Any failure (expired, invalid, user gone) purges the token.
- `login()` / `register()` persist the returned token on success and purge
  any stored token on failure, keeping the server's message in `error`.
- `logout()` is purely local: tokens are stateless, so dropping ours is
  enough. Operations already in flight finish quietly and their results are
  discarded.
- Any 401 seen by the API client calls `handle_unauthorized()`.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .api import ApiClient, ApiError
from .storage import TokenStorage


def _debug(msg: str) -> None:
    print(f"[client] {msg}")


class SessionStatus(str, Enum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True)
class SessionState:
    user: Optional[Dict[str, Any]] = None
    token: Optional[str] = None
    is_authenticated: bool = False
    is_loading: bool = False
    error: Optional[str] = None

    @property
    def status(self) -> SessionStatus:
        if self.is_loading:
            return SessionStatus.LOADING
        if self.is_authenticated:
            return SessionStatus.AUTHENTICATED
        return SessionStatus.UNAUTHENTICATED


Listener = Callable[[SessionState], None]


class SessionStore:
    def __init__(self, api: ApiClient, storage: TokenStorage) -> None:
        self._api = api
        self._storage = storage
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []

        # Bumped by logout(); results from older operations are dropped.
        self._generation = 0
        self._pending = 0

        self._user: Optional[Dict[str, Any]] = None
        self._token: Optional[str] = storage.get()
        self._error: Optional[str] = None
        # A stored token is unconfirmed until initialize() checks it.
        self._restoring = self._token is not None

        api.token_provider = self._current_token
        api.on_unauthorized = self.handle_unauthorized

    # -----------------------------
    # Reads
    # -----------------------------

    @property
    def state(self) -> SessionState:
        with self._lock:
            return SessionState(
                user=dict(self._user) if self._user is not None else None,
                token=self._token,
                is_authenticated=self._user is not None,
                is_loading=self._pending > 0 or self._restoring,
                error=self._error,
            )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a read-only observer; returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def _current_token(self) -> Optional[str]:
        with self._lock:
            return self._token

    def _notify(self) -> None:
        snapshot = self.state
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(snapshot)

    # -----------------------------
    # Internal transitions
    # -----------------------------

    def _begin(self) -> int:
        with self._lock:
            self._pending += 1
            generation = self._generation
        self._notify()
        return generation

    def _end(self) -> None:
        with self._lock:
            self._pending = max(0, self._pending - 1)

    def _clear_session(self, error: Optional[str] = None) -> None:
        # Caller holds the lock.
        self._storage.clear()
        self._token = None
        self._user = None
        self._restoring = False
        self._error = error

    def _run(self, call: Callable[[], Dict[str, Any]]) -> bool:
        """Run one auth round-trip and apply its token + user to the state."""
        generation = self._begin()
        try:
            try:
                body = call()
            except ApiError as e:
                with self._lock:
                    if generation == self._generation:
                        self._clear_session(e.message)
                return False

            data = body.get("data") or {}
            user = data.get("user")
            token = body.get("token")
            with self._lock:
                if generation != self._generation:
                    _debug("Discarding auth result that finished after logout")
                    return False
                if not user:
                    self._clear_session("Malformed server response.")
                    return False
                if token:
                    self._storage.set(token)
                    self._token = token
                self._user = user
                self._restoring = False
                self._error = None
            return True
        finally:
            self._end()
            self._notify()

    # -----------------------------
    # Actions
    # -----------------------------

    def initialize(self) -> SessionState:
        """Validate a persisted token against the server, if there is one."""
        if self._current_token() is None:
            with self._lock:
                self._restoring = False
            self._notify()
            return self.state

        self._run(self._api.get_current_user)
        return self.state

    def login(self, credentials: Dict[str, Any]) -> SessionState:
        self._run(lambda: self._api.login(credentials))
        return self.state

    def register(self, user_data: Dict[str, Any]) -> SessionState:
        self._run(lambda: self._api.register(user_data))
        return self.state

    def logout(self) -> SessionState:
        with self._lock:
            self._generation += 1
            self._clear_session()
        self._notify()
        return self.state

    def handle_unauthorized(self) -> None:
        """Global reaction to any 401: drop the token and the user."""
        with self._lock:
            if self._token is None and self._user is None:
                return
            self._clear_session(self._error)
        self._notify()

    def reset_error(self) -> None:
        with self._lock:
            self._error = None
        self._notify()
