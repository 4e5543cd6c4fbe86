from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import requests


def _debug(msg: str) -> None:
    print(f"[client] {msg}")


class ApiError(Exception):
    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


class ApiClient:
    """JSON client for the GestionPro API.

    Every request carries `Authorization: Bearer <token>` when
    `token_provider` returns a token, and every 401 response fires
    `on_unauthorized` before the error is raised, whichever call caused it.

    `http` is anything with a requests-style `request(method, url, **kw)`;
    it defaults to a `requests.Session`. Tests pass FastAPI's TestClient.
    """

    def __init__(
        self,
        base_url: str = "/api",
        *,
        http: Any = None,
        timeout: float = 30,
        token_provider: Callable[[], Optional[str]] | None = None,
        on_unauthorized: Callable[[], None] | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout
        self.token_provider = token_provider
        self.on_unauthorized = on_unauthorized

    def request(self, method: str, path: str, *, json: Any = None) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"

        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            r = self.http.request(method, url, json=json, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise ApiError(0, str(e)) from e

        if r.status_code == 401:
            _debug(f"401 on {method} {path}; the token may have expired")
            if self.on_unauthorized is not None:
                self.on_unauthorized()

        try:
            data = r.json() if r.text else {}
        except ValueError:
            data = {}

        if r.status_code >= 400:
            message = ""
            if isinstance(data, dict):
                message = str(data.get("message") or data.get("detail") or "")
            raise ApiError(r.status_code, message or f"HTTP {r.status_code}")

        return data if isinstance(data, dict) else {"data": data}

    def get(self, path: str) -> Dict[str, Any]:
        return self.request("GET", path)

    def post(self, path: str, json: Any = None) -> Dict[str, Any]:
        return self.request("POST", path, json=json)

    # -----------------------------
    # Auth endpoints
    # -----------------------------

    def register(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        return self.post("/auth/register", user_data)

    def login(self, credentials: Dict[str, Any]) -> Dict[str, Any]:
        return self.post("/auth/login", credentials)

    def get_current_user(self) -> Dict[str, Any]:
        return self.get("/auth/me")
