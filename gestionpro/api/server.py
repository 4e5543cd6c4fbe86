from __future__ import annotations

import traceback
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from gestionpro import __version__
from gestionpro.auth import get_current_user, require_admin
from gestionpro.auth.crud import (
    bootstrap_admin_if_needed,
    create_user,
    get_user_by_id,
    public_user,
    set_user_active,
    update_user,
    verify_user_credentials,
)
from gestionpro.auth.security import configure_hasher
from gestionpro.auth.tokens import TokenService
from gestionpro.config import Config, load_config
from gestionpro.db import connect, init_db
from gestionpro.errors import (
    AuthenticationError,
    FeatureNotImplementedError,
    GestionProError,
    InternalError,
    NotFoundError,
    ValidationError,
)


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


BAD_CREDENTIALS = "Incorrect email or password."

router = APIRouter(prefix="/api")


# -----------------------------
# Error rendering
# -----------------------------


def _error_body(status_code: int, message: str) -> Dict[str, Any]:
    return {"status": "fail" if status_code < 500 else "error", "message": message}


async def _app_error_handler(request: Request, exc: GestionProError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.status_code, exc.message),
        headers=headers,
    )


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=_error_body(400, "Invalid request body."))


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        message = f"Route not found - {request.url.path}"
    else:
        message = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.status_code, message))


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    cfg: Config = request.app.state.cfg
    tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    _debug(f"Unhandled error on {request.method} {request.url.path}:\n{tb}")
    err = InternalError()
    body = _error_body(err.status_code, err.message)
    # Stack traces never leave the process outside development.
    if cfg.is_development:
        body["stack"] = tb
    return JSONResponse(status_code=500, content=body)


# -----------------------------
# Auth
# -----------------------------


def _set_auth_cookie(response: Response, *, token: str, cfg: Config, max_age: int) -> None:
    """Mirror the session token as an httpOnly cookie for browser clients."""
    samesite = (cfg.AUTH_COOKIE_SAMESITE or "strict").lower()
    # Browsers require Secure when SameSite=None
    secure = True if samesite == "none" else bool(cfg.AUTH_COOKIE_SECURE)
    response.set_cookie(
        key=cfg.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite=samesite,
        secure=secure,
        max_age=max_age,
        path=cfg.AUTH_COOKIE_PATH,
        domain=cfg.AUTH_COOKIE_DOMAIN,
    )


def _clear_auth_cookie(response: Response, cfg: Config) -> None:
    response.delete_cookie(key=cfg.AUTH_COOKIE_NAME, path=cfg.AUTH_COOKIE_PATH, domain=cfg.AUTH_COOKIE_DOMAIN)


def _send_token(request: Request, response: Response, user: Dict[str, Any]) -> Dict[str, Any]:
    cfg: Config = request.app.state.cfg
    tokens: TokenService = request.app.state.tokens
    token = tokens.issue(int(user["user_id"]))
    _set_auth_cookie(response, token=token, cfg=cfg, max_age=tokens.max_age_seconds)
    return {"status": "success", "token": token, "data": {"user": user}}


class RegisterRequest(BaseModel):
    nom: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UpdateUserRequest(BaseModel):
    nom: Optional[str] = None
    role: Optional[str] = None
    active: Optional[bool] = None


@router.post("/auth/register", status_code=201)
def auth_register(payload: RegisterRequest, request: Request, response: Response) -> Dict[str, Any]:
    if not payload.nom or not payload.email or not payload.password:
        raise ValidationError("Please provide a name, an email and a password.")

    cfg: Config = request.app.state.cfg
    with connect(cfg.DB_DSN) as conn:
        user = create_user(
            conn,
            nom=payload.nom,
            email=payload.email,
            password=payload.password,
            role=payload.role,
        )
    _debug(f"Registered user_id={user['user_id']} role={user['role']}")
    return _send_token(request, response, user)


@router.post("/auth/login")
def auth_login(payload: LoginRequest, request: Request, response: Response) -> Dict[str, Any]:
    if not payload.email or not payload.password:
        raise ValidationError("Please provide your email and your password.")

    cfg: Config = request.app.state.cfg
    with connect(cfg.DB_DSN) as conn:
        row = verify_user_credentials(conn, payload.email, payload.password)
    if row is None:
        raise AuthenticationError(BAD_CREDENTIALS)

    return _send_token(request, response, public_user(row))


@router.get("/auth/me")
def auth_me(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return {"status": "success", "data": {"user": user}}


@router.post("/auth/logout")
def auth_logout(request: Request, response: Response) -> Dict[str, Any]:
    """Clear the browser session cookie. Tokens themselves stay valid until expiry."""
    _clear_auth_cookie(response, request.app.state.cfg)
    return {"status": "success"}


@router.post("/auth/forgot-password")
def auth_forgot_password() -> Dict[str, Any]:
    raise FeatureNotImplementedError()


@router.patch("/auth/reset-password/{token}")
def auth_reset_password(token: str) -> Dict[str, Any]:
    raise FeatureNotImplementedError()


# -----------------------------
# Admin: user management
# -----------------------------


@router.get("/admin/users/{user_id}")
def admin_get_user(
    user_id: int,
    request: Request,
    _admin: Dict[str, Any] = Depends(require_admin),
) -> Dict[str, Any]:
    with connect(request.app.state.cfg.DB_DSN) as conn:
        row = get_user_by_id(conn, user_id)
    if row is None:
        raise NotFoundError("User not found.")
    return {"status": "success", "data": {"user": public_user(row)}}


@router.patch("/admin/users/{user_id}")
def admin_update_user(
    user_id: int,
    payload: UpdateUserRequest,
    request: Request,
    _admin: Dict[str, Any] = Depends(require_admin),
) -> Dict[str, Any]:
    with connect(request.app.state.cfg.DB_DSN) as conn:
        user = update_user(conn, user_id, nom=payload.nom, role=payload.role)
        if user is None:
            raise NotFoundError("User not found.")
        if payload.active is not None:
            user = set_user_active(conn, user_id, payload.active)
    _debug(f"Admin user_id={_admin['user_id']} updated user_id={user_id}")
    return {"status": "success", "data": {"user": user}}


# -----------------------------
# Status
# -----------------------------


@router.get("/status")
def api_status() -> Dict[str, Any]:
    return {"status": "success", "message": "API online and operational."}


def create_app(cfg: Config | None = None) -> FastAPI:
    """Build the API.

    Refuses to start (InsecureSecretError) when JWT_SECRET is unset or a
    known placeholder, before any route is served, and (ValueError) when
    JWT_EXPIRES_IN is not a lifetime of at least one second. The password
    hasher settings are process-wide, so the last app built sets the rounds.
    """
    cfg = cfg or load_config()
    tokens = TokenService(cfg.JWT_SECRET, cfg.JWT_EXPIRES_IN)
    configure_hasher(cfg.AUTH_PASSWORD_ROUNDS)

    app = FastAPI(title="GestionPro API", version=__version__)
    app.state.cfg = cfg
    app.state.tokens = tokens

    # CORS is mainly needed for local development (Vite on :5173 -> API on :8000).
    cors_origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(GestionProError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok"}

    app.include_router(router)

    init_db(cfg.DB_DSN)
    bootstrap_admin_if_needed(cfg)

    return app
