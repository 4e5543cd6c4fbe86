import os
from dataclasses import dataclass
from typing import Optional

# Optional: load a local .env file if present.
try:
    from dotenv import load_dotenv

    load_dotenv()
except Exception:
    # If python-dotenv isn't installed or .env isn't present, that's fine.
    pass


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


def _env(name: str, default: str) -> str:
    return os.environ.get(name, default)


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    Every field reads the environment when the instance is built, so tests can
    set variables (or pass explicit values) and construct a fresh Config.

    IMPORTANT: JWT_SECRET must be provided via the environment or a .env file.
    The API refuses to start without it.
    """

    # -----------------
    # Core
    # -----------------
    # Preferred: GESTIONPRO_DATABASE_URL (or DATABASE_URL) for Postgres.
    # Fallback: a SQLite file path.
    DB_DSN: str = ""

    # development | production | test
    APP_ENV: str = ""

    # -----------------
    # Auth (JWT)
    # -----------------
    JWT_SECRET: str = ""
    JWT_EXPIRES_IN: str = ""  # "1h", "1d", "7d", or seconds

    # pbkdf2_sha256 work factor
    AUTH_PASSWORD_ROUNDS: int = 0

    # Bootstrap first admin user if users table is empty (disabled when blank)
    AUTH_BOOTSTRAP_ADMIN_NOM: str = ""
    AUTH_BOOTSTRAP_ADMIN_EMAIL: str = ""
    AUTH_BOOTSTRAP_ADMIN_PASSWORD: str = ""

    # Cookie-based browser sessions
    # - The API sets an httpOnly cookie on /auth/login and /auth/register
    # - The API reads the token from either Authorization: Bearer ... OR the cookie
    AUTH_COOKIE_NAME: str = ""
    AUTH_COOKIE_DOMAIN: str | None = None
    AUTH_COOKIE_PATH: str = ""
    AUTH_COOKIE_SAMESITE: str = ""  # lax|strict|none

    # If AUTH_COOKIE_SECURE is unset, cookies are Secure in production only.
    AUTH_COOKIE_SECURE: bool | None = None

    # -----------------
    # CORS (development)
    # -----------------
    CORS_ALLOW_ORIGINS: str = ""

    def __post_init__(self) -> None:
        defaults = {
            "DB_DSN": (
                os.environ.get("GESTIONPRO_DATABASE_URL")
                or os.environ.get("DATABASE_URL")
                or os.environ.get("GESTIONPRO_DB_PATH", "./gestionpro.sqlite")
            ),
            "APP_ENV": _env("APP_ENV", "development").strip().lower(),
            "JWT_SECRET": _env("JWT_SECRET", ""),
            "JWT_EXPIRES_IN": _env("JWT_EXPIRES_IN", "1d"),
            "AUTH_PASSWORD_ROUNDS": int(_env("AUTH_PASSWORD_ROUNDS", "29000")),
            "AUTH_BOOTSTRAP_ADMIN_NOM": _env("AUTH_BOOTSTRAP_ADMIN_NOM", "Administrateur"),
            "AUTH_BOOTSTRAP_ADMIN_EMAIL": _env("AUTH_BOOTSTRAP_ADMIN_EMAIL", ""),
            "AUTH_BOOTSTRAP_ADMIN_PASSWORD": _env("AUTH_BOOTSTRAP_ADMIN_PASSWORD", ""),
            "AUTH_COOKIE_NAME": _env("AUTH_COOKIE_NAME", "jwt"),
            "AUTH_COOKIE_PATH": _env("AUTH_COOKIE_PATH", "/"),
            "AUTH_COOKIE_SAMESITE": _env("AUTH_COOKIE_SAMESITE", "strict"),
            "CORS_ALLOW_ORIGINS": _env(
                "CORS_ALLOW_ORIGINS",
                "http://localhost:5173,http://127.0.0.1:5173",
            ),
        }
        # Explicit constructor values win over the environment.
        for name, value in defaults.items():
            current = getattr(self, name)
            if current in ("", 0):
                object.__setattr__(self, name, value)

        if self.AUTH_COOKIE_DOMAIN is None:
            domain = (os.environ.get("AUTH_COOKIE_DOMAIN") or "").strip() or None
            object.__setattr__(self, "AUTH_COOKIE_DOMAIN", domain)

        if self.AUTH_COOKIE_SECURE is None:
            secure = _env_bool("AUTH_COOKIE_SECURE", None)
            if secure is None:
                secure = self.is_production
            object.__setattr__(self, "AUTH_COOKIE_SECURE", secure)

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"


def load_config() -> Config:
    return Config()
