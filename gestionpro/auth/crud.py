from __future__ import annotations

import re
from typing import Any, Dict, Optional

from gestionpro.config import Config
from gestionpro.db import connect, is_unique_violation
from gestionpro.errors import DuplicateError, ValidationError
from gestionpro.schema import ROLES
from gestionpro.util.time import utcnow_iso

from .security import dummy_hash, hash_password, is_password_hash, verify_password


DEFAULT_ROLE = "Vendeur"
MIN_PASSWORD_LENGTH = 6

_EMAIL_RE = re.compile(r"^[\w\-\.]+@([\w-]+\.)+[\w-]{2,4}$", re.ASCII)

# Columns returned to callers unless the hash is explicitly requested.
_PUBLIC_COLUMNS = "user_id, nom, email, role, active, created_at, updated_at"


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def public_user(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    d = dict(row)
    d.pop("password_hash", None)
    d["active"] = bool(int(d.get("active") or 0))
    return d


def _validate_role(role: str | None) -> str:
    r = (role or "").strip() or DEFAULT_ROLE
    if r not in ROLES:
        raise ValidationError(f'The role "{r}" is not supported.')
    return r


def _validate_password(password: str | None) -> str:
    if not password:
        raise ValidationError("A password is required.")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"The password must contain at least {MIN_PASSWORD_LENGTH} characters."
        )
    return password


def get_user_by_email(conn: Any, email: str, *, with_password: bool = False) -> Optional[Any]:
    e = normalize_email(email)
    if not e:
        return None
    cols = "*" if with_password else _PUBLIC_COLUMNS
    return conn.execute(
        f"SELECT {cols} FROM users WHERE email=?",
        (e,),
    ).fetchone()


def get_user_by_id(conn: Any, user_id: int) -> Optional[Any]:
    return conn.execute(
        f"SELECT {_PUBLIC_COLUMNS} FROM users WHERE user_id=?",
        (int(user_id),),
    ).fetchone()


def verify_user_credentials(conn: Any, email: str, password: str) -> Optional[Any]:
    """Return the user row when email and password match, else None.

    Callers must not tell the two failure cases apart.
    """
    row = get_user_by_email(conn, email, with_password=True)
    if row is None:
        # Same pbkdf2 cost as a wrong password.
        verify_password(password, dummy_hash())
        return None
    if not verify_password(password, str(row["password_hash"])):
        return None
    return row


def create_user(
    conn: Any,
    *,
    nom: str,
    email: str,
    password: str,
    role: str | None = None,
) -> Dict[str, Any]:
    n = (nom or "").strip()
    if not n:
        raise ValidationError("The user's full name is required.")
    e = normalize_email(email)
    if not e:
        raise ValidationError("An email address is required.")
    if not _EMAIL_RE.match(e):
        raise ValidationError("Please provide a valid email address.")
    pw = _validate_password(password)
    r = _validate_role(role)

    now = utcnow_iso()
    # Uniqueness is decided by the UNIQUE index, so two concurrent inserts
    # for one email cannot both succeed.
    try:
        row = conn.execute(
            f"""
            INSERT INTO users (nom, email, password_hash, role, active, created_at, updated_at)
            VALUES (?,?,?,?,1,?,?)
            RETURNING {_PUBLIC_COLUMNS}
            """,
            (n, e, hash_password(pw), r, now, now),
        ).fetchone()
    except Exception as exc:
        if is_unique_violation(exc):
            raise DuplicateError() from exc
        raise

    assert row is not None
    return public_user(row)


def update_user(
    conn: Any,
    user_id: int,
    *,
    nom: str | None = None,
    role: str | None = None,
    password: str | None = None,
) -> Optional[Dict[str, Any]]:
    """Update profile fields; returns the public user or None if missing.

    The password column is only written (and hashed) when a new password is
    given, so updating other fields never re-hashes the stored hash.
    """
    fields: list[tuple[str, Any]] = []
    if nom is not None:
        n = nom.strip()
        if not n:
            raise ValidationError("The user's full name is required.")
        fields.append(("nom", n))
    if role is not None:
        fields.append(("role", _validate_role(role)))
    if password is not None:
        if is_password_hash(password):
            raise ValidationError("Refusing to store a pre-hashed password.")
        fields.append(("password_hash", hash_password(_validate_password(password))))

    if fields:
        fields.append(("updated_at", utcnow_iso()))
        sets = ", ".join([f"{k}=?" for k, _ in fields])
        params = [v for _, v in fields] + [int(user_id)]
        conn.execute(f"UPDATE users SET {sets} WHERE user_id=?", params)

    row = get_user_by_id(conn, user_id)
    return public_user(row) if row is not None else None


def set_user_active(conn: Any, user_id: int, active: bool) -> Optional[Dict[str, Any]]:
    """Activate or deactivate a user. Deactivation is the only removal path."""
    conn.execute(
        "UPDATE users SET active=?, updated_at=? WHERE user_id=?",
        (1 if active else 0, utcnow_iso(), int(user_id)),
    )
    row = get_user_by_id(conn, user_id)
    return public_user(row) if row is not None else None


def bootstrap_admin_if_needed(cfg: Config) -> Optional[Dict[str, Any]]:
    """Create the first admin user if the users table is empty.

    Controlled via environment variables:

    - AUTH_BOOTSTRAP_ADMIN_EMAIL
    - AUTH_BOOTSTRAP_ADMIN_PASSWORD
    - AUTH_BOOTSTRAP_ADMIN_NOM (default: Administrateur)

    Nothing is created when the email or password is blank.
    """

    email = normalize_email(cfg.AUTH_BOOTSTRAP_ADMIN_EMAIL)
    password = cfg.AUTH_BOOTSTRAP_ADMIN_PASSWORD
    if not email or not password:
        return None

    with connect(cfg.DB_DSN) as conn:
        n = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"]
        if int(n) > 0:
            return None

        u = create_user(
            conn,
            nom=cfg.AUTH_BOOTSTRAP_ADMIN_NOM,
            email=email,
            password=password,
            role="Admin",
        )
        _debug(f"Bootstrapped initial admin user: email={u['email']}")
        return u
