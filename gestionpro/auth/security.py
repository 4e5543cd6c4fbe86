from __future__ import annotations

import secrets

from passlib.context import CryptContext


DEFAULT_ROUNDS = 29000

_pwd = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
_dummy_hash: str | None = None


def configure_hasher(rounds: int = DEFAULT_ROUNDS) -> None:
    """Set the pbkdf2 work factor used for new hashes.

    Existing hashes keep verifying: the rounds are encoded in each hash.
    The context is process-wide: every app in the process hashes with the
    rounds of the last call.
    """
    global _pwd, _dummy_hash
    _pwd = CryptContext(
        schemes=["pbkdf2_sha256"],
        deprecated="auto",
        pbkdf2_sha256__rounds=max(1000, int(rounds)),
    )
    _dummy_hash = None


def hash_password(password: str) -> str:
    """Salted one-way hash; a fresh random salt is drawn on every call."""
    if not password:
        raise ValueError("password_blank")
    return _pwd.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    # passlib compares digests in constant time
    if not password or not password_hash:
        return False
    try:
        return _pwd.verify(password, password_hash)
    except (ValueError, TypeError):
        return False


def is_password_hash(value: str) -> bool:
    """True when `value` is already a hash this context produced."""
    if not value:
        return False
    return _pwd.identify(value) is not None


def dummy_hash() -> str:
    """Hash of a random value, verified against when no user matched."""
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = _pwd.hash(secrets.token_urlsafe(16))
    return _dummy_hash
