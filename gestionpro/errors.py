"""Error taxonomy shared by the store, the token service and the API.

Each error carries the HTTP status it maps to at the API boundary and a
user-facing message. The message is what clients display, so it never holds
internal detail.
"""

from __future__ import annotations


class GestionProError(Exception):
    status_code: int = 500
    default_message: str = "An internal error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(GestionProError):
    status_code = 400
    default_message = "Invalid input."


class DuplicateError(GestionProError):
    status_code = 409
    default_message = "This email address is already in use."


class AuthenticationError(GestionProError):
    status_code = 401
    default_message = "Unauthorized. Please log in."


class InvalidTokenError(AuthenticationError):
    default_message = "Invalid or expired token. Please log in again."


class ExpiredTokenError(InvalidTokenError):
    pass


class AuthorizationError(GestionProError):
    status_code = 403
    default_message = "You do not have the permissions required for this action."


class NotFoundError(GestionProError):
    status_code = 404
    default_message = "Not found."


class FeatureNotImplementedError(GestionProError):
    status_code = 501
    default_message = "This feature is not implemented yet."


class InternalError(GestionProError):
    status_code = 500
    default_message = "An internal error occurred."


class InsecureSecretError(RuntimeError):
    """Raised at startup when the JWT signing secret is unusable."""
