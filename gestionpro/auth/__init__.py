"""Authentication / authorization.

Auth is deliberately lightweight:

- Users table (email/password hash + role + active flag)
- Stateless JWT session tokens (no server-side session table)

The API accepts both:

- `Authorization: Bearer <token>` (scripts / API clients / the SPA)
- An httpOnly `jwt` cookie (set by `/api/auth/login` and `/api/auth/register`)
"""

from .crud import bootstrap_admin_if_needed, create_user
from .deps import authorize, get_current_user, require_admin
from .tokens import TokenService, ensure_secure_secret

__all__ = [
    "authorize",
    "bootstrap_admin_if_needed",
    "create_user",
    "ensure_secure_secret",
    "get_current_user",
    "require_admin",
    "TokenService",
]
