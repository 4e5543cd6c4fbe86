"""GestionPro - business management backend, authentication core.

- `gestionpro.api`: FastAPI app (register / login / me, admin user management)
- `gestionpro.auth`: credential store, password hashing, JWT tokens, access control
- `gestionpro.client`: client-side session store, API client and route guard

Everything else (sales, clients, products, accounting) consumes the
authenticated-user context produced here.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
