"""Create a user directly in the database.

Usage:
  python scripts/create_user.py --nom "Alice Martin" --email alice@example.com --password '...' --role Comptable

NOTE: This is intended for local/dev and for seeding staff accounts.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from gestionpro.auth.crud import create_user
from gestionpro.auth.security import configure_hasher
from gestionpro.config import load_config
from gestionpro.db import connect, init_db
from gestionpro.errors import GestionProError
from gestionpro.schema import ROLES


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--nom", required=True)
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--role", choices=list(ROLES), default="Vendeur")
    args = ap.parse_args()

    cfg = load_config()
    configure_hasher(cfg.AUTH_PASSWORD_ROUNDS)
    init_db(cfg.DB_DSN)

    try:
        with connect(cfg.DB_DSN) as conn:
            u = create_user(conn, nom=args.nom, email=args.email, password=args.password, role=args.role)
    except GestionProError as e:
        print(f"Error: {e.message}")
        sys.exit(1)

    print("Created user:")
    print(u)


if __name__ == "__main__":
    main()
