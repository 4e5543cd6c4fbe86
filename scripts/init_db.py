import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from gestionpro.auth.crud import bootstrap_admin_if_needed
from gestionpro.auth.security import configure_hasher
from gestionpro.config import load_config
from gestionpro.db import init_db


def main() -> None:
    cfg = load_config()
    init_db(cfg.DB_DSN)
    configure_hasher(cfg.AUTH_PASSWORD_ROUNDS)
    bootstrap_admin_if_needed(cfg)
    print("DB initialized.")


if __name__ == "__main__":
    main()
