import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import uvicorn

from gestionpro.auth.tokens import ensure_secure_secret
from gestionpro.config import load_config
from gestionpro.errors import InsecureSecretError


def main() -> None:
    cfg = load_config()
    try:
        ensure_secure_secret(cfg.JWT_SECRET)
    except InsecureSecretError as e:
        print(f"[api] FATAL: {e}. Set a strong JWT_SECRET in the environment or .env before starting.")
        sys.exit(1)

    host = os.environ.get("API_HOST", "0.0.0.0")
    port = int(os.environ.get("API_PORT", "5001"))
    print(f"[api] Starting on {host}:{port} in '{cfg.APP_ENV}' mode")
    uvicorn.run("gestionpro.api.server:create_app", factory=True, host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
