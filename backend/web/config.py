"""
Startup checks for the UniTrack API.

Why: A misconfigured store in production silently loses coursework (the
in-memory backend) or talks to Postgres without TLS. This module provides a
single guard that refuses to start in those cases without burdening local
development.

Permissions: The caller needs no special privileges. The function reads
environment variables and raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os

from academics.config import load_academics_config


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def ensure_secure_config_on_startup() -> None:
    """Fail fast on invalid or insecure configuration.

    Checks:
    - Academics settings must parse (every environment; a typo in
      ACADEMICS_* should never be discovered at the first request).
    - In prod-like envs the DSN must not explicitly disable TLS.
    """
    try:
        config = load_academics_config()
    except ValueError as exc:
        raise SystemExit(f"Refusing to start: {exc}")

    env = os.getenv("UNITRACK_ENV", "dev")
    if not _is_prod_like(env):
        return  # dev/test remain permissive

    if config.store_backend == "db" and "sslmode=disable" in (config.database_url or ""):
        raise SystemExit(
            "Refusing to start: the academics DSN contains sslmode=disable in production. Use sslmode=require or verify TLS."
        )
