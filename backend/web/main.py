"UniTrack academics API"
from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via UNITRACK_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("UNITRACK_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    load_dotenv()

import config as _cfg  # noqa: E402

_cfg.ensure_secure_config_on_startup()

from academics.config import configure_logging  # noqa: E402
from routes.academics import academics_router  # noqa: E402

logger = logging.getLogger("unitrack.web")

app = FastAPI(title="UniTrack", description="Academic records, submissions and analytics", version="0.1.0")
app.include_router(academics_router)


@app.exception_handler(Exception)
async def _unhandled_error(request: Request, exc: Exception):
    logger.exception("unitrack.web.unhandled path=%s", request.url.path)
    return JSONResponse({"error": "internal_error", "detail": str(exc)}, status_code=500)


@app.get("/health")
async def health_check():
    # Security: include no-store to avoid caching any runtime status.
    return JSONResponse({"status": "healthy"}, headers={"Cache-Control": "private, no-store"})


def main() -> None:
    import uvicorn

    configure_logging()
    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
