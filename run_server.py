#!/usr/bin/env python3
import logging
import os

import uvicorn

from fraudscore.core.config import settings
from fraudscore.core.logging import setup_logging

logger = logging.getLogger("run_server")


def get_ssl_params() -> dict:
    key = settings.SSL_KEYFILE
    cert = settings.SSL_CERTFILE
    if not (key and cert and os.path.exists(key) and os.path.exists(cert)):
        logger.warning("Starting on plain HTTP (no SSL certificates found).")
        return {}
    logger.info("Using SSL certificates for HTTPS.")
    return {"ssl_keyfile": key, "ssl_certfile": cert}


def main() -> None:
    setup_logging()
    params = get_ssl_params()
    scheme = "https" if params else "http"
    logger.info(f"Serving on {scheme}://localhost:8000")

    uvicorn.run(
        "fraudscore.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
        **params,
    )


if __name__ == "__main__":
    main()
