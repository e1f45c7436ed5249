# src/login_consent_bridge/__main__.py

import logging

import uvicorn

from .config import settings


def run():
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("login_consent_bridge").info("Starting server on port %s", settings.PORT)
    uvicorn.run(
        "login_consent_bridge.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
