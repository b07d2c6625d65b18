"""
Run the service: ``python -m app``.

uvicorn turns SIGINT into a lifespan shutdown (pool closed, listener stopped)
and then re-raises the signal; that KeyboardInterrupt is the normal way out,
so the process exits with status 0.
"""

import logging

import uvicorn

from app.core.config import settings
from app.main import app

_logger = logging.getLogger("app")


def main() -> None:
    try:
        uvicorn.run(app, host=settings.HOST, port=settings.PORT)
    except KeyboardInterrupt:
        _logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
