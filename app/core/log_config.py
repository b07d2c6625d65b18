"""
Logging setup.

``app.access`` writes one JSON line per request to stdout, nothing else.
The rest of the ``app`` logger tree writes human-readable lines to stderr.
"""

import logging
import sys

ACCESS_LOGGER_NAME = "app.access"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_HANDLER_MARK = "_cities_api_handler"


def _has_own_handler(logger: logging.Logger) -> bool:
    return any(getattr(h, _HANDLER_MARK, False) for h in logger.handlers)


def configure_logging(level: str = "INFO") -> None:
    """Attach stdout/stderr handlers once; later calls only update the level."""
    app_logger = logging.getLogger("app")
    app_logger.setLevel(level)
    if not _has_own_handler(app_logger):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        setattr(handler, _HANDLER_MARK, True)
        app_logger.addHandler(handler)

    access_logger = logging.getLogger(ACCESS_LOGGER_NAME)
    access_logger.setLevel(logging.INFO)
    access_logger.propagate = False
    if not _has_own_handler(access_logger):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(message)s"))
        setattr(handler, _HANDLER_MARK, True)
        access_logger.addHandler(handler)
