"""
Connection pool for the cities database.

psycopg is the only driver; ConnectionDescriptor (host, port, ...) from
app.core.config is enough to open connections.
"""

import psycopg

from .connect import connect, cursor_to_dicts, execute
from .health import health_check
from .manager import PoolClosed, PoolError, PoolManager, PoolTimeout

# Everything a handler has to catch to turn a database failure into a 500.
DATABASE_ERRORS: tuple[type[Exception], ...] = (PoolError, psycopg.Error)

__all__ = [
    "DATABASE_ERRORS",
    "connect",
    "execute",
    "cursor_to_dicts",
    "health_check",
    "PoolClosed",
    "PoolError",
    "PoolManager",
    "PoolTimeout",
]
