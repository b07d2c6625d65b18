"""
Database round-trip check used by the health endpoint.
"""

from typing import Any

from .manager import PoolManager

HEALTH_QUERY = "SELECT NOW()"


def health_check(pool: PoolManager) -> dict[str, Any]:
    """
    Run SELECT NOW() through the pool and return the row. Raises on any
    failure (acquire timeout, closed pool, driver error).
    """
    rows = pool.query(HEALTH_QUERY)
    return rows[0] if rows else {}
