"""
DB connection helpers for the cities database.

Uses psycopg (PostgreSQL). Descriptor fields left as None are not passed to
libpq, so its own defaults and PG* environment variables apply.
"""

from typing import Any

import psycopg

from app.core.config import ConnectionDescriptor


def connect(descriptor: ConnectionDescriptor) -> psycopg.Connection:
    """Open one connection from *descriptor*. Errors propagate as psycopg.Error."""
    params: dict[str, Any] = {
        "host": descriptor.host,
        "port": descriptor.port,
        "dbname": descriptor.database,
        "user": descriptor.user,
        "password": descriptor.password,
    }
    kwargs = {k: v for k, v in params.items() if v is not None}
    return psycopg.connect(connect_timeout=descriptor.connect_timeout, **kwargs)


def execute(conn: Any, sql: str, params: dict | list | tuple | None = None) -> Any:
    """
    Execute SQL and return the cursor. Caller uses cursor_to_dicts(cursor) and
    closes the cursor. The cursor is closed here if execution fails.
    """
    cur = conn.cursor()
    try:
        if params is not None:
            cur.execute(sql, params)
        else:
            cur.execute(sql)
    except BaseException:
        cur.close()
        raise
    return cur


def cursor_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor result to list of dicts keyed by column name."""
    desc = cursor.description
    if not desc:
        return []
    names = [d[0] for d in desc]
    return [dict(zip(names, row, strict=True)) for row in cursor.fetchall()]
