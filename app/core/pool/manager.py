"""
Bounded connection pool for the cities database.

At most ``max_size`` connections exist at once (lent + idle). A reaper thread
closes idle connections older than ``idle_timeout``. ``acquire_timeout`` bounds
the whole acquisition, waiting for a free slot and opening a new connection
alike; past it the caller gets PoolTimeout. A connection that finishes opening
after its caller gave up is closed and its slot freed.

Handlers should use ``connection()`` or ``query()``: both release on every
code path, so a connection can never leak out of the pool.
"""

import logging
import threading
import time
from collections.abc import Callable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from contextlib import contextmanager
from typing import Any, NamedTuple

from app.core.config import ConnectionDescriptor

from .connect import connect, cursor_to_dicts, execute

_log = logging.getLogger(__name__)


class PoolError(Exception):
    """Base class for pool failures."""


class PoolTimeout(PoolError):
    """No connection became available within the acquisition timeout."""


class PoolClosed(PoolError):
    """The pool has been shut down."""


class _PoolEntry(NamedTuple):
    conn: Any
    last_used: float  # time.monotonic() when last returned to pool


class PoolManager:
    """Thread-safe bounded pool of DB connections."""

    def __init__(
        self,
        descriptor: ConnectionDescriptor,
        *,
        connect_fn: Callable[[ConnectionDescriptor], Any] = connect,
    ) -> None:
        if descriptor.max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._descriptor = descriptor
        self._connect = connect_fn
        self._max_size = descriptor.max_size
        self._idle_timeout = descriptor.idle_timeout
        self._acquire_timeout = descriptor.acquire_timeout
        self._idle: list[_PoolEntry] = []
        self._lent: dict[int, Any] = {}
        self._opening = 0
        self._cond = threading.Condition()
        self._closed = False
        # Opens run here so acquire() can stop waiting at its deadline.
        self._opener = ThreadPoolExecutor(
            max_workers=self._max_size, thread_name_prefix="pool-open"
        )
        self._stop = threading.Event()
        self._reaper: threading.Thread | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def acquire(self) -> Any:
        """
        Lend a connection: a fresh idle one, a newly opened one if under
        max_size, or the first one released within acquire_timeout.

        Raises PoolTimeout, PoolClosed, or the driver error if opening fails.
        """
        deadline = time.monotonic() + self._acquire_timeout
        stale: list[_PoolEntry] = []
        conn: Any = None
        try:
            with self._cond:
                while True:
                    if self._closed:
                        raise PoolClosed("pool is closed")
                    stale.extend(self._evict_idle_locked())
                    if self._idle:
                        conn = self._idle.pop().conn
                        self._lent[id(conn)] = conn
                        return conn
                    if self._size_locked() < self._max_size:
                        # Reserve the slot; the connection is opened outside the lock.
                        self._opening += 1
                        break
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise PoolTimeout(
                            f"timed out after {self._acquire_timeout * 1000:g}ms "
                            f"waiting for a connection (max_size={self._max_size})"
                        )
                    self._cond.wait(remaining)
        finally:
            for entry in stale:
                self._close_quiet(entry.conn)

        try:
            future = self._opener.submit(self._connect, self._descriptor)
        except RuntimeError:
            # Executor already shut down by close().
            self._free_opening_slot()
            raise PoolClosed("pool is closed") from None
        try:
            conn = future.result(timeout=max(deadline - time.monotonic(), 0.0))
        except FutureTimeout:
            # The slot stays reserved until the late attempt finishes.
            future.add_done_callback(self._discard_late)
            raise PoolTimeout(
                f"timed out after {self._acquire_timeout * 1000:g}ms "
                "opening a connection"
            ) from None
        except BaseException:
            self._free_opening_slot()
            raise
        with self._cond:
            self._opening -= 1
            closed = self._closed
            if not closed:
                self._lent[id(conn)] = conn
            self._cond.notify()
        if closed:
            self._close_quiet(conn)
            raise PoolClosed("pool is closed")
        return conn

    def release(self, conn: Any) -> None:
        """Return a lent connection to the pool (or close it if unusable or closed)."""
        with self._cond:
            if self._lent.get(id(conn)) is not conn:
                raise PoolError("connection was not acquired from this pool")
            closed = self._closed

        reusable = not closed
        if reusable:
            try:
                conn.rollback()
            except Exception:
                _log.warning("Discarding connection that failed rollback", exc_info=True)
                reusable = False

        with self._cond:
            del self._lent[id(conn)]
            if reusable and not self._closed:
                self._idle.append(_PoolEntry(conn=conn, last_used=time.monotonic()))
                self._ensure_reaper_locked()
                conn = None
            self._cond.notify()
        if conn is not None:
            self._close_quiet(conn)

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """Borrow a connection for the duration of the block; always released."""
        conn = self.acquire()
        try:
            yield conn
        finally:
            self.release(conn)

    def query(
        self, sql: str, params: dict | list | tuple | None = None
    ) -> list[dict[str, Any]]:
        """Acquire, execute, fetch all rows as dicts, release."""
        with self.connection() as conn:
            cur = execute(conn, sql, params)
            try:
                return cursor_to_dicts(cur)
            finally:
                cur.close()

    def close(self) -> None:
        """Close idle connections and refuse further acquisitions. Idempotent."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            entries = self._idle
            self._idle = []
            in_use = len(self._lent)
            self._cond.notify_all()
        self._stop.set()
        self._opener.shutdown(wait=False)
        _log.info(
            "Pool closed: %d idle connections closed, %d still lent",
            len(entries),
            in_use,
        )
        for e in entries:
            self._close_quiet(e.conn)

    def stats(self) -> dict[str, Any]:
        """Return pool statistics for monitoring."""
        with self._cond:
            in_use = len(self._lent) + self._opening
            return {
                "max_size": self._max_size,
                "in_use": in_use,
                "idle": len(self._idle),
                "available": self._max_size - in_use,
                "closed": self._closed,
            }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _size_locked(self) -> int:
        return len(self._lent) + self._opening + len(self._idle)

    def _evict_idle_locked(self) -> list[_PoolEntry]:
        """Drop idle entries past idle_timeout; caller closes them outside the lock."""
        if self._idle_timeout <= 0:
            return []
        cutoff = time.monotonic() - self._idle_timeout
        expired = [e for e in self._idle if e.last_used < cutoff]
        if expired:
            self._idle = [e for e in self._idle if e.last_used >= cutoff]
        return expired

    def _free_opening_slot(self) -> None:
        with self._cond:
            self._opening -= 1
            self._cond.notify()

    def _discard_late(self, future: Future) -> None:
        """Done-callback for an open that outlived its acquire(): close, free slot."""
        conn = None
        if not future.cancelled() and future.exception() is None:
            conn = future.result()
        if conn is not None:
            self._close_quiet(conn)
        self._free_opening_slot()

    def _ensure_reaper_locked(self) -> None:
        if self._reaper is None and self._idle_timeout > 0 and not self._closed:
            self._reaper = threading.Thread(
                target=self._reap, name="pool-reaper", daemon=True
            )
            self._reaper.start()

    def _reap(self) -> None:
        """Close idle connections past idle_timeout until the pool is closed."""
        interval = min(max(self._idle_timeout / 2, 0.01), 1.0)
        while not self._stop.wait(interval):
            with self._cond:
                stale = self._evict_idle_locked()
            for entry in stale:
                self._close_quiet(entry.conn)

    @staticmethod
    def _close_quiet(conn: Any) -> None:
        try:
            conn.close()
        except Exception:
            _log.debug("Error closing connection", exc_info=True)
