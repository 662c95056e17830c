import contextlib
import threading
from collections import deque
from typing import Callable, Optional, Protocol, runtime_checkable

import structlog

from connPool.errors import (
    CloseError,
    FactoryError,
    NilConnectionError,
    PoolTimeoutError,
    is_benign_close_error,
)

logger = structlog.get_logger(__name__)

DEFAULT_MAX_CONNECTIONS = 5

# Outcomes of checking a connection back in.
RELEASE_IDLE = "idle"
RELEASE_DISCARD = "discard"
RELEASE_STALE = "stale"
RELEASE_DUPLICATE = "duplicate"


@runtime_checkable
class Closeable(Protocol):
    """Anything the pool can manage: a stream connection with ``close()``."""

    def close(self): ...


def check_connection(conn):
    """Reject handles that are ``None`` or have no way to be closed."""
    if conn is None:
        raise NilConnectionError("nil connection")
    if not isinstance(conn, Closeable) or not callable(conn.close):
        raise NilConnectionError(f"connection {conn!r} has no close()")
    return conn


def bind_context(context):
    """
    Bind the caller's correlation data to the pool logger.

    Keys are bound rather than passed as keywords, so the pool's own
    fields (``event``, ``connection``, ``error``) always win on clashes.
    """
    if not context:
        return logger
    return logger.bind(**{str(key): value for key, value in context.items()})


class BasePool:
    """
    Bookkeeping shared by :class:`ConnectionPool` and ``AsyncConnectionPool``.

    None of these helpers lock; callers hold the pool's condition.

    ``_num_active`` counts every live connection, idle or checked out.
    ``_checked_out`` maps ``id(conn)`` to the connection for each handle
    currently held by a caller, which keeps the ids stable.
    """

    # Default deadline for acquire(); None waits forever.
    acquire_timeout: Optional[float] = None

    def __init__(self, factory: Callable[[], Closeable], max_connections: int = DEFAULT_MAX_CONNECTIONS):
        if max_connections < 1:
            raise ValueError("max_connections must be positive")
        self.factory = factory
        self.max_connections = max_connections
        self._idle: deque = deque()
        self._checked_out: dict = {}
        self._num_active = 0

    @classmethod
    def from_config(cls, factory: Callable, config):
        """Build a pool from a validated ``PoolConfig``."""
        pool = cls(factory, max_connections=config.max_connections)
        pool.acquire_timeout = config.acquire_timeout
        return pool

    def _can_hand_out(self) -> bool:
        return len(self._idle) > 0 or self._num_active < self.max_connections

    def _resolve_timeout(self, timeout):
        return self.acquire_timeout if timeout is None else timeout

    def _take_idle(self):
        conn = self._idle.popleft()
        if conn is None:
            # Unreachable while release() drops None and new connections
            # pass check_connection(); kept so a bad slot is freed, not leaked.
            self._num_active -= 1
            raise NilConnectionError("idle queue yielded a nil connection")
        self._checked_out[id(conn)] = conn
        return conn

    def _register_new(self, conn):
        check_connection(conn)
        self._num_active += 1
        self._checked_out[id(conn)] = conn
        logger.debug(
            "connection_created",
            connection=conn,
            num_active=self._num_active,
            max_connections=self.max_connections,
        )
        return conn

    def _check_in(self, conn, error) -> str:
        if self._checked_out.get(id(conn)) is not conn:
            if any(idle is conn for idle in self._idle):
                return RELEASE_DUPLICATE
            return RELEASE_STALE
        del self._checked_out[id(conn)]
        if error is None:
            self._idle.append(conn)
            return RELEASE_IDLE
        self._num_active -= 1
        return RELEASE_DISCARD

    def _drain(self) -> list:
        idle = list(self._idle)
        self._idle.clear()
        self._checked_out.clear()
        self._num_active = 0
        return idle

    def _report_close_failure(self, conn, close_error, error, context):
        if is_benign_close_error(close_error):
            return
        bind_context(context).warning(
            "connection_close_failed",
            error=close_error,
            usage_error=error,
            connection=conn,
        )

    def _report_release(self, outcome, conn, context):
        if outcome == RELEASE_DUPLICATE:
            bind_context(context).warning("connection_already_idle", connection=conn)
        elif outcome == RELEASE_STALE:
            bind_context(context).debug("stale_connection_discarded", connection=conn)

    def __repr__(self):
        return (
            f"<{type(self).__name__} idle={len(self._idle)} "
            f"active={self._num_active} max={self.max_connections}>"
        )


class ConnectionPool(BasePool):
    """
    Thread-safe bounded pool of reusable connections.

    Parameters
    ----------
    factory:
        Zero-argument callable returning a new connection. Any exception it
        raises is re-raised from :meth:`acquire` as ``FactoryError``.
    max_connections:
        Ceiling on live connections (idle plus checked out). May be changed
        before the pool is shared between threads.
    """

    def __init__(self, factory: Callable[[], Closeable], max_connections: int = DEFAULT_MAX_CONNECTIONS):
        super().__init__(factory, max_connections)
        self._available = threading.Condition(threading.Lock())

    def acquire(self, timeout: Optional[float] = None):
        """
        Check out a connection, reusing the oldest idle one first.

        Blocks while nothing is idle and the pool is at capacity. The
        factory runs with the pool lock held, so connections are created
        one at a time.
        """
        timeout = self._resolve_timeout(timeout)
        with self._available:
            if not self._available.wait_for(self._can_hand_out, timeout):
                raise PoolTimeoutError(f"no connection available within {timeout}s")
            if self._idle:
                return self._take_idle()
            try:
                conn = self.factory()
            except Exception as e:
                raise FactoryError(e) from e
            return self._register_new(conn)

    def release(self, conn, error: Optional[BaseException] = None, context: Optional[dict] = None):
        """
        Return a checked-out connection.

        Without ``error`` the connection goes back to the idle queue. With
        one it is closed and its slot freed. Close failures are logged,
        never raised.
        """
        if conn is None:
            return
        with self._available:
            outcome = self._check_in(conn, error)
            try:
                if outcome in (RELEASE_DISCARD, RELEASE_STALE):
                    try:
                        conn.close()
                    except Exception as close_error:
                        self._report_close_failure(conn, close_error, error, context)
                self._report_release(outcome, conn, context)
            finally:
                if outcome in (RELEASE_IDLE, RELEASE_DISCARD):
                    self._available.notify()

    def close(self):
        """
        Close every idle connection and reset the pool.

        Checked-out connections are left to their holders; releasing one
        later closes it. Raises ``CloseError`` listing every non-benign
        close failure once all idle connections have been closed.
        """
        failures = []
        with self._available:
            idle = self._drain()
            for conn in idle:
                try:
                    conn.close()
                except Exception as e:
                    if not is_benign_close_error(e):
                        failures.append((conn, e))
            self._available.notify_all()
        logger.debug("pool_closed", closed=len(idle), failed=len(failures))
        if failures:
            raise CloseError(failures)

    @property
    def num_active(self) -> int:
        with self._available:
            return self._num_active

    def __len__(self):
        with self._available:
            return len(self._idle)

    @contextlib.contextmanager
    def connection(self, timeout: Optional[float] = None, context: Optional[dict] = None):
        """Check out a connection for the duration of a ``with`` block."""
        conn = self.acquire(timeout)
        try:
            yield conn
        except BaseException as e:
            self.release(conn, e, context)
            raise
        self.release(conn, None, context)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
