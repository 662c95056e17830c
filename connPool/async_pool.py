import asyncio
import contextlib
import inspect
from typing import Callable, Optional

import structlog

from connPool.connection_pool import (
    DEFAULT_MAX_CONNECTIONS,
    RELEASE_DISCARD,
    RELEASE_IDLE,
    RELEASE_STALE,
    BasePool,
)
from connPool.errors import CloseError, FactoryError, PoolTimeoutError, is_benign_close_error

logger = structlog.get_logger(__name__)


async def _maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


class AsyncConnectionPool(BasePool):
    """Bounded pool of reusable connections for asyncio tasks.

    ``factory`` may be a plain callable or a coroutine function, and the
    connections' ``close()`` may be either as well.
    """

    def __init__(self, factory: Callable, max_connections: int = DEFAULT_MAX_CONNECTIONS):
        super().__init__(factory, max_connections)
        self._available = asyncio.Condition()

    async def acquire(self, timeout: Optional[float] = None):
        """Acquire a connection from the pool."""
        timeout = self._resolve_timeout(timeout)
        async with self._available:
            try:
                await asyncio.wait_for(self._available.wait_for(self._can_hand_out), timeout)
            except (asyncio.CancelledError, asyncio.TimeoutError) as e:
                # A notify() delivered to this waiter is lost when it gives
                # up, so pass the wake-up on while capacity is available.
                if self._can_hand_out():
                    self._available.notify()
                if isinstance(e, asyncio.TimeoutError):
                    raise PoolTimeoutError(f"no connection available within {timeout}s") from None
                raise
            if self._idle:
                return self._take_idle()
            try:
                conn = await _maybe_await(self.factory())
            except Exception as e:
                raise FactoryError(e) from e
            return self._register_new(conn)

    async def release(self, conn, error: Optional[BaseException] = None, context: Optional[dict] = None):
        """Return a connection to the pool, closing it when ``error`` is set."""
        if conn is None:
            return
        async with self._available:
            outcome = self._check_in(conn, error)
            try:
                if outcome in (RELEASE_DISCARD, RELEASE_STALE):
                    try:
                        await _maybe_await(conn.close())
                    except Exception as close_error:
                        self._report_close_failure(conn, close_error, error, context)
                self._report_release(outcome, conn, context)
            finally:
                if outcome in (RELEASE_IDLE, RELEASE_DISCARD):
                    self._available.notify()

    async def close(self):
        """Close all connections currently idle in the pool."""
        failures = []
        async with self._available:
            idle = self._drain()
            for conn in idle:
                try:
                    await _maybe_await(conn.close())
                except Exception as e:
                    if not is_benign_close_error(e):
                        failures.append((conn, e))
            self._available.notify_all()
        logger.debug("pool_closed", closed=len(idle), failed=len(failures))
        if failures:
            raise CloseError(failures)

    @property
    def num_active(self) -> int:
        return self._num_active

    def __len__(self):
        return len(self._idle)

    @contextlib.asynccontextmanager
    async def connection(self, timeout: Optional[float] = None, context: Optional[dict] = None):
        conn = await self.acquire(timeout)
        try:
            yield conn
        except BaseException as e:
            await self.release(conn, e, context)
            raise
        await self.release(conn, None, context)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
