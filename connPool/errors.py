import errno

# Errno values raised by a close on a descriptor that is already gone.
_CLOSED_ERRNOS = {errno.EBADF, errno.ENOTCONN}

_benign_types: list[type] = []
_benign_predicates: list = []


class PoolError(Exception):
    """Base class for errors raised by the connection pools."""


class FactoryError(PoolError):
    """The connection factory failed to create a connection."""

    def __init__(self, cause: BaseException):
        super().__init__(f"make connection: {cause}")
        self.cause = cause


class NilConnectionError(PoolError):
    """A connection handle was ``None`` or cannot be closed."""


class PoolTimeoutError(PoolError, TimeoutError):
    """No connection became available before the acquire deadline."""


class CloseError(PoolError):
    """One or more idle connections failed to close during shutdown.

    ``errors`` holds ``(connection, exception)`` pairs, one per failure.
    """

    def __init__(self, errors: list):
        self.errors = list(errors)
        details = "; ".join(f"{conn!r}: {exc}" for conn, exc in self.errors)
        super().__init__(f"{len(self.errors)} connection(s) failed to close: {details}")


class ConnectionAlreadyClosedError(Exception):
    """Raised by a connection's ``close()`` when it was closed before."""


def register_benign_close_error(kind) -> None:
    """
    Treat another class of close failure as "already closed".

    ``kind`` is either an exception class or a callable taking the
    exception and returning ``True`` when it is benign.
    """
    if isinstance(kind, type) and issubclass(kind, BaseException):
        if kind not in _benign_types:
            _benign_types.append(kind)
    elif callable(kind):
        if kind not in _benign_predicates:
            _benign_predicates.append(kind)
    else:
        raise TypeError(f"expected an exception class or a predicate, got {kind!r}")


def unregister_benign_close_error(kind) -> None:
    if kind in _benign_types:
        _benign_types.remove(kind)
    if kind in _benign_predicates:
        _benign_predicates.remove(kind)


def is_benign_close_error(exc: BaseException) -> bool:
    """Return ``True`` when ``exc`` means the connection was already closed."""
    if isinstance(exc, ConnectionAlreadyClosedError):
        return True
    if isinstance(exc, OSError) and exc.errno in _CLOSED_ERRNOS:
        return True
    if _benign_types and isinstance(exc, tuple(_benign_types)):
        return True
    return any(predicate(exc) for predicate in _benign_predicates)
