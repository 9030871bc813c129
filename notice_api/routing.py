"""
Read/write routing between the master database and its read replica.

Service functions declare their intent with ``@transactional`` (writes)
or ``@transactional(read_only=True)`` (reads).  The decorator stores the
matching pool key in a ``ContextVar`` for the duration of the call, and
``RoutingSession.get_bind`` looks the key up in its table of target
engines every time the session needs a connection.

Flushes and INSERT/UPDATE/DELETE statements always go to the master, so
an autoflush triggered from inside a read-only call can never land on
the replica.
"""
import functools
import logging
from contextvars import ContextVar

from sqlalchemy import Delete, Insert, Update
from sqlalchemy.orm import Session

from notice_api.middleware import record_data_source

logger = logging.getLogger(__name__)

MASTER = "master"
SLAVE = "slave"
DEFAULT_DATA_SOURCE = MASTER

data_source_var: ContextVar[str | None] = ContextVar("data_source", default=None)


def current_data_source() -> str:
    """Return the pool key for the running operation, or the default."""
    return data_source_var.get() or DEFAULT_DATA_SOURCE


def transactional(func=None, *, read_only: bool = False):
    """
    Mark an async service callable as a read-write or read-only operation.

    Usable bare (``@transactional``) or with arguments
    (``@transactional(read_only=True)``).  The previous key is restored
    when the call finishes, so a nested read inside a write keeps the
    outer operation on the master afterwards.
    """

    def decorator(fn):
        key = SLAVE if read_only else MASTER

        @functools.wraps(fn)
        async def wrapper(*args, **kwargs):
            token = data_source_var.set(key)
            try:
                return await fn(*args, **kwargs)
            finally:
                data_source_var.reset(token)

        wrapper.read_only = read_only
        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


class RoutingSession(Session):
    """
    ``Session`` whose bind is chosen per statement from *target_engines*.

    Used as the ``sync_session_class`` of an ``async_sessionmaker``; the
    target engines must therefore be the ``sync_engine`` of each
    ``AsyncEngine``.
    """

    def __init__(self, *args, target_engines: dict | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.target_engines = dict(target_engines or {})

    def get_bind(self, mapper=None, clause=None, **kw):
        if not self.target_engines:
            return super().get_bind(mapper, clause=clause, **kw)

        if self._flushing or isinstance(clause, (Insert, Update, Delete)):
            key = MASTER
        else:
            key = current_data_source()

        engine = self.target_engines.get(key)
        if engine is None:
            logger.debug("No engine registered for %r, using %r", key, DEFAULT_DATA_SOURCE)
            key = DEFAULT_DATA_SOURCE
            engine = self.target_engines[key]

        record_data_source(key)
        return engine
