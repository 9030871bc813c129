import time
from contextvars import ContextVar

from sqlalchemy import event
from starlette.types import ASGIApp, Receive, Scope, Send


class RequestStats:
    """Mutable per-request counters filled in by the engine and the router."""

    __slots__ = ("query_count", "data_sources")

    def __init__(self) -> None:
        self.query_count = 0
        self.data_sources: list[str] = []


# ---------------------------------------------------------------------------
# Per-request context variable
# ---------------------------------------------------------------------------

request_stats_var: ContextVar[RequestStats | None] = ContextVar("request_stats", default=None)


def record_data_source(key: str) -> None:
    """Remember that the current request touched the *key* connection pool."""
    stats = request_stats_var.get()
    if stats is not None and key not in stats.data_sources:
        stats.data_sources.append(key)


def install_query_counter(engine) -> None:
    """
    Register a ``before_cursor_execute`` listener on *engine* that bumps
    the current request's query counter for every SQL statement,
    including the ones issued by ``selectinload``.

    Must be called once per engine (master and slave in ``database.py``,
    the test engine in ``conftest.py``).
    """
    sync_engine = engine.sync_engine

    @event.listens_for(sync_engine, "before_cursor_execute")
    def _count_query(conn, cursor, statement, parameters, context, executemany):
        stats = request_stats_var.get()
        if stats is not None:
            stats.query_count += 1


# ---------------------------------------------------------------------------
# Middleware (pure ASGI, so ContextVar state set here is seen by the app)
# ---------------------------------------------------------------------------

class TimingMiddleware:
    """
    Pure ASGI middleware that adds diagnostic response headers:

    - ``X-Response-Time-Ms``: wall-clock time for the entire request.
    - ``X-Query-Count``: SQL statements executed during the request.
    - ``X-Data-Source``: comma-separated pool keys (``master``/``slave``)
      the routing session picked while serving the request.

    The stats object is mutated in place rather than re-set, so the
    values survive even if a handler runs in a copied context.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        stats = RequestStats()
        token = request_stats_var.set(stats)
        start = time.perf_counter()

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                duration_ms = round((time.perf_counter() - start) * 1000, 2)
                headers = list(message.get("headers", []))
                headers.append((b"x-response-time-ms", str(duration_ms).encode()))
                headers.append((b"x-query-count", str(stats.query_count).encode()))
                headers.append((b"x-data-source", ",".join(stats.data_sources).encode()))
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            request_stats_var.reset(token)
