"""
Async database session and connection pool setup.

Pool parameters:
- pool_size: resident connections
- max_overflow: extra connections allowed at peak
- pool_timeout: seconds to wait for a free connection
- pool_recycle: recycle period so idle PostgreSQL connections are not dropped
- pool_pre_ping: liveness check before use
"""

import logging
import time

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from raya_domains.config import settings

logger = logging.getLogger("raya.db")

SLOW_QUERY_THRESHOLD_MS = settings.SLOW_QUERY_THRESHOLD_MS


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """Create an async engine with pooling tuned for the API workers."""
    if not url.startswith("sqlite"):
        kwargs.setdefault("pool_size", settings.DB_POOL_SIZE)
        kwargs.setdefault("max_overflow", settings.DB_MAX_OVERFLOW)
        kwargs.setdefault("pool_timeout", settings.DB_POOL_TIMEOUT)
        kwargs.setdefault("pool_recycle", settings.DB_POOL_RECYCLE)
    engine = create_async_engine(
        url,
        pool_pre_ping=True,
        echo=settings.DB_ECHO,
        **kwargs,
    )
    _install_slow_query_listeners(engine)
    return engine


# ---------------------------------------------------------------------------
# Slow query monitoring
# ---------------------------------------------------------------------------
def _install_slow_query_listeners(engine: AsyncEngine) -> None:
    sync_engine = engine.sync_engine

    @event.listens_for(sync_engine, "before_cursor_execute")
    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(sync_engine, "after_cursor_execute")
    def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        total_ms = (time.perf_counter() - conn.info["query_start_time"].pop()) * 1000

        if total_ms >= SLOW_QUERY_THRESHOLD_MS:
            stmt_preview = statement[:500] + "..." if len(statement) > 500 else statement
            logger.warning(
                "Slow query detected",
                extra={
                    "duration_ms": round(total_ms, 2),
                    "statement": stmt_preview,
                    "threshold_ms": SLOW_QUERY_THRESHOLD_MS,
                },
            )


engine = build_engine(settings.SQLALCHEMY_DATABASE_URI)

SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
