# app/db/db_manager.py
"""
Async engine and session handling for the appointments database.

Schema changes go through Alembic; this module only checks that a
revision has been applied.
"""

import ssl
import time
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
    AsyncEngine,
)
from sqlalchemy import event, text
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Any, Optional
from common import DatabaseConfig, request_timer_context_var
from common.config import DbDriver
from common.logger import get_app_logger

logger = get_app_logger(__name__)

SUPPORTED_SCHEMES = tuple(f"{driver.url_scheme}://" for driver in DbDriver)


def build_ssl_context(config: DatabaseConfig) -> Any:
    """
    asyncpg `ssl` argument for the configured sslmode.

    Returns False for "disable", None when nothing should be passed,
    otherwise an SSLContext loaded with the configured CA and client pair.
    """
    mode = config.ssl_mode
    if mode is None:
        return None
    if not mode.requires_ssl:
        return False if mode.value == "disable" else None

    context = ssl.create_default_context()
    if config.ssl_ca_path:
        context.load_verify_locations(cafile=str(config.ssl_ca_path))
    if config.ssl_cert_path and config.ssl_key_path:
        context.load_cert_chain(
            certfile=str(config.ssl_cert_path),
            keyfile=str(config.ssl_key_path),
        )
    context.check_hostname = mode.verifies_hostname
    if mode.verifies_hostname:
        context.verify_mode = ssl.CERT_REQUIRED
    return context


class DbManager:
    """
    Owns the AsyncEngine and hands out sessions.

    Every cursor execution is timed into the request's RequestTimer so
    RequestLoggingMiddleware can report SQL time and query count.

        db_manager = DbManager.from_config(config.database)
        await db_manager.verify_connection()
        async with db_manager.session() as session:
            ...
        await db_manager.dispose()
    """

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        pool_pre_ping: bool = True,
        echo: bool = False,
        connect_args: Optional[dict[str, Any]] = None,
    ):
        if not url or not url.startswith(SUPPORTED_SCHEMES):
            raise ValueError(
                f"Unsupported database URL {url[:20]!r}..., expected one of {SUPPORTED_SCHEMES}"
            )

        self.engine: AsyncEngine = create_async_engine(
            url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            pool_pre_ping=pool_pre_ping,
            connect_args=connect_args or {},
        )
        self.session_maker = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )
        self._snapshot: dict[str, Any] = {
            "url": url.split("@")[-1],
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_timeout": pool_timeout,
            "pool_recycle": pool_recycle,
        }
        self._attach_timing_listeners()

        logger.info("DbManager ready", target=self._snapshot["url"], pool_size=pool_size)

    @classmethod
    def from_config(cls, config: DatabaseConfig, **kwargs: Any) -> "DbManager":
        connect_args = dict(kwargs.pop("connect_args", None) or {})
        if config.driver == DbDriver.ASYNCPG:
            ssl_arg = build_ssl_context(config)
            if ssl_arg is not None:
                connect_args["ssl"] = ssl_arg

        return cls(
            config.get_connection_url(include_password=True),
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            connect_args=connect_args,
            **kwargs,
        )

    def _attach_timing_listeners(self) -> None:
        sync_engine = self.engine.sync_engine

        @event.listens_for(sync_engine, "before_cursor_execute")
        def _start(conn, cursor, statement, parameters, context, executemany):
            conn.info.setdefault("query_start", []).append(time.perf_counter())

        @event.listens_for(sync_engine, "after_cursor_execute")
        def _stop(conn, cursor, statement, parameters, context, executemany):
            started = conn.info.get("query_start")
            if not started:
                return
            timer = request_timer_context_var.get()
            if timer is None:
                started.pop()
                return
            timer.add("sql", (time.perf_counter() - started.pop()) * 1000)
            timer.increment("query_count")

    async def _ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def verify_connection(self) -> None:
        """
        Raises:
            ConnectionError: If the database cannot be reached
        """
        try:
            await self._ping()
        except Exception as e:
            logger.error("Database connection failed", error=str(e))
            raise ConnectionError(f"Failed to connect to database: {e}") from e
        logger.info("Database connection verified")

    async def verify_migrations_current(self) -> str:
        """
        Return the applied Alembic revision.

        Raises:
            RuntimeError: If no revision has been stamped
        """
        async with self.engine.connect() as conn:
            try:
                result = await conn.execute(text("SELECT version_num FROM alembic_version"))
            except Exception as e:
                raise RuntimeError(
                    "alembic_version table not found. Have you run 'alembic upgrade head'?"
                ) from e
            revision = result.scalar()

        if not revision:
            raise RuntimeError("No Alembic revision applied. Run 'alembic upgrade head'.")

        logger.info("Current migration version", revision=revision)
        return revision

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on clean exit and rolls back on error."""
        session = self.session_maker()
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.warning("Session rolled back", error=str(e), error_type=type(e).__name__)
            raise
        finally:
            await session.close()

    async def health_check(self) -> dict[str, Any]:
        """{"healthy": bool, "response_time_ms" | "error", "pool_status"}"""
        started = time.perf_counter()
        try:
            await self._ping()
        except Exception as e:
            return {"healthy": False, "error": str(e)}
        return {
            "healthy": True,
            "response_time_ms": round((time.perf_counter() - started) * 1000, 2),
            "pool_status": self.engine.pool.status(),
        }

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database connections disposed")

    def get_config_snapshot(self) -> dict[str, Any]:
        return dict(self._snapshot)


__all__ = ["DbManager", "build_ssl_context"]
