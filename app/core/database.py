"""
Database engine lifecycle and session management.

The engine is built in two phases: ``database.configure(url, ...)`` records
the options, and the first access to ``database.engine`` constructs it.
Construction happens at most once even when several requests race for it.
"""

from __future__ import annotations

import threading
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


class DatabaseNotConfigured(RuntimeError):
    """Raised when the engine is requested before ``configure`` was called."""


class Database:
    """Lazily constructed async engine + session factory."""

    def __init__(self) -> None:
        self._url: str | None = None
        self._options: dict[str, Any] = {}
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._lock = threading.Lock()

    @property
    def is_configured(self) -> bool:
        return self._url is not None

    def configure(self, url: str, **engine_options: Any) -> None:
        """Record connection options. Must happen before first use."""
        with self._lock:
            if self._engine is not None:
                raise RuntimeError("Database engine already built; call dispose() first")
            self._url = url
            self._options = engine_options

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            with self._lock:
                # Double-checked: another thread may have built it while we waited.
                if self._engine is None:
                    if self._url is None:
                        raise DatabaseNotConfigured(
                            "Database is not configured; call database.configure() first"
                        )
                    engine = create_async_engine(self._url, **self._options)
                    self._session_factory = async_sessionmaker(
                        engine,
                        class_=AsyncSession,
                        expire_on_commit=False,
                    )
                    self._engine = engine
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        _ = self.engine
        factory = self._session_factory
        if factory is None:
            raise DatabaseNotConfigured("Database engine was disposed while in use")
        return factory

    async def dispose(self) -> None:
        """Close pooled connections and forget the handle (configuration is kept)."""
        with self._lock:
            engine, self._engine = self._engine, None
            self._session_factory = None
        if engine is not None:
            await engine.dispose()

    def reset(self) -> None:
        """Forget configuration entirely. The engine must already be disposed."""
        with self._lock:
            if self._engine is not None:
                raise RuntimeError("Dispose the engine before resetting")
            self._url = None
            self._options = {}


database = Database()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def configure_from_settings() -> None:
    """Configure the shared handle from application settings, once."""
    from app.core.config import settings

    if database.is_configured:
        return
    database.configure(
        str(settings.DATABASE_URL),
        echo=settings.DEBUG,
        pool_size=settings.DATABASE_POOL_SIZE,
        pool_timeout=settings.DATABASE_POOL_TIMEOUT,
        pool_pre_ping=True,
    )
