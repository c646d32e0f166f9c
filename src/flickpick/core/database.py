from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from fastapi import FastAPI
from sqlalchemy import inspect, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ..db.models import Base
from .config import settings

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_engine() -> AsyncEngine:
    global _engine, _session_factory

    if _engine is None:
        _engine = create_async_engine(
            settings.database_url,
            pool_pre_ping=True,
            future=True,
            echo=settings.database_echo,
        )
        _session_factory = async_sessionmaker(_engine, expire_on_commit=False)

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        get_engine()

    assert _session_factory is not None
    return _session_factory


def should_create_schema(engine: AsyncEngine) -> bool:
    """Whether startup builds tables itself instead of relying on alembic.

    Local SQLite databases are always bootstrapped; server databases only
    when ``DATABASE_CREATE_SCHEMA`` is set.
    """

    return settings.database_create_schema or engine.dialect.name == "sqlite"


def _missing_tables(connection) -> List[str]:
    existing = set(inspect(connection).get_table_names())
    return sorted(name for name in Base.metadata.tables if name not in existing)


async def _prepare_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as connection:
        await connection.execute(text("SELECT 1"))
        if should_create_schema(engine):
            await connection.run_sync(Base.metadata.create_all)
            return
        missing = await connection.run_sync(_missing_tables)
    if missing:
        raise RuntimeError(
            "Database schema is missing tables %s; run `alembic upgrade head`" % ", ".join(missing)
        )


async def connect_database() -> None:
    """Wait for the database and make sure the game tables are in place.

    Connection failures are retried ``DATABASE_CONNECT_RETRIES`` times since
    Postgres often starts after the API container. A reachable database with
    a missing schema fails straight away.
    """

    engine = get_engine()
    attempts = max(1, settings.database_connect_retries)
    delay = max(0.0, settings.database_connect_retry_interval_seconds)
    last_error: Optional[BaseException] = None

    for attempt in range(1, attempts + 1):
        try:
            await _prepare_schema(engine)
        except OperationalError as exc:
            last_error = exc
            logger.warning("Database not reachable (attempt %s/%s): %s", attempt, attempts, exc)
            if attempt < attempts:
                await asyncio.sleep(delay)
            continue
        except SQLAlchemyError as exc:
            logger.exception("Database initialisation failed: %s", exc)
            raise
        logger.info("Database ready after %s attempt(s)", attempt)
        return

    message = f"Could not reach the database after {attempts} attempts"
    logger.error(message)
    raise RuntimeError(message) from last_error


async def disconnect_database() -> None:
    global _engine, _session_factory

    _session_factory = None
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def register_database(app: FastAPI) -> None:
    @app.on_event("startup")
    async def _open_database() -> None:  # pragma: no cover - FastAPI integration
        await connect_database()

    @app.on_event("shutdown")
    async def _close_database() -> None:  # pragma: no cover - FastAPI integration
        await disconnect_database()
