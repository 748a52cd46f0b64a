import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from pkg.db_util.types import PostgresConfig
from pkg.log.logger import get_logger


@dataclass
class _EngineEntry:
    engine: AsyncEngine
    sessions: async_sessionmaker


# Shared per database URL so repositories built from separate connections reuse one pool
_engines: Dict[str, _EngineEntry] = {}


class PostgresConnection:
    """Hands out transactional ORM sessions for one database."""

    def __init__(self, db_config: PostgresConfig, logger: logging.Logger):
        self.db_config = db_config
        self.logger = logger
        self._url = db_config.async_url()

    async def _connect_once(self) -> _EngineEntry:
        engine = create_async_engine(
            self._url,
            echo=False,
            connect_args=self.db_config.connect_args(),
            **self.db_config.pool_options(),
        )
        try:
            async with engine.connect() as conn:
                await conn.exec_driver_sql("SELECT 1")
        except BaseException:
            await engine.dispose()
            raise
        return _EngineEntry(
            engine=engine,
            sessions=async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False),
        )

    async def _entry(self, max_retries: int = 3, initial_delay: float = 2.0) -> _EngineEntry:
        entry = _engines.get(self._url)
        if entry is not None:
            return entry

        last_error = None
        for attempt in range(1, max_retries + 1):
            try:
                self.logger.info(f"Connecting to Postgres at {self.db_config.host} (attempt {attempt}/{max_retries})")
                entry = await self._connect_once()
                _engines[self._url] = entry
                self.logger.info("Postgres engine ready")
                return entry
            except (SQLAlchemyError, OSError, ConnectionError) as e:
                last_error = e
                if attempt == max_retries:
                    break
                delay = initial_delay * (2 ** (attempt - 1))
                self.logger.warning(f"Postgres connection failed: {e}. Retrying in {delay:.1f}s")
                await asyncio.sleep(delay)

        self.logger.error(f"Giving up on Postgres after {max_retries} attempts: {last_error}")
        raise ConnectionError(f"Could not connect to Postgres: {last_error}") from last_error

    async def get_engine(self, max_retries: int = 3, initial_delay: float = 2.0) -> AsyncEngine:
        """Cached engine; the first call verifies connectivity with exponential backoff."""
        return (await self._entry(max_retries, initial_delay)).engine

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """One unit of work: commits when the block exits cleanly, rolls back otherwise."""
        entry = await self._entry()
        async with entry.sessions() as session:
            try:
                yield session
                if session.in_transaction():
                    await session.commit()
            except Exception as e:
                self.logger.error(f"Rolling back database session: {e}")
                if session.in_transaction():
                    await session.rollback()
                raise


async def close_all_engines() -> None:
    """Dispose every cached engine. Called on application shutdown."""
    logger = get_logger(__name__)
    while _engines:
        url, entry = _engines.popitem()
        try:
            await entry.engine.dispose()
        except SQLAlchemyError as e:
            logger.error(f"Error closing engine for {url.split('@')[-1]}: {e}")
