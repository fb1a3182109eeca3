import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from . import models  # noqa: F401  registers the tables on SQLModel.metadata
from .errors import StoreError

logger = logging.getLogger(__name__)


class Database:
    """Store client shared by the registry, the message store and the sweeper.

    Built explicitly by the application and handed to each component;
    ``connect()`` must be awaited before the first session is opened and
    ``close()`` disposes the engine.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None
        self._session_factory = None

    async def connect(self) -> None:
        if self.engine is not None:
            return
        # only SQLite needs that arg
        opts = {"check_same_thread": False} if make_url(self.url).drivername.startswith("sqlite") else {}
        self.engine = create_async_engine(self.url, echo=self.echo, connect_args=opts)
        self._session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
        except SQLAlchemyError as e:
            await self.close()
            raise StoreError(f"Could not initialize database: {e}") from e
        logger.info("Connected to %s", make_url(self.url).render_as_string(hide_password=True))

    async def close(self) -> None:
        if self.engine is None:
            return
        await self.engine.dispose()
        self.engine = None
        self._session_factory = None
        logger.info("Database connection closed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session; persistence failures surface as ``StoreError``.

        ``IntegrityError`` is passed through untouched so callers can map
        constraint violations to their own errors.
        """
        if self._session_factory is None:
            raise StoreError("Database is not connected")
        async with self._session_factory() as session:
            try:
                yield session
            except IntegrityError:
                await session.rollback()
                raise
            except SQLAlchemyError as e:
                await session.rollback()
                logger.warning("Store failure: %s", e)
                raise StoreError("Falha ao acessar o banco de dados.") from e
