"""Database connection lifecycle + picking the storage backend from the settings"""

import logging
from typing import Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.core.config import Settings
from src.db.memory_store import InMemoryGameStore
from src.db.repository import GameStore
from src.db.schema import Base
from src.db.sql_store import SQLGameStore

logger = logging.getLogger(__name__)


class Database:
    """
    Owns the SQLAlchemy engine. Nothing is opened until connect() is called,
    and dispose() releases the pooled connections again.
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self.echo = echo
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker[Session]] = None

    def connect(self) -> None:
        if self._engine is not None:
            return
        self._engine = create_engine(self.url, echo=self.echo)
        # Ensure all tables are created
        Base.metadata.create_all(bind=self._engine)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        logger.info("Connected to database %s", self._engine.url.render_as_string())

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._session_factory is None:
            raise RuntimeError("Database is not connected. Call connect() first.")
        return self._session_factory

    def dispose(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database connections closed")


def build_store(settings: Settings, database: Optional[Database] = None) -> GameStore:
    """Construct the configured GameStore. The SQL backend needs a connected Database."""
    if settings.storage == "memory":
        logger.info("Using in-memory game storage (games are lost on restart)")
        return InMemoryGameStore()

    if database is None:
        raise ValueError("The sql storage backend requires a Database instance.")
    database.connect()
    logger.info("Using SQL game storage")
    return SQLGameStore(database.session_factory, storage_retries=settings.storage_retries)
