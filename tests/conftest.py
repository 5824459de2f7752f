"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from typing import Generator

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.chess.rules import StandardRules
from src.db.memory_store import InMemoryGameStore
from src.db.schema import Base
from src.db.sql_store import SQLGameStore
from src.services.game_service import GameService

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture
def session_factory() -> Generator[sessionmaker[Session], None, None]:
    """Sessions on a test database. Tables are removed at teardown to make tests independent of each other."""
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sql_store(session_factory: sessionmaker[Session]) -> SQLGameStore:
    return SQLGameStore(session_factory, storage_retries=2)


@pytest.fixture
def memory_store() -> Generator[InMemoryGameStore, None, None]:
    """Ensures to clear the store between tests"""
    store = InMemoryGameStore()
    try:
        yield store
    finally:
        store.clear()


@pytest.fixture(params=["memory", "sql"])
def store(
    request: pytest.FixtureRequest, session_factory: sessionmaker[Session]
) -> InMemoryGameStore | SQLGameStore:
    """Run the same test against both backends: they must be interchangeable."""
    if request.param == "memory":
        return InMemoryGameStore()
    return SQLGameStore(session_factory)


@pytest.fixture
def service(store: InMemoryGameStore | SQLGameStore) -> GameService:
    return GameService(store, StandardRules())
