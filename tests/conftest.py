"""
Pytest configuration and fixtures for backend tests.
"""

import os

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["IMPORT_PAGE_INTERVAL_SECONDS"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from shiori.api.deps import get_bookmeter_client, get_open_library_client
from shiori.core.database import (
    Base,
    create_db_engine,
    create_session_factory,
    get_db,
    get_session_factory,
    init_db,
)
from shiori.main import app
from shiori.models.book import BookType
from shiori.services.catalog_client import BookmeterClient, OpenLibraryClient
from shiori.services.catalog_parser import CatalogRecord
from shiori.services.library_store import Classification, LibraryStore

from catalog_pages import CatalogStub


@pytest.fixture(scope="function")
def session_factory() -> Generator[sessionmaker[Session], None, None]:
    """Fresh in-memory database for each test."""
    engine = create_db_engine("sqlite:///:memory:")
    init_db(engine)
    try:
        yield create_session_factory(engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db: Session) -> LibraryStore:
    return LibraryStore(db)


@pytest.fixture
def add_book(store: LibraryStore) -> Callable[..., int]:
    """Insert a library entry directly."""

    def _add(
        title: str,
        author: str | None = None,
        book_type: BookType = BookType.MANGA,
        series: str | None = None,
    ) -> int:
        record = CatalogRecord(title=title, author=author)
        return store.insert(record, Classification(book_type, series=series))

    return _add


@pytest.fixture
def catalog_stub() -> CatalogStub:
    return CatalogStub()


@pytest.fixture(scope="function")
def client(session_factory, catalog_stub) -> Generator[TestClient, None, None]:
    """Create a test client with database and catalog overrides."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    bookmeter = BookmeterClient(transport=catalog_stub.transport)
    open_library = OpenLibraryClient(transport=catalog_stub.transport)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_bookmeter_client] = lambda: bookmeter
    app.dependency_overrides[get_open_library_client] = lambda: open_library

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
