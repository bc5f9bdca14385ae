from collections.abc import Generator

from fastapi import Request
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    pass


def create_db_engine(database_url: str) -> Engine:
    """Create an engine for the given URL.

    SQLite connections are shared across threads since background import runs
    use the same database as the request handlers.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url:
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create all tables that don't exist yet."""
    from shiori.models import book  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_session_factory(request: Request) -> sessionmaker[Session]:
    """Dependency returning the session factory owned by the application."""
    return request.app.state.session_factory


def get_db(request: Request) -> Generator[Session, None, None]:
    """Dependency for FastAPI routes to get a database session."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
