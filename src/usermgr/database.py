"""Database setup for user and file metadata records."""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()

_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}


def make_engine(database_url: str) -> Engine:
    """Create an engine, sharing one connection for in-memory SQLite."""
    kwargs = {"future": True}
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, **kwargs)

    kwargs["connect_args"] = {"check_same_thread": False}
    if database_url in _MEMORY_URLS:
        kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **kwargs)
    event.listen(engine, "connect", _register_unicode_lower)
    return engine


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def _register_unicode_lower(dbapi_connection, connection_record) -> None:
    # SQLite's built-in lower() only folds ASCII letters.
    dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


def init_db(engine: Engine) -> None:
    """Create database tables if they do not exist."""
    # Register the mapped classes on Base.metadata before creating tables.
    from .models import file, user  # noqa: F401

    Base.metadata.create_all(bind=engine)
