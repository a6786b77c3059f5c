import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Create Base class for models
Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///./marketplace.db"

# Internal lazy globals
_engine = None
_SessionLocal = None
_database_url = None


def _mask_url_password(url: str) -> str:
    try:
        return make_url(url).render_as_string(hide_password=True)
    except Exception:
        return "<unparseable url>"


def get_engine():
    """Return a cached SQLAlchemy engine, creating it from DATABASE_URL on
    first call. This allows tests to set DATABASE_URL before the engine is
    constructed."""
    global _engine, _SessionLocal, _database_url
    database_url = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    if _engine is not None and _database_url == database_url:
        return _engine

    if _engine is not None:
        _engine.dispose()
        _SessionLocal = None

    url = make_url(database_url)
    if url.drivername.startswith("postgres"):
        _engine = create_engine(
            database_url,
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,  # Detects and refreshes stale connections
            pool_recycle=3600,
            connect_args={
                "application_name": "consultation_marketplace",
                "connect_timeout": 10,  # Fail fast on connection issues
            },
            echo=False,
        )
    elif url.drivername.startswith("sqlite") and url.database in (None, "", ":memory:"):
        # Single shared in-memory database so DDL persists across sessions
        _engine = create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        _engine = create_engine(database_url, echo=False)

    logger.debug(
        "SQLAlchemy engine created",
        extra={
            "context": {
                "url": _mask_url_password(database_url),
                "dialect": _engine.dialect.name,
            }
        },
    )
    _database_url = database_url
    return _engine


def get_sessionmaker():
    """Return a cached sessionmaker bound to the lazy engine."""
    global _SessionLocal
    engine = get_engine()
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
        )
    return _SessionLocal


def SessionLocal():
    """Calling SessionLocal() returns a new Session bound to the lazy engine."""
    return get_sessionmaker()()


def create_tables():
    """Create all tables in database using the lazy engine."""
    # Models must be imported so Base.metadata is populated
    from marketplace.db import base  # noqa: F401

    Base.metadata.create_all(bind=get_engine())


def drop_tables():
    from marketplace.db import base  # noqa: F401

    Base.metadata.drop_all(bind=get_engine())
