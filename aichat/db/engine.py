"""
SQLAlchemy engine for the configured DATABASE_URL.

SQLite (the default) gets a same-thread override, since FastAPI runs sync
dependencies in a threadpool, and enforced foreign keys so conversation
deletes cascade to messages. Other dialects use a small pre-pinged pool.
"""

from pathlib import Path

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from aichat.config import get_settings
from aichat.core import get_logger

logger = get_logger(__name__)

_engine: Engine | None = None


def _sqlite_pragmas(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def build_engine(database_url: str, echo: bool = False) -> Engine:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(url, echo=echo, pool_pre_ping=True, pool_size=5, max_overflow=10)

    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _sqlite_pragmas)
    return engine


def get_engine() -> Engine:
    """Process-wide engine, built from settings on first use."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = build_engine(settings.database_url, echo=settings.debug)
        logger.info(
            "Database engine created",
            data={"dialect": _engine.dialect.name, "database": _engine.url.database},
        )
    return _engine


def verify_database_connection() -> bool:
    """Run `SELECT 1`; False (and an error log) when the database is unreachable."""
    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Database connection failed", data={"reason": str(exc)})
        return False
    return True


def dispose_engine() -> None:
    global _engine
    if _engine is None:
        return
    _engine.dispose()
    _engine = None
    logger.info("Database engine disposed")
