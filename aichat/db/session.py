"""Session factory and the `get_db` request dependency."""

from collections.abc import Iterator

from sqlalchemy.orm import Session, sessionmaker

from aichat.db.engine import get_engine

_session_factory: sessionmaker[Session] | None = None


def get_session_factory() -> sessionmaker[Session]:
    """
    Factory bound to the current engine.

    Rebuilt when the engine has been disposed and recreated since the last call.
    """
    global _session_factory
    engine = get_engine()
    if _session_factory is None or _session_factory.kw.get("bind") is not engine:
        _session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return _session_factory


def get_db() -> Iterator[Session]:
    with get_session_factory()() as session:
        yield session
