# opschat/infrastructure/database/session.py

from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from opschat.config.settings import settings

_engine: Engine | None = None

_SessionLocal = sessionmaker(
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
)


def init_engine(url: str | None = None, **engine_kwargs: Any) -> Engine:
    """(Re)bind the session factory. Called lazily with the settings URL,
    or explicitly by tests with an in-memory database."""
    global _engine

    if _engine is not None:
        _engine.dispose()

    kwargs: dict[str, Any] = {"echo": False, "pool_pre_ping": True}
    kwargs.update(engine_kwargs)

    _engine = create_engine(url or settings.database_url, **kwargs)
    _SessionLocal.configure(bind=_engine)
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        return init_engine()
    return _engine


@contextmanager
def db_session() -> Iterator[Session]:
    get_engine()
    session: Session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
