"""
Process-wide SQLAlchemy engine and session factory.

One engine per process, created by ``init_engine_from_url`` and torn down by
``reset_engine``.  Callers never build sessions from an engine directly;
they ask ``get_session_factory()`` so every thread gets its own session
bound to the shared pool.

Backends:

* PostgreSQL (psycopg2) in production, READ COMMITTED over a pre-pinged
  QueuePool.  Contended writes (accepting a negotiation, settling an
  engagement) are conditional UPDATEs, so no stronger isolation is needed.
* SQLite for local runs and the test suite.  ``sqlite://`` (memory) shares
  one connection through a StaticPool; a file database opens with
  ``check_same_thread=False`` and a busy timeout so concurrent writers wait
  for the write lock instead of failing immediately.
"""

import atexit
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from marketplace_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_READY = "database engine not initialized; call init_engine_from_url() first"


def _engine_options(
    database_url: str,
    *,
    pool_size: int,
    max_overflow: int,
    pool_pre_ping: bool,
    pool_timeout: int,
    pool_recycle: int,
    sqlite_busy_timeout: float,
) -> dict[str, Any]:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return {
            "poolclass": QueuePool,
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_pre_ping": pool_pre_ping,
            "pool_timeout": pool_timeout,
            "pool_recycle": pool_recycle,
            "isolation_level": "READ COMMITTED",
        }

    if url.database in (None, "", ":memory:"):
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }

    return {
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_timeout": pool_timeout,
        "connect_args": {
            "check_same_thread": False,
            "timeout": sqlite_busy_timeout,
        },
    }


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    sqlite_busy_timeout: float = 30.0,
) -> Engine:
    """
    Create the process engine, replacing (and disposing) any earlier one.

    Sessions from the factory keep attribute values after commit
    (``expire_on_commit=False``) so DTOs can be built from them once the
    unit of work has closed.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()

    options = _engine_options(
        database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        sqlite_busy_timeout=sqlite_busy_timeout,
    )
    _engine = create_engine(database_url, echo=echo, **options)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "poolclass": type(_engine.pool).__name__,
            "echo": echo,
        },
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_READY)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """The shared factory; worker threads each open their own session from it."""
    if _SessionFactory is None:
        raise RuntimeError(_NOT_READY)
    return _SessionFactory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Commit on clean exit, roll back and re-raise otherwise.  Scripts and tests."""
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("session_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def _metadata():
    from marketplace_kernel.db.base import Base
    import marketplace_kernel.models  # noqa: F401  registers every table

    return Base.metadata


def create_tables() -> None:
    metadata = _metadata()
    metadata.create_all(get_engine())
    logger.info("tables_created", extra={"table_count": len(metadata.sorted_tables)})


def drop_tables() -> None:
    """Drop every marketplace table.  Test and bootstrap use only."""
    _metadata().drop_all(get_engine())
    logger.info("tables_dropped")


def reset_engine() -> None:
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


atexit.register(reset_engine)
