import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .config import settings


logger = logging.getLogger("app.core.database")


def get_database_url() -> str:
    """Get database URL with SSL support for production databases."""
    if settings.DATABASE_URL:
        return settings.DATABASE_URL

    base_url = (
        f"postgresql+psycopg2://{settings.POSTGRES_USER}:"
        f"{settings.POSTGRES_PASSWORD}@{settings.POSTGRES_HOST}:"
        f"{settings.POSTGRES_PORT}/{settings.POSTGRES_DB}"
    )

    # Managed PostgreSQL requires SSL connections
    if ".render.com" in settings.POSTGRES_HOST or settings.ENVIRONMENT.lower() in ("production", "staging"):
        if "?" not in base_url:
            base_url += "?sslmode=require"
        else:
            base_url += "&sslmode=require"

    return base_url


def _configure_sqlite(engine: Engine) -> None:
    """Enable foreign keys and writer-serializing transactions on SQLite.

    pysqlite's own transaction handling is switched off so that SQLAlchemy
    controls BEGIN; BEGIN IMMEDIATE takes the write lock up front, which
    lets concurrent writers wait on the busy timeout instead of failing
    with a lock-upgrade deadlock.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # noqa: ARG001
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(url: str, **kwargs) -> Engine:
    """Create an engine for the given URL, applying SQLite tweaks when needed."""
    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", 30)
        engine = create_engine(url, connect_args=connect_args, **kwargs)
        _configure_sqlite(engine)
        return engine
    return create_engine(url, pool_pre_ping=True, **kwargs)


engine = create_db_engine(get_database_url())
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    except Exception:
        # Request aborted: nothing from the in-flight transaction survives
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit the unit of work on success, roll everything back on any error."""
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise
