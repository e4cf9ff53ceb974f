"""Database connection, transaction and schema management."""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from alembic import command
from alembic.config import Config as AlembicConfig
from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import Settings
from .errors import ConstraintViolation, StoreIoError

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def _is_memory_sqlite(url) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def is_memory_database(database_url: str) -> bool:
    """True for an in-memory SQLite URL such as ``sqlite://``."""
    return _is_memory_sqlite(make_url(database_url))


def _configure_sqlite(engine: Engine) -> None:
    """Enforce foreign keys and take the write lock when a transaction begins."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy, not the driver, decide when transactions start
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(connection):
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(settings: Settings) -> Engine:
    """Create SQLAlchemy engine with connection pooling.

    In-memory SQLite gets a single shared connection, since every new
    connection would otherwise see its own empty database. That connection
    is not safe for concurrent sessions, so it is only meant for tests and
    one-shot commands; `grocerydb serve` refuses it.
    """
    url = make_url(settings.database_url)

    if _is_memory_sqlite(url):
        engine = create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=False,
        )
    else:
        connect_args = {}
        if url.get_backend_name() == "sqlite":
            connect_args["check_same_thread"] = False
        engine = create_engine(
            url,
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_timeout=settings.pool_timeout,
            pool_pre_ping=True,  # Verify connections before using
            connect_args=connect_args,
            echo=False,  # Set to True for SQL debugging
        )

    if url.get_backend_name() == "sqlite":
        _configure_sqlite(engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autoflush=False, bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Run the body in one transaction.

    Commits on success and rolls back on any exception. Database errors are
    re-raised as store errors.

    Usage:
        with session_scope(factory) as db_session:
            db_session.execute(...)
    """
    db_session = session_factory()
    try:
        yield db_session
        db_session.commit()
    except IntegrityError as e:
        db_session.rollback()
        raise ConstraintViolation(str(e.orig)) from e
    except SQLAlchemyError as e:
        db_session.rollback()
        logger.error(f"Database operation failed: {type(e).__name__}: {e}")
        raise StoreIoError(str(e)) from e
    except Exception:
        db_session.rollback()
        raise
    finally:
        db_session.close()


def init_schema(engine: Engine) -> None:
    """Upgrade the database to the latest schema revision."""
    alembic_config = AlembicConfig()
    alembic_config.set_main_option("script_location", str(MIGRATIONS_DIR))
    try:
        with engine.begin() as connection:
            alembic_config.attributes["connection"] = connection
            command.upgrade(alembic_config, "head")
    except SQLAlchemyError as e:
        raise StoreIoError(f"schema upgrade failed: {e}") from e
    logger.info("Database schema is at head revision")


def check_database_health(engine: Engine) -> bool:
    """Verify database connection is working.

    Returns:
        True if database is healthy, False otherwise.
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return False


def dispose_engine(engine: Engine) -> None:
    """Dispose of the engine and all pooled connections.

    Call this during graceful shutdown.
    """
    engine.dispose()


def list_tables(engine: Engine) -> list[str]:
    """List all tables in the database.

    Returns:
        List of table names.
    """
    return sorted(inspect(engine).get_table_names())
