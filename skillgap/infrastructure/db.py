"""
Engine and session-factory construction from the ``DB_*`` settings.

SQLite engines get foreign keys switched on for every connection, so the
``ON DELETE`` rules on job role requirements, questions and results behave
the same on SQLite as on MySQL.
"""

from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .config import DatabaseConfig, get_settings
from .logging import get_logger

logger = get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_database_engine(config: DatabaseConfig | None = None) -> Engine:
    """Engine for the configured backend; defaults to the cached settings."""
    if config is None:
        config = get_settings().database

    connection_url = config.get_connection_url()
    # Credentials stay out of the log
    logger.info(f"Creating {config.backend} engine for {connection_url.split('@')[-1]}")

    try:
        engine = create_engine(connection_url, **config.get_engine_options())
    except Exception as e:
        logger.error(f"Failed to create database engine: {str(e)}")
        raise

    if config.backend == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_session_factory(engine: Engine | None = None) -> sessionmaker:
    """
    Session factory shared by request sessions and result recorders.

    ``expire_on_commit=False`` keeps loaded rows readable after a recorder's
    transaction commits on its worker thread.
    """
    if engine is None:
        engine = create_database_engine()

    return sessionmaker(
        bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True
    )


def get_database_url() -> str:
    return get_settings().database.get_connection_url()
