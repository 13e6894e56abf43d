"""
SQLAlchemy engine construction for the SQLite-backed document store.

Creates:
- build_engine: a new Engine for a given database file, with journal mode,
  foreign key enforcement and busy timeout applied to every DBAPI connection
- get_effective_db_params: diagnostics about the active storage file

Design:
- No engine is created at import time; DocumentStore.from_settings builds one.
- pysqlite's own transaction handling is disabled and SQLAlchemy emits BEGIN
  itself, so transactions and SAVEPOINTs behave as documented by SQLite.
"""

import os
from typing import Any, Dict

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from ..core.config import get_settings
from ..core.logger import get_logger

logger = get_logger(__name__)

MEMORY_PATHS = ("", ":memory:")


def _sqlite_url(db_path: str) -> str:
    if db_path in MEMORY_PATHS:
        return "sqlite+pysqlite:///:memory:"
    return f"sqlite+pysqlite:///{db_path}"


def _install_connection_hooks(
    engine: Engine, journal_mode: str, foreign_keys: bool, busy_timeout_ms: int
) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy own BEGIN/COMMIT instead of the driver.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute(f"PRAGMA journal_mode={journal_mode}")
            cursor.execute(f"PRAGMA foreign_keys={'ON' if foreign_keys else 'OFF'}")
            cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
        finally:
            cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


# PUBLIC_INTERFACE
def build_engine(
    db_path: str,
    *,
    echo: bool = False,
    journal_mode: str = "WAL",
    foreign_keys: bool = True,
    busy_timeout_ms: int = 5000,
) -> Engine:
    """Return a new SQLAlchemy Engine for the SQLite file at ``db_path``.

    Args:
        db_path: Path of the database file; '' or ':memory:' gives an in-memory
                 database shared by every checkout of this engine.
        echo: Echo SQL statements to the logs.
        journal_mode: SQLite journal mode (WAL lets readers proceed during a write).
        foreign_keys: Enforce referential integrity.
        busy_timeout_ms: Wait this long on a locked database before failing.
    """
    engine_kwargs: Dict[str, Any] = {"echo": bool(echo)}
    if db_path in MEMORY_PATHS:
        # One shared connection, otherwise every checkout sees a fresh empty database.
        engine_kwargs["poolclass"] = StaticPool
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        directory = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(directory, exist_ok=True)

    engine = create_engine(_sqlite_url(db_path), **engine_kwargs)
    _install_connection_hooks(engine, journal_mode, foreign_keys, busy_timeout_ms)

    logger.info(
        "SQLAlchemy engine initialized.",
        extra={"db_path": db_path or ":memory:", "journal_mode": journal_mode, "foreign_keys": foreign_keys},
    )
    return engine


# PUBLIC_INTERFACE
def get_effective_db_params() -> Dict[str, Any]:
    """Return diagnostics about the configured storage file without touching the database."""
    settings = get_settings()
    path = settings.DOCSTORE_DB_PATH
    in_memory = path in MEMORY_PATHS
    absolute = None if in_memory else os.path.abspath(path)
    return {
        "db_path": absolute or ":memory:",
        "in_memory": in_memory,
        "exists": bool(absolute and os.path.exists(absolute)),
        "size_bytes": os.path.getsize(absolute) if absolute and os.path.exists(absolute) else None,
        "journal_mode": settings.DB_JOURNAL_MODE,
        "foreign_keys": settings.DB_FOREIGN_KEYS,
    }
