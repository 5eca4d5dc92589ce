"""Database engine builder.

One place decides pooling and dialect quirks:
- PostgreSQL: NullPool by default (DONVIE_DB_POOL=nullpool|queuepool)
- SQLite file: NullPool, every transaction opened with BEGIN IMMEDIATE so
  concurrent writers queue on the database lock instead of failing at commit
- SQLite in-memory: StaticPool (single shared connection)
"""

import logging
import os
import re
from typing import Any, Optional

from sqlalchemy import Engine, NullPool, StaticPool, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

SQLITE_BUSY_TIMEOUT_SEC = 30


def _mask_password(url: str) -> str:
    """Mask password in database URL for safe logging."""
    return re.sub(r"://([^:]+):([^@]+)@", r"://\1:***@", url)


def _is_sqlite_memory(url: str) -> bool:
    return url in {"sqlite://", "sqlite:///:memory:"} or "mode=memory" in url


def _install_sqlite_immediate_begin(engine: Engine) -> None:
    """Take the write lock at BEGIN.

    pysqlite's implicit BEGIN is deferred: two transactions can both read,
    then deadlock upgrading to a write lock. Emitting BEGIN IMMEDIATE makes
    writers wait on the busy timeout instead.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: Optional[str] = None) -> Engine:
    """Build SQLAlchemy engine.

    Args:
        database_url: Database URL. If None, reads from env DATABASE_URL.

    Returns:
        SQLAlchemy Engine instance.

    Raises:
        ValueError: If no URL is available or DONVIE_DB_POOL is invalid.

    Environment Variables:
        DATABASE_URL: Runtime connection string (when no argument is passed)
        DONVIE_DB_POOL: "nullpool" (default) | "queuepool" (PostgreSQL only)
        DONVIE_DB_POOL_SIZE / DONVIE_DB_MAX_OVERFLOW: QueuePool sizing
    """
    url = database_url or os.getenv("DATABASE_URL")
    if not url:
        raise ValueError(
            "DATABASE_URL is required. "
            "Pass as argument or set DATABASE_URL environment variable."
        )

    if url.startswith("sqlite"):
        connect_args: dict[str, Any] = {
            "check_same_thread": False,
            "timeout": SQLITE_BUSY_TIMEOUT_SEC,
        }
        if _is_sqlite_memory(url):
            engine = create_engine(url, connect_args=connect_args, poolclass=StaticPool)
        else:
            engine = create_engine(url, connect_args=connect_args, poolclass=NullPool)
        _install_sqlite_immediate_begin(engine)
    else:
        pool_mode = os.getenv("DONVIE_DB_POOL", "nullpool").lower()
        connect_args = {}
        app_name = os.getenv("DONVIE_DB_APPLICATION_NAME", "donvie-api")
        if app_name and url.startswith("postgresql"):
            connect_args["application_name"] = app_name

        if pool_mode == "nullpool":
            engine = create_engine(
                url,
                poolclass=NullPool,
                pool_pre_ping=True,
                connect_args=connect_args,
            )
        elif pool_mode == "queuepool":
            engine = create_engine(
                url,
                pool_pre_ping=True,
                pool_size=int(os.getenv("DONVIE_DB_POOL_SIZE", "5")),
                max_overflow=int(os.getenv("DONVIE_DB_MAX_OVERFLOW", "10")),
                connect_args=connect_args,
            )
        else:
            raise ValueError(
                f"Invalid DONVIE_DB_POOL value: {pool_mode}. "
                "Must be 'nullpool' or 'queuepool'."
            )

    logger.debug(
        "Database engine created: pool=%s, url=%s",
        engine.pool.__class__.__name__,
        _mask_password(url),
    )
    return engine


def build_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    """Build SQLAlchemy sessionmaker (autocommit=False, autoflush=False)."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
