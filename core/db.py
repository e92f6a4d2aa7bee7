"""
core/db.py -- Shared SQLAlchemy engine construction for the Storefront stores.

Both auth/store.py and catalog/store.py build their engine here so the SQLite
tuning (thread sharing, WAL, busy timeout) lives in one place.

Timeouts:
  SQLite: the `timeout` connect arg is the busy timeout -- a writer waiting on
      a lock raises OperationalError after that many seconds instead of
      blocking forever.
  Other dialects: `pool_timeout` bounds the wait for a pooled connection.
  Either way the store turns the error into StoreFailure.

Layer rule: core/ is the kernel. No imports from api/, auth/, or catalog/.
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _ensure_sqlite_dir(db_url: str) -> None:
    """Create the parent directory of an on-disk SQLite database file."""
    database = make_url(db_url).database
    if not database or database == ":memory:" or database.startswith("file:"):
        return
    Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def create_store_engine(db_url: str, timeout: float = 30.0) -> Engine:
    """Return an Engine configured for use from FastAPI's threadpool."""
    if db_url.startswith("sqlite"):
        _ensure_sqlite_dir(db_url)
        engine = create_engine(db_url, connect_args={"check_same_thread": False, "timeout": timeout})
        event.listen(engine, "connect", _set_wal_mode)
        return engine
    return create_engine(db_url, pool_timeout=timeout, pool_pre_ping=True)
