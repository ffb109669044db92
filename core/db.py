"""
core/db.py -- Engine construction shared by auth/store.py and ledger/store.py.

SQLAlchemy provides a database-agnostic abstraction: swapping SQLite for
PostgreSQL is a DATABASE_URL change, not a rewrite.

Layer rule: core/ is the kernel. No imports from api/, auth/ or ledger/.
"""

from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an Engine; SQLite URLs get cross-thread access and WAL mode.

    check_same_thread=False is required because store calls run on the
    thread pool, not the thread that opened the connection.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
