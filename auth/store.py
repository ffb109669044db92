"""
auth/store.py -- SQLAlchemy Core persistence layer for credential records.

Pattern: Repository + Data Mapper (same as ledger/store.py).
UserStore is the repository; _row_to_user is the mapper. AuthCore and route
code never touch SQL directly.

Lifecycle: the store is constructed with a URL and does nothing until open()
is called. The application lifespan opens it at startup, injects it into
AuthCore, and closes it at shutdown. Using a store that is not open raises
StoreUnavailableError, as does any SQLAlchemy OperationalError (locked or
unreachable database). IntegrityError on insert is surfaced as
UserExistsError -- the username column is UNIQUE, which settles races between
two concurrent registrations for the same name.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or ledger/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, OperationalError

from auth.models import User
from core.db import make_engine, now_iso
from core.errors import StoreUnavailableError, UserExistsError

logger = logging.getLogger("yaccounting.auth")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default="user"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)



# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User credential records.

    Usage:
        with UserStore("sqlite:///yaccounting.db") as store:
            store.create_user(User(username="alice", hashed_password=hasher.hash("Passw0rd!")))
            user = store.find_user(name="alice")
    """

    def __init__(self, db_url: str) -> None:
        self.db_url = db_url
        self._engine: Engine | None = None

    def open(self) -> UserStore:
        """Create the engine and the schema. Idempotent."""
        if self._engine is None:
            engine = make_engine(self.db_url)
            try:
                _metadata.create_all(engine)
            except OperationalError as exc:
                engine.dispose()
                raise StoreUnavailableError() from exc
            self._engine = engine
        return self

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def __enter__(self) -> UserStore:
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        if self._engine is None:
            raise StoreUnavailableError("User store is not open.")
        try:
            with self._engine.connect() as conn:
                yield conn
        except OperationalError as exc:
            logger.error("User store operation failed: %s", exc.__class__.__name__)
            raise StoreUnavailableError() from exc

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def find_user(self, name: str | None = None) -> User | None:
        """Return the first user matching the filter, or None.

        name matches the username exactly (case-sensitive). With no filter
        the lowest-id user is returned.
        """
        query = _users.select().order_by(_users.c.id).limit(1)
        if name is not None:
            query = query.where(_users.c.username == name)
        with self._connect() as conn:
            row = conn.execute(query).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def create_user(self, user: User) -> User:
        """Insert a new user and return the stored record with id and timestamps.

        Raises UserExistsError if the username is already taken.
        """
        stamp = now_iso()
        with self._connect() as conn:
            try:
                result = conn.execute(
                    _users.insert().values(
                        username=user.username,
                        hashed_password=user.hashed_password,
                        role=user.role,
                        created_at=stamp,
                        updated_at=stamp,
                    )
                )
                conn.commit()
            except IntegrityError as exc:
                raise UserExistsError() from exc
            user_id = result.inserted_primary_key[0]
        return User(
            id=user_id,
            username=user.username,
            hashed_password=user.hashed_password,
            role=user.role,
            created_at=stamp,
            updated_at=stamp,
        )

    def count_users(self) -> int:
        with self._connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        hashed_password=row.hashed_password,
        role=row.role,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
