"""
ledger/store.py -- SQLAlchemy-backed persistence for accounting entries.

Uses SQLAlchemy Core (not ORM) so the dataclass in ledger/models.py remains
the authoritative domain representation.

Pattern: Repository + Data Mapper. EntryStore is the repository;
_row_to_entry is the mapper. description and value pass through the injected
SymmetricCipher on the way in and out, so the database only ever holds
envelopes for them. day / month / year / entry stay in clear because list
filters match on them.

Ownership: every read and write takes the owner's username and includes it
in the WHERE clause, so one user can never see or change another's entries.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    with EntryStore("sqlite:///yaccounting.db", cipher) as store:
        entry_id = store.create_entry(entry).id
        store.list_entries("alice", year="2024")
        store.delete_entry(entry_id, "alice")
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import OperationalError

from core.crypto import SymmetricCipher
from core.db import make_engine, now_iso
from core.errors import StoreUnavailableError
from ledger.models import Entry

logger = logging.getLogger("yaccounting.ledger")

# Columns a caller may filter on or update. Encrypted columns cannot be
# filtered because every envelope has a fresh IV.
FILTER_FIELDS = ("day", "month", "year", "entry")
UPDATE_FIELDS = ("day", "month", "year", "entry", "description", "value")
_ENCRYPTED_FIELDS = ("description", "value")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_entries = Table(
    "entries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner", String(255), nullable=False, index=True),
    Column("day", String(2), nullable=False),
    Column("month", String(2), nullable=False),
    Column("year", String(4), nullable=False),
    Column("entry", String(50), nullable=False),
    Column("description", Text, nullable=False),  # cipher envelope
    Column("value", Text, nullable=False),  # cipher envelope
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


class EntryStore:
    def __init__(self, db_url: str, cipher: SymmetricCipher) -> None:
        self.db_url = db_url
        self.cipher = cipher
        self._engine: Optional[Engine] = None

    def open(self) -> "EntryStore":
        if self._engine is None:
            engine = make_engine(self.db_url)
            try:
                metadata.create_all(engine)
            except OperationalError as exc:
                engine.dispose()
                raise StoreUnavailableError() from exc
            self._engine = engine
        return self

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def __enter__(self) -> "EntryStore":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        if self._engine is None:
            raise StoreUnavailableError("Entry store is not open.")
        try:
            with self._engine.connect() as conn:
                yield conn
        except OperationalError as exc:
            logger.error("Entry store operation failed: %s", exc.__class__.__name__)
            raise StoreUnavailableError() from exc

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def create_entry(self, entry: Entry) -> Entry:
        """Insert an entry and return it with id and timestamps set."""
        stamp = now_iso()
        with self._connect() as conn:
            result = conn.execute(
                _entries.insert().values(
                    owner=entry.owner,
                    day=entry.day,
                    month=entry.month,
                    year=entry.year,
                    entry=entry.entry,
                    description=self.cipher.encrypt(entry.description),
                    value=self.cipher.encrypt(entry.value),
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
            conn.commit()
            entry_id = result.inserted_primary_key[0]
        logger.info("Entry %d created for %r", entry_id, entry.owner)
        return Entry(
            id=entry_id,
            owner=entry.owner,
            day=entry.day,
            month=entry.month,
            year=entry.year,
            entry=entry.entry,
            description=entry.description,
            value=entry.value,
            created_at=stamp,
            updated_at=stamp,
        )

    def get_entry(self, entry_id: int, owner: str) -> Optional[Entry]:
        with self._connect() as conn:
            row = conn.execute(
                _entries.select().where((_entries.c.id == entry_id) & (_entries.c.owner == owner))
            ).fetchone()
        return self._row_to_entry(row) if row is not None else None

    def list_entries(self, owner: str, **filters: Optional[str]) -> list[Entry]:
        """Return the owner's entries, oldest first, matching every given filter.

        Accepted filters: day, month, year, entry. None values are ignored.
        Unknown keys raise ValueError.
        """
        unknown = set(filters) - set(FILTER_FIELDS)
        if unknown:
            raise ValueError(f"Unknown entry filters: {sorted(unknown)!r}")
        query = _entries.select().where(_entries.c.owner == owner)
        for name, value in filters.items():
            if value is not None:
                query = query.where(_entries.c[name] == value)
        with self._connect() as conn:
            rows = conn.execute(query.order_by(_entries.c.id)).fetchall()
        return [self._row_to_entry(r) for r in rows]

    def update_entry(self, entry_id: int, owner: str, **fields: str) -> Optional[Entry]:
        """Update mutable fields on an owned entry.

        Returns the updated Entry, or None if no entry with that id belongs
        to owner. Unknown keys raise ValueError.
        """
        unknown = set(fields) - set(UPDATE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown entry fields: {sorted(unknown)!r}")
        values = {
            name: self.cipher.encrypt(value) if name in _ENCRYPTED_FIELDS else value for name, value in fields.items()
        }
        values["updated_at"] = now_iso()
        with self._connect() as conn:
            result = conn.execute(
                _entries.update().where((_entries.c.id == entry_id) & (_entries.c.owner == owner)).values(**values)
            )
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_entry(entry_id, owner)

    def delete_entry(self, entry_id: int, owner: str) -> bool:
        """Delete an owned entry. Returns True if deleted, False if not found."""
        with self._connect() as conn:
            result = conn.execute(
                _entries.delete().where((_entries.c.id == entry_id) & (_entries.c.owner == owner))
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Row mapper (Data Mapper pattern)
    # ------------------------------------------------------------------

    def _row_to_entry(self, row) -> Entry:
        # Decryption errors propagate: a corrupted envelope must not be
        # served as if it were the stored text.
        return Entry(
            id=row.id,
            owner=row.owner,
            day=row.day,
            month=row.month,
            year=row.year,
            entry=row.entry,
            description=self.cipher.decrypt(row.description),
            value=self.cipher.decrypt(row.value),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
