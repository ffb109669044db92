"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in ledger/models.py -- dataclasses own domain shape; stores and services do
the work.

Layer rule: no imports from api/ or ledger/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A credential record: a unique identity plus its bcrypt password hash.

    username is unique and compared case-sensitively.

    hashed_password is the bcrypt modular-crypt string ($2b$<cost>$<salt+digest>).
    It must never be logged or returned to a client -- the API response models
    have no field for it.

    id, created_at and updated_at are None until the store writes the record.
    """

    username: str
    hashed_password: str
    role: str = "user"
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, username={self.username!r}, role={self.role!r})"
