"""
ledger/models.py -- Domain dataclasses for accounting entries.

Pure data containers with zero logic. Encryption of the free-text fields is
the store's job (ledger/store.py); instances here always hold plaintext.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Entry:
    """A single accounting line owned by one user.

    day / month / year are kept as the strings the client sent ("03", "11",
    "2024") so filters match exactly what was stored.

    entry is the kind of line, e.g. "income" or "expense".

    description and value are encrypted at rest. They are plaintext on this
    object.

    id is None before the record is written to the database.
    """

    owner: str
    day: str
    month: str
    year: str
    entry: str
    description: str
    value: str
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""
