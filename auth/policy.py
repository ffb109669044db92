"""
auth/policy.py -- Password complexity rules.

A password is accepted when it is at least 8 characters long and contains at
least one lowercase letter, one uppercase letter, one digit and one symbol from
the allowed set @$!%*?&. Nothing outside letters, digits and that set is
permitted: spaces, # or non-ASCII letters make the password invalid.

Applied at registration only. Login never re-checks complexity, so accounts
created under an older rule set can still sign in.
"""

from __future__ import annotations

import re

MIN_LENGTH = 8
ALLOWED_SYMBOLS = "@$!%*?&"

_RULES = (
    re.compile(r"[a-z]"),
    re.compile(r"[A-Z]"),
    re.compile(r"[0-9]"),
    re.compile(f"[{re.escape(ALLOWED_SYMBOLS)}]"),
)
_ALPHABET = re.compile(f"[A-Za-z0-9{re.escape(ALLOWED_SYMBOLS)}]+")


def validate_password(password: object) -> bool:
    """Return True if password satisfies every complexity rule.

    Never raises: None, empty strings and non-string values return False.
    """
    if not isinstance(password, str) or len(password) < MIN_LENGTH:
        return False
    if not _ALPHABET.fullmatch(password):
        return False
    return all(rule.search(password) for rule in _RULES)
