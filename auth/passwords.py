"""
auth/passwords.py -- bcrypt password hashing.

bcrypt is used directly rather than through passlib: passlib's wrap-bug
detection feeds bcrypt a password longer than 72 bytes, which bcrypt 4.x and
later reject with an explicit error.

The cost factor (BCRYPT_ROUNDS, default 10) makes every hash and verify take
deliberate CPU time. Calls hold no locks, so concurrent requests hash in
parallel on the thread pool.
"""

from __future__ import annotations

import bcrypt

from core.errors import ValidationError

# bcrypt only consumes the first 72 bytes of input; newer releases raise
# instead of truncating.
MAX_PASSWORD_BYTES = 72


class CredentialHasher:
    """One-way hash and verify of passwords with a configurable bcrypt cost.

    The returned hash string embeds the algorithm identifier, cost and salt,
    so verify() needs nothing but the stored value.
    """

    def __init__(self, rounds: int = 10) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31.")
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Return a salted bcrypt hash of password.

        Raises ValidationError if the password is longer than 72 UTF-8 bytes.
        """
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, hashed: str) -> bool:
        """Return True if password matches hashed.

        A malformed hash and a mismatch are indistinguishable: both return
        False. Never raises.
        """
        if not isinstance(password, str) or not isinstance(hashed, str):
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            return False
