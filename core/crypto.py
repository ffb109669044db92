"""
core/crypto.py -- AES-256-CBC encryption for content stored at rest.

Envelope format:
    <hex IV>:<hex ciphertext>

A fresh random 16-byte IV is generated per message, so encrypting the same
plaintext twice yields two different envelopes. Plaintext is UTF-8 encoded and
PKCS#7 padded to the AES block size.

The key is SHA-256(secret), 32 raw bytes. It is derived once when the
application starts (see api/main.py lifespan) and lives only on the
SymmetricCipher instance. It is never persisted or logged.

CBC carries no authentication tag. A wrong key or corrupted ciphertext is
caught by the padding check and the UTF-8 decode; both raise
DecryptionFailedError rather than returning partial output.

Layer rule: core/ is the kernel. No imports from api/, auth/ or ledger/.
"""

from __future__ import annotations

import binascii
import hashlib
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from core.errors import DecryptionFailedError, MalformedEnvelopeError

KEY_LENGTH = 32  # AES-256
IV_LENGTH = 16
DELIMITER = ":"


def derive_key(secret: str) -> bytes:
    """Derive the 32-byte AES key from a configured secret via SHA-256."""
    return hashlib.sha256(secret.encode("utf-8")).digest()


class SymmetricCipher:
    """Reversible encryption of text payloads with a single process-wide key.

    Usage:
        cipher = SymmetricCipher.from_secret(settings.encryption_key)
        envelope = cipher.encrypt("rent, march")
        cipher.decrypt(envelope)  # -> "rent, march"

    Instances hold no mutable state and are safe to share across threads.
    """

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_LENGTH:
            raise ValueError(f"Encryption key must be exactly {KEY_LENGTH} bytes.")
        self._key = key

    @classmethod
    def from_secret(cls, secret: str) -> SymmetricCipher:
        return cls(derive_key(secret))

    def __repr__(self) -> str:
        return "SymmetricCipher(key=<redacted>)"

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_LENGTH)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return f"{iv.hex()}{DELIMITER}{ciphertext.hex()}"

    def decrypt(self, envelope: str | None) -> str:
        """Return the plaintext for an envelope produced by encrypt().

        Empty or None input returns "" so optional content fields round-trip.

        Raises:
            MalformedEnvelopeError: delimiter missing or a part is not hex.
            DecryptionFailedError: wrong IV length, truncated ciphertext,
                invalid padding, or output that is not UTF-8 (wrong key or
                corrupted data).

        The envelope carries no MAC, so a wrong key or altered ciphertext is
        caught only when the padding or UTF-8 check happens to fail. For a
        short plaintext that is likely but not certain.
        """
        if not envelope:
            return ""
        iv_hex, sep, ct_hex = envelope.partition(DELIMITER)
        if not sep:
            raise MalformedEnvelopeError()
        try:
            iv = binascii.unhexlify(iv_hex)
            ciphertext = binascii.unhexlify(ct_hex)
        except (binascii.Error, ValueError) as exc:
            raise MalformedEnvelopeError() from exc

        try:
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            data = unpadder.update(padded) + unpadder.finalize()
            return data.decode("utf-8")
        except ValueError as exc:
            # UnicodeDecodeError is a ValueError subclass
            raise DecryptionFailedError() from exc
