"""
core/errors.py -- Error taxonomy shared by auth/, ledger/ and api/.

Every error the core raises is an AppError subclass carrying a stable `code`
string. The core stays transport-agnostic: api/main.py owns the mapping from
error class to HTTP status.

Messages never contain passwords, hashes, tokens or key material.

Layer rule: core/ is the kernel. No imports from api/, auth/ or ledger/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for all typed errors raised by the core."""

    code = "internal_error"
    message = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.message
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Input and registration
# ---------------------------------------------------------------------------


class ValidationError(AppError):
    code = "validation_error"
    message = "Username and password are required."


class WeakPasswordError(AppError):
    code = "weak_password"
    message = "Password does not meet complexity requirements."


class UserExistsError(AppError):
    code = "user_exists"
    message = "User already exists."


# ---------------------------------------------------------------------------
# Login
#
# Both share a code and message so the API does not reveal which usernames
# exist. The classes stay distinct so callers inside the process can tell.
# ---------------------------------------------------------------------------


class UserNotFoundError(AppError):
    code = "bad_credentials"
    message = "Invalid username or password."


class InvalidCredentialsError(AppError):
    code = "bad_credentials"
    message = "Invalid username or password."


# ---------------------------------------------------------------------------
# Symmetric encryption
# ---------------------------------------------------------------------------


class MalformedEnvelopeError(AppError):
    code = "malformed_envelope"
    message = "Encrypted value is not a valid envelope."


class DecryptionFailedError(AppError):
    code = "decryption_failed"
    message = "Encrypted value could not be decrypted."


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


class TokenError(AppError):
    code = "invalid_token"
    message = "Invalid session token."


class InvalidSignatureError(TokenError):
    pass


class MalformedTokenError(TokenError):
    message = "Malformed session token."


class TokenExpiredError(TokenError):
    code = "token_expired"
    message = "Session token has expired."


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class StoreUnavailableError(AppError):
    code = "store_unavailable"
    message = "The data store is unavailable."
