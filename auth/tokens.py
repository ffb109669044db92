"""
auth/tokens.py -- Signed, time-limited session tokens (JWT, HS256).

Security design decisions:
  JWT: python-jose with HS256. Tokens carry {id, username, role, iat, exp} and
       are valid for TOKEN_EXPIRE_SECONDS (default 1 hour). They are never
       stored server-side and cannot be revoked before expiry.

  Verification order: shape, then signature, then expiry. A string of three
       base64url segments that fails signature checking in any way, including
       a header that no longer parses, is InvalidSignatureError. A token that is
       both tampered with and expired is reported as InvalidSignatureError --
       expiry is only meaningful for a token we actually issued.

  Keys: tokens are signed with SECRET_KEY and verified with the same key.
       A different verification key is used only when TOKEN_VERIFY_KEY is
       explicitly configured; the mismatch is logged at startup because
       every token will then fail verification unless the keys are
       deliberately paired.

Layer rule: no imports from api/ or ledger/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWSError, JWTError, jws, jwt

from core.errors import InvalidSignatureError, MalformedTokenError, TokenExpiredError

logger = logging.getLogger("yaccounting.auth")

_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ("id", "username", "role", "exp")
_SEGMENT = re.compile(r"[A-Za-z0-9_-]+")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_compact_jws(token: object) -> bool:
    if not isinstance(token, str):
        return False
    segments = token.split(".")
    # A base64url segment of length 4n+1 can never decode.
    return len(segments) == 3 and all(_SEGMENT.fullmatch(s) and len(s) % 4 != 1 for s in segments)


class TokenService:
    """Issue and verify session tokens with a process-wide signing secret.

    Usage:
        tokens = TokenService(settings.secret_key)
        token = tokens.issue(user.id, user.username, user.role)
        claims = tokens.verify(token)   # raises a TokenError subclass on failure

    clock is injectable so tests can issue tokens "in the past".
    """

    def __init__(
        self,
        signing_key: str,
        verify_key: str | None = None,
        expire_seconds: int = 3600,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if not signing_key:
            raise ValueError("A signing key is required.")
        self._signing_key = signing_key
        self._verify_key = verify_key or signing_key
        self.expire_seconds = expire_seconds
        self._clock = clock or _utcnow
        if self._verify_key != self._signing_key:
            logger.warning("Token verification key differs from the signing key (TOKEN_VERIFY_KEY is set)")

    def __repr__(self) -> str:
        return f"TokenService(expire_seconds={self.expire_seconds})"

    def issue(self, user_id: int, username: str, role: str) -> str:
        """Encode a signed JWT for the given identity."""
        issued_at = self._clock()
        claims = {
            "id": user_id,
            "username": username,
            "role": role,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=self.expire_seconds),
        }
        return jwt.encode(claims, self._signing_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> dict:
        """Verify token and return its claims.

        Raises:
            MalformedTokenError: not three non-empty base64url segments, or
                required claims missing from a correctly signed token.
            InvalidSignatureError: signature does not match the key, or a
                segment was altered so that it no longer decodes.
            TokenExpiredError: signature is valid but exp is in the past.
        """
        if not _is_compact_jws(token):
            raise MalformedTokenError()

        # Past the shape check every failure is a bad signature, an
        # undecodable header included.
        try:
            jws.verify(token, self._verify_key, algorithms=[_ALGORITHM])
        except JWSError as exc:
            raise InvalidSignatureError() from exc

        try:
            claims = jwt.decode(token, self._verify_key, algorithms=[_ALGORITHM])
        except ExpiredSignatureError as exc:
            raise TokenExpiredError() from exc
        except JWTError as exc:
            raise MalformedTokenError() from exc

        if any(name not in claims for name in _REQUIRED_CLAIMS):
            raise MalformedTokenError()
        return claims
