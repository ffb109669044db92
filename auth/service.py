"""
auth/service.py -- AuthCore: registration, login and session verification.

AuthCore composes the password policy, the bcrypt hasher, the user store and
the token service. The route layer calls it; it knows nothing about HTTP and
reports every failure as a core.errors exception.

Both flows are failure-atomic: nothing is written until the final step, and
login never writes at all.

Store lookups and bcrypt work are blocking, so they run on the thread pool via
run_in_threadpool. The store call is the only I/O; the hashing offload keeps
the event loop free while bcrypt burns its deliberate CPU cost.

Timing equalization: login runs bcrypt against a dummy hash when the username
is unknown, so response time does not reveal which usernames exist.

Logging: usernames and outcomes only. Passwords, hashes and tokens are never
logged.
"""

from __future__ import annotations

import logging

from fastapi.concurrency import run_in_threadpool

from auth.models import User
from auth.passwords import CredentialHasher
from auth.policy import validate_password
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings
from core.errors import (
    InvalidCredentialsError,
    UserExistsError,
    UserNotFoundError,
    ValidationError,
    WeakPasswordError,
)

logger = logging.getLogger("yaccounting.auth")

DEFAULT_ROLE = "user"


class AuthCore:
    """Registration and login workflows over injected collaborators.

    Usage:
        core = AuthCore(store, CredentialHasher(rounds=10), TokenService(secret))
        user = await core.register("alice", "Passw0rd!")
        token = await core.login("alice", "Passw0rd!")
        claims = core.verify_session(token)
    """

    def __init__(self, store: UserStore, hasher: CredentialHasher, tokens: TokenService) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens
        # Same cost factor as real hashes so the unknown-user path takes as long.
        self._dummy_hash = hasher.hash("yaccounting_timing_dummy")

    @classmethod
    def from_settings(cls, settings: Settings, store: UserStore) -> AuthCore:
        """Build an AuthCore whose hasher and token service follow Settings."""
        tokens = TokenService(
            settings.secret_key,
            verify_key=settings.token_verify_key or None,
            expire_seconds=settings.token_expire_seconds,
        )
        return cls(store, CredentialHasher(rounds=settings.bcrypt_rounds), tokens)

    async def register(self, username: str, password: str, role: str = DEFAULT_ROLE) -> User:
        """Create a credential record and return it.

        The returned User still carries hashed_password; callers building a
        response must not expose it (api.models.UserResponse has no such field).

        Raises ValidationError, WeakPasswordError, UserExistsError or
        StoreUnavailableError.
        """
        if not username or not password:
            raise ValidationError()
        if not validate_password(password):
            raise WeakPasswordError()

        existing = await run_in_threadpool(self.store.find_user, name=username)
        if existing is not None:
            logger.info("Registration rejected: user %r already exists", username)
            raise UserExistsError()

        hashed = await run_in_threadpool(self.hasher.hash, password)
        user = await run_in_threadpool(
            self.store.create_user,
            User(username=username, hashed_password=hashed, role=role),
        )
        logger.info("User registered: %r (id=%s)", user.username, user.id)
        return user

    async def login(self, username: str, password: str) -> str:
        """Check the credentials and return a signed session token.

        Raises ValidationError, UserNotFoundError, InvalidCredentialsError or
        StoreUnavailableError.
        """
        if not username or not password:
            raise ValidationError()

        user = await run_in_threadpool(self.store.find_user, name=username)
        if user is None:
            await run_in_threadpool(self.hasher.verify, password, self._dummy_hash)
            logger.info("Login failed for %r: unknown user", username)
            raise UserNotFoundError()

        matches = await run_in_threadpool(self.hasher.verify, password, user.hashed_password)
        if not matches:
            logger.info("Login failed for %r: bad password", username)
            raise InvalidCredentialsError()

        logger.info("Login succeeded for %r", username)
        return self.tokens.issue(user.id, user.username, user.role)

    def verify_session(self, token: str) -> dict:
        """Return the claims of a valid session token.

        Raises MalformedTokenError, InvalidSignatureError or TokenExpiredError.
        """
        return self.tokens.verify(token)
