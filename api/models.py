"""
API request and response models for YAccounting REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
ledger/models.py, which own the internal domain representation. Route
handlers map between the two.

UserResponse deliberately has no password-hash field: a credential record can
only reach a client through it.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User
from ledger.models import Entry

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DAY_PATTERN = r"^(0?[1-9]|[12]\d|3[01])$"
MONTH_PATTERN = r"^(0?[1-9]|1[0-2])$"
YEAR_PATTERN = r"^\d{4}$"


# ---------------------------------------------------------------------------
# Auth models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register.

    Fields are optional at the schema level so a missing value reaches
    AuthCore and is reported as the core's validation_error, the same as an
    empty string.
    """

    username: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    username: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class UserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    role: str
    created_at: str
    updated_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            role=user.role,
            created_at=user.created_at or "",
            updated_at=user.updated_at or "",
        )


class RegisterResponse(BaseModel):
    message: str
    user: UserResponse


class SessionResponse(BaseModel):
    """Claims of the caller's session token, returned by GET /auth/me."""

    id: int
    username: str
    role: str
    issued_at: Optional[int] = None
    expires_at: int


# ---------------------------------------------------------------------------
# Entry models
# ---------------------------------------------------------------------------


class EntryCreate(BaseModel):
    """Request body for POST /api/v1/entries."""

    model_config = ConfigDict(str_strip_whitespace=True)

    day: str = Field(pattern=DAY_PATTERN)
    month: str = Field(pattern=MONTH_PATTERN)
    year: str = Field(pattern=YEAR_PATTERN)
    entry: str = Field(min_length=1, max_length=50)
    description: str = Field(min_length=1, max_length=1000)
    value: str = Field(min_length=1, max_length=64)


class EntryPatch(BaseModel):
    """Request body for PATCH /api/v1/entries/{id}. Omitted fields are unchanged."""

    model_config = ConfigDict(str_strip_whitespace=True)

    day: Optional[str] = Field(default=None, pattern=DAY_PATTERN)
    month: Optional[str] = Field(default=None, pattern=MONTH_PATTERN)
    year: Optional[str] = Field(default=None, pattern=YEAR_PATTERN)
    entry: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    value: Optional[str] = Field(default=None, min_length=1, max_length=64)


class EntryResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    day: str
    month: str
    year: str
    entry: str
    description: str
    value: str
    created_at: str
    updated_at: str

    @classmethod
    def from_entry(cls, entry: Entry) -> "EntryResponse":
        return cls(
            id=entry.id,
            day=entry.day,
            month=entry.month,
            year=entry.year,
            entry=entry.entry,
            description=entry.description,
            value=entry.value,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )


# ---------------------------------------------------------------------------
# Shared envelopes
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error body. code is stable; message is for humans."""

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
