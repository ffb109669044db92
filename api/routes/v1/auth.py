"""
api/routes/v1/auth.py -- Registration, login and session endpoints.

Routes:
  POST /api/v1/auth/register   -- create a credential record; 201
  POST /api/v1/auth/login      -- password login; returns a bearer token
  GET  /api/v1/auth/me         -- claims of the caller's token (requires auth)

Core errors (core.errors.AppError) are not caught here: the exception handler
in api/main.py renders them with the status mapped for their class.

Security:
  Cache-Control: no-store on login responses so tokens are not cached.
  Unknown username and wrong password return the same 401 body.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import LoginRequest, LoginResponse, RegisterRequest, RegisterResponse, SessionResponse, UserResponse
from auth.dependencies import get_current_session
from auth.service import AuthCore

# Auth policy:
# - POST /api/v1/auth/register:  public
# - POST /api/v1/auth/login:     public
# - GET  /api/v1/auth/me:        requires auth (get_current_session)
router = APIRouter()


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
async def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Register a new user with a password that meets the complexity rules."""
    auth: AuthCore = request.app.state.auth
    user = await auth.register(body.username, body.password)
    return RegisterResponse(message="User registered successfully.", user=UserResponse.from_user(user))


@router.post("/auth/login", response_model=LoginResponse)
async def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; return a signed session token."""
    auth: AuthCore = request.app.state.auth
    token = await auth.login(body.username, body.password)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=auth.tokens.expire_seconds,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/me", response_model=SessionResponse)
async def me(session: dict = Depends(get_current_session)) -> SessionResponse:
    """Return identity information carried by the caller's session token."""
    return SessionResponse(
        id=session["id"],
        username=session["username"],
        role=session["role"],
        issued_at=session.get("iat"),
        expires_at=session["exp"],
    )
