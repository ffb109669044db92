"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Clients send the session token returned by POST /auth/login in an
Authorization: Bearer <token> header. The token is verified statelessly by
AuthCore.verify_session(); no database lookup is needed.

get_current_session() raises HTTP 401 if the request is not authenticated,
distinguishing an expired token so clients know to log in again.

Layer rule: no imports from api/ or ledger/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.service import AuthCore
from core.errors import TokenError


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def get_current_session(request: Request) -> dict:
    """Require a valid session token. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(session: dict = Depends(get_current_session)): ...
    """
    token = _bearer_token(request)
    if token is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
            headers={"WWW-Authenticate": "Bearer"},
        )
    auth: AuthCore = request.app.state.auth
    try:
        return auth.verify_session(token)
    except TokenError as exc:
        raise HTTPException(
            status_code=401,
            detail={"code": exc.code, "message": exc.message},
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
