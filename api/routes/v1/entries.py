"""
api/routes/v1/entries.py -- CRUD endpoints for accounting entries.

Routes:
  GET    /api/v1/entries          -- list caller's entries (filters: day, month, year, entry)
  POST   /api/v1/entries          -- create an entry; 201
  GET    /api/v1/entries/{id}     -- single entry; 404 if missing or not owned
  PATCH  /api/v1/entries/{id}     -- partial update; 404 if missing or not owned
  DELETE /api/v1/entries/{id}     -- delete; 204, 404 if missing or not owned

Every route requires a session token. The owner is always the token's
username, never a client-supplied value, and the store filters on it. A
request for another user's entry is indistinguishable from one for an entry
that does not exist (404 both ways).

EntryStore is synchronous (SQLAlchemy Core + AES), so handlers are plain def
and FastAPI runs them on its thread pool.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import EntryCreate, EntryPatch, EntryResponse
from auth.dependencies import get_current_session
from ledger.models import Entry
from ledger.store import EntryStore

# Auth policy: every route below requires get_current_session.
router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"code": "not_found", "message": "Entry not found."},
    )


@router.get("/entries", response_model=list[EntryResponse])
def list_entries(
    request: Request,
    day: Optional[str] = None,
    month: Optional[str] = None,
    year: Optional[str] = None,
    entry: Optional[str] = None,
    session: dict = Depends(get_current_session),
) -> list[EntryResponse]:
    """List the caller's entries. An empty list is a valid result."""
    store: EntryStore = request.app.state.entry_store
    entries = store.list_entries(session["username"], day=day, month=month, year=year, entry=entry)
    return [EntryResponse.from_entry(e) for e in entries]


@router.post("/entries", response_model=EntryResponse, status_code=201)
def create_entry(
    request: Request,
    body: EntryCreate,
    session: dict = Depends(get_current_session),
) -> EntryResponse:
    store: EntryStore = request.app.state.entry_store
    created = store.create_entry(Entry(owner=session["username"], **body.model_dump()))
    return EntryResponse.from_entry(created)


@router.get("/entries/{entry_id}", response_model=EntryResponse)
def get_entry(
    request: Request,
    entry_id: int,
    session: dict = Depends(get_current_session),
) -> EntryResponse:
    store: EntryStore = request.app.state.entry_store
    found = store.get_entry(entry_id, session["username"])
    if found is None:
        raise _not_found()
    return EntryResponse.from_entry(found)


@router.patch("/entries/{entry_id}", response_model=EntryResponse)
def update_entry(
    request: Request,
    entry_id: int,
    body: EntryPatch,
    session: dict = Depends(get_current_session),
) -> EntryResponse:
    """Update the fields present in the body. An empty body is a 400."""
    updates = body.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )
    store: EntryStore = request.app.state.entry_store
    updated = store.update_entry(entry_id, session["username"], **updates)
    if updated is None:
        raise _not_found()
    return EntryResponse.from_entry(updated)


@router.delete("/entries/{entry_id}", status_code=204)
def delete_entry(
    request: Request,
    entry_id: int,
    session: dict = Depends(get_current_session),
) -> Response:
    store: EntryStore = request.app.state.entry_store
    if not store.delete_entry(entry_id, session["username"]):
        raise _not_found()
    return Response(status_code=204)
