"""Notes API — CRUD, pinning, search and stats.

Learn: The whole router is mounted behind the authorization gate in
api/__init__.py. Handlers still declare Depends(get_current_account)
to receive the AuthContext — FastAPI caches the dependency per request,
so the gate runs once.
"""

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.auth.dependencies import AuthContext, get_current_account
from notekeeper.db.engine import get_db
from notekeeper.errors import NotFound, ValidationError
from notekeeper.schemas.common import MessageResponse
from notekeeper.schemas.note import (
    NoteCreate,
    NoteEnvelope,
    NoteList,
    NoteRead,
    NoteStats,
    NoteUpdate,
)
from notekeeper.services.note_service import NoteService

router = APIRouter(prefix="/notes")


def _svc(db: AsyncSession = Depends(get_db)) -> NoteService:
    return NoteService(db)


def _note_id(note_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(note_id)
    except ValueError:
        raise ValidationError("Invalid note ID")


@router.get("", response_model=NoteList)
async def list_notes(
    search: str | None = None,
    tag: str | None = None,
    sort_by: Literal["createdAt", "updatedAt", "title"] = Query("createdAt", alias="sortBy"),
    order: Literal["asc", "desc"] = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    ctx: AuthContext = Depends(get_current_account),
    svc: NoteService = Depends(_svc),
):
    notes, pagination = await svc.list_notes(
        ctx.account_id,
        search=search,
        tag=tag,
        sort_by=sort_by,
        order=order,
        page=page,
        limit=limit,
    )
    return {"notes": [NoteRead.model_validate(n) for n in notes], "pagination": pagination}


# Declared before /{note_id} so "stats" isn't parsed as an id.
@router.get("/stats/summary", response_model=NoteStats)
async def note_stats(
    ctx: AuthContext = Depends(get_current_account),
    svc: NoteService = Depends(_svc),
):
    return await svc.stats(ctx.account_id)


@router.get("/{note_id}", response_model=NoteEnvelope)
async def get_note(
    note_id: str,
    ctx: AuthContext = Depends(get_current_account),
    svc: NoteService = Depends(_svc),
):
    note = await svc.get_note(ctx.account_id, _note_id(note_id))
    if not note:
        raise NotFound("Note not found")
    return {"note": NoteRead.model_validate(note)}


@router.post("", response_model=NoteEnvelope, status_code=201)
async def create_note(
    body: NoteCreate,
    ctx: AuthContext = Depends(get_current_account),
    svc: NoteService = Depends(_svc),
):
    note = await svc.create_note(
        ctx.account_id,
        title=body.title,
        content=body.content,
        tags=body.tags,
        background_color=body.background_color,
    )
    return {"message": "Note created successfully", "note": NoteRead.model_validate(note)}


@router.put("/{note_id}", response_model=NoteEnvelope)
async def update_note(
    note_id: str,
    body: NoteUpdate,
    ctx: AuthContext = Depends(get_current_account),
    svc: NoteService = Depends(_svc),
):
    changes = body.model_dump(exclude_unset=True)
    note = await svc.update_note(ctx.account_id, _note_id(note_id), changes)
    if not note:
        raise NotFound("Note not found")
    return {"message": "Note updated successfully", "note": NoteRead.model_validate(note)}


@router.delete("/{note_id}", response_model=MessageResponse)
async def delete_note(
    note_id: str,
    ctx: AuthContext = Depends(get_current_account),
    svc: NoteService = Depends(_svc),
):
    if not await svc.delete_note(ctx.account_id, _note_id(note_id)):
        raise NotFound("Note not found")
    return {"message": "Note deleted successfully"}


@router.patch("/{note_id}/pin", response_model=NoteEnvelope)
async def toggle_pin(
    note_id: str,
    ctx: AuthContext = Depends(get_current_account),
    svc: NoteService = Depends(_svc),
):
    note = await svc.toggle_pin(ctx.account_id, _note_id(note_id))
    if not note:
        raise NotFound("Note not found")
    state = "pinned" if note.is_pinned else "unpinned"
    return {"message": f"Note {state} successfully", "note": NoteRead.model_validate(note)}
