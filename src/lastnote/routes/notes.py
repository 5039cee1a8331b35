from __future__ import annotations

import logging
import sqlite3

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from lastnote import store
from lastnote.auth import get_settings, subject_id
from lastnote.models import DeliveryTrigger, NoteStatus, Priority, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notes", tags=["notes"])


class RecipientIn(BaseModel):
    name: str = ""
    email: str = Field(min_length=3)
    relationship: str | None = None


class NoteSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    delivery_trigger: DeliveryTrigger | None = Field(None, alias="deliveryTrigger")
    check_in_period: str | None = Field(None, alias="checkInPeriod")
    priority: Priority | None = None


class NoteUpdate(BaseModel):
    title: str | None = None
    content: dict | None = None
    # Delivered is reached only through delivery, never set by hand.
    status: NoteStatus | None = None
    recipients: list[RecipientIn] | None = None
    settings: NoteSettings | None = None


class DraftIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    note_id: str = Field(min_length=1, alias="noteId")


def _resolve_user(request: Request) -> User | JSONResponse:
    auth_id = subject_id(request)
    if auth_id is None:
        return JSONResponse({"error": "Unauthorized"}, status_code=401)
    user = store.get_user_by_auth_id(get_settings(request).db_path, auth_id)
    if not user:
        return JSONResponse({"error": "User not found"}, status_code=404)
    return user


@router.post("/create")
async def create_draft(request: Request, draft: DraftIn):
    user = _resolve_user(request)
    if isinstance(user, JSONResponse):
        return user
    try:
        note = store.create_draft_note(get_settings(request).db_path, user.id, draft.note_id)
    except sqlite3.IntegrityError:
        return JSONResponse({"error": "Note ID already exists"}, status_code=409)
    return {
        "success": True,
        "note": note.to_dict(),
        "message": "Draft note created successfully",
    }


@router.get("")
async def list_notes(request: Request):
    user = _resolve_user(request)
    if isinstance(user, JSONResponse):
        return user
    notes = store.list_notes(get_settings(request).db_path, user.id)
    return {"success": True, "notes": [n.to_dict() for n in notes]}


@router.get("/{note_id}")
async def get_note(request: Request, note_id: str):
    user = _resolve_user(request)
    if isinstance(user, JSONResponse):
        return user
    note = store.get_note(get_settings(request).db_path, note_id, user.id)
    if not note:
        return JSONResponse({"error": "Note not found"}, status_code=404)
    return {"success": True, "note": note.to_dict()}


@router.put("/{note_id}")
async def update_note(request: Request, note_id: str, update: NoteUpdate):
    user = _resolve_user(request)
    if isinstance(user, JSONResponse):
        return user
    if update.status is NoteStatus.DELIVERED:
        return JSONResponse({"error": "Notes are marked delivered only by delivery"}, status_code=400)

    fields: dict = {}
    if update.title is not None:
        fields["title"] = update.title
    if update.content is not None:
        fields["content"] = update.content
    if update.status is not None:
        fields["status"] = update.status
    if update.recipients is not None:
        fields["recipients"] = [r.model_dump(exclude_none=True) for r in update.recipients]
    if update.settings is not None:
        fields.update(update.settings.model_dump(exclude_none=True))

    db_path = get_settings(request).db_path
    existing = store.get_note(db_path, note_id, user.id)
    if not existing:
        return JSONResponse({"error": "Note not found"}, status_code=404)
    if existing.is_delivered and update.status is not None:
        return JSONResponse({"error": "Delivered notes cannot change status"}, status_code=409)
    note = store.update_note(db_path, note_id, user.id, **fields)
    logger.info("Updated note %s fields: %s", note_id, ", ".join(sorted(fields)) or "none")
    return {"success": True, "note": note.to_dict(), "message": "Note updated successfully"}


@router.delete("/{note_id}")
async def delete_note(request: Request, note_id: str):
    user = _resolve_user(request)
    if isinstance(user, JSONResponse):
        return user
    if not store.delete_note(get_settings(request).db_path, note_id, user.id):
        return JSONResponse({"error": "Note not found"}, status_code=404)
    return {"success": True, "message": "Note deleted successfully"}
