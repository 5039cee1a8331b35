from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from lastnote import store
from lastnote.auth import bearer_matches, get_settings, subject_id
from lastnote.models import InvalidTransition, Recipient
from lastnote.services.delivery import deliver_note

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["delivery"])


@router.post("/send-note-email")
async def send_note_email(request: Request):
    """Deliver a note now, either from the sweep (internal) or at the owner's request."""
    settings = get_settings(request)
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse({"error": "Invalid JSON body"}, status_code=400)
    if not isinstance(body, dict):
        return JSONResponse({"error": "Invalid JSON body"}, status_code=400)

    internal = body.get("internal") is True
    if internal:
        if not bearer_matches(request, settings.internal_api_secret):
            logger.warning("Rejected internal delivery call with a bad secret")
            return JSONResponse({"error": "Unauthorized"}, status_code=401)
    elif subject_id(request) is None:
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    note_id = body.get("noteId")
    raw_recipients = body.get("recipients")
    if not note_id or not isinstance(raw_recipients, list) or not raw_recipients:
        return JSONResponse({"error": "Missing required fields"}, status_code=400)
    if not all(isinstance(r, dict) and r.get("email") for r in raw_recipients):
        return JSONResponse({"error": "Each recipient needs an email"}, status_code=400)

    try:
        if internal:
            note = store.get_note(settings.db_path, note_id)
            user = store.get_user_by_id(settings.db_path, note.user_id) if note else None
        else:
            user = store.get_user_by_auth_id(settings.db_path, subject_id(request))
            if not user:
                return JSONResponse({"error": "User not found"}, status_code=404)
            note = store.get_note(settings.db_path, note_id, user.id)
        if not note or not user:
            return JSONResponse({"error": "Note not found"}, status_code=404)

        recipients = [Recipient.from_dict(r) for r in raw_recipients]
        note_url = body.get("noteUrl") or settings.note_url(note_id)
        results = await deliver_note(
            settings, note, user.display_name, recipients, note_url, request.app.state.emails
        )
    except InvalidTransition as exc:
        return JSONResponse({"error": str(exc)}, status_code=409)
    except Exception as exc:
        logger.exception("Email sending error")
        return JSONResponse(
            {"success": False, "error": "Failed to send emails", "details": str(exc)},
            status_code=500,
        )

    return {
        "success": True,
        "message": (
            f"Note delivered to {len(results.successful)} of {results.total_recipients} recipients"
        ),
        "results": results.to_dict(),
    }
