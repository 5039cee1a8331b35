from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import httpx

from lastnote import store
from lastnote.config import Settings
from lastnote.models import DeliveryResults, Note, Recipient, User, utcnow
from lastnote.services.email import EmailSender

logger = logging.getLogger(__name__)

_INTERNAL_TIMEOUT = 30.0


async def deliver_note(
    settings: Settings,
    note: Note,
    sender_name: str,
    recipients: list[Recipient],
    note_url: str,
    emails: EmailSender,
    now: datetime | None = None,
) -> DeliveryResults:
    """Email every recipient once and record the note as delivered.

    Sends run concurrently and each outcome is collected on its own, so a
    bad address never blocks the rest. The note is marked delivered even
    when every send failed; nothing is retried.
    """
    note.ensure_deliverable()
    delivered_at = now or utcnow()

    outcomes = await asyncio.gather(
        *(
            emails.send_delivery_email(
                recipient=recipient,
                note_title=note.title or "Untitled Note",
                sender_name=sender_name,
                note_url=note_url,
                delivered_at=delivered_at,
            )
            for recipient in recipients
        ),
        return_exceptions=True,
    )

    results = DeliveryResults(total_recipients=len(recipients))
    for recipient, outcome in zip(recipients, outcomes):
        if isinstance(outcome, BaseException):
            results.failed.append({"email": recipient.email, "error": str(outcome) or "Unknown error"})
        elif outcome.success:
            results.successful.append(recipient.email)
        else:
            results.failed.append({"email": recipient.email, "error": outcome.error or "Unknown error"})

    recorded = store.mark_delivered(
        settings.db_path,
        note.note_id,
        results,
        recipients,
        note.user_id,
        delivered_at.isoformat(),
    )
    if not recorded:
        logger.warning("Note %s was already marked delivered, kept earlier results", note.note_id)

    logger.info(
        "Note %s delivered to %d of %d recipients",
        note.note_id,
        len(results.successful),
        results.total_recipients,
    )
    return results


class DirectDeliveryClient:
    """Delivers notes in-process."""

    def __init__(self, settings: Settings, emails: EmailSender):
        self.settings = settings
        self.emails = emails

    async def __call__(self, user: User, note: Note, note_url: str) -> bool:
        if not note.recipients:
            logger.warning("Note %s has no recipients, skipping delivery", note.note_id)
            return False
        await deliver_note(
            self.settings, note, user.display_name, note.recipients, note_url, self.emails
        )
        return True


class InternalDeliveryClient:
    """Delivers notes by calling the app's own send-note-email endpoint."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.transport = transport

    async def __call__(self, user: User, note: Note, note_url: str) -> bool:
        payload = {
            "noteId": note.note_id,
            "recipients": [r.to_dict() for r in note.recipients],
            "noteUrl": note_url,
            "internal": True,
        }
        headers = {"Authorization": f"Bearer {self.settings.internal_api_secret}"}
        async with httpx.AsyncClient(
            base_url=self.settings.app_url, transport=self.transport, timeout=_INTERNAL_TIMEOUT
        ) as client:
            response = await client.post("/api/send-note-email", json=payload, headers=headers)
        if response.is_success:
            return True
        logger.error(
            "Internal delivery of note %s failed with status %d: %s",
            note.note_id,
            response.status_code,
            response.text,
        )
        return False
