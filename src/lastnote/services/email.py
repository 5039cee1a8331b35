from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import resend
from jinja2 import Environment, FileSystemLoader, select_autoescape

from lastnote.config import Settings
from lastnote.models import Recipient

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"

_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
)


@dataclass
class EmailResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


def _urgency(days_remaining: int) -> str:
    if days_remaining <= 7:
        return "Urgent"
    if days_remaining <= 14:
        return "Important"
    return "Reminder"


class EmailSender:
    """Sends delivery and reminder emails through Resend."""

    def __init__(self, settings: Settings):
        self.from_address = f"My Last Note <{settings.resend_from_email}>"
        self.api_key = settings.resend_api_key

    async def _send(self, to: str, subject: str, html: str) -> EmailResult:
        if not self.api_key:
            logger.error("RESEND_API_KEY is not configured, cannot email %s", to)
            return EmailResult(success=False, error="RESEND_API_KEY is not configured")

        params = {"from": self.from_address, "to": [to], "subject": subject, "html": html}
        try:
            resend.api_key = self.api_key
            response = await asyncio.to_thread(resend.Emails.send, params)
        except Exception as exc:
            logger.exception("Email sending error for %s", to)
            return EmailResult(success=False, error=str(exc) or "Unknown error")
        return EmailResult(success=True, message_id=response.get("id"))

    async def send_delivery_email(
        self,
        recipient: Recipient,
        note_title: str,
        sender_name: str,
        note_url: str,
        delivered_at: datetime,
    ) -> EmailResult:
        html = _env.get_template("delivery.html").render(
            recipient_name=recipient.name,
            relationship=recipient.relationship,
            sender_name=sender_name,
            note_title=note_title,
            note_url=note_url,
            delivered_at=delivered_at,
        )
        return await self._send(
            recipient.email, f"You've received a note from {sender_name}", html
        )

    async def send_reminder_email(
        self,
        user_email: str,
        user_name: str,
        check_in_url: str,
        days_remaining: int,
    ) -> EmailResult:
        html = _env.get_template("reminder.html").render(
            user_name=user_name,
            check_in_url=check_in_url,
            days_remaining=days_remaining,
            urgency=_urgency(days_remaining),
        )
        return await self._send(
            user_email, f"Check-in reminder - {days_remaining} days remaining", html
        )
