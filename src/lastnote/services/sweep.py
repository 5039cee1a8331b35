from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable

from lastnote import store
from lastnote.config import Settings
from lastnote.models import Note, User, utcnow
from lastnote.periods import days_since
from lastnote.services.email import EmailSender
from lastnote.services.evaluator import Decision, evaluate
from lastnote.services.reminders import send_reminder

logger = logging.getLogger(__name__)

DeliverFn = Callable[[User, Note, str], Awaitable[bool]]


@dataclass
class SweepReport:
    users_processed: int = 0
    deliveries: list[dict] = field(default_factory=list)
    reminders: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "message": f"Processed {self.users_processed} users",
            "results": {"deliveries": self.deliveries, "reminders": self.reminders},
        }


class DeliverySweep:
    """One pass over every active user's pending notes.

    Reminders go out once per note in the reminder window, so a user with
    several such notes gets several emails. Nothing records that a reminder
    was sent; the next sweep sends it again.
    """

    def __init__(self, settings: Settings, emails: EmailSender, deliver: DeliverFn):
        self.settings = settings
        self.emails = emails
        self.deliver = deliver

    async def run(self, now: datetime | None = None) -> SweepReport:
        now = now or utcnow()
        report = SweepReport()

        users = store.find_sweep_users(self.settings.db_path)
        for user in users:
            try:
                await self._process_user(user, now, report)
            except Exception:
                logger.exception("Failed to process notes for user %s", user.id)

        report.users_processed = len(users)
        logger.info(
            "Sweep processed %d users: %d deliveries, %d reminders",
            report.users_processed,
            len(report.deliveries),
            len(report.reminders),
        )
        return report

    async def _process_user(self, user: User, now: datetime, report: SweepReport) -> None:
        days = days_since(user.last_check_in, now)
        for note in store.find_pending_notes(self.settings.db_path, user.id):
            try:
                await self._process_note(user, note, days, report)
            except Exception:
                logger.exception("Failed to process note %s for user %s", note.note_id, user.id)

    async def _process_note(self, user: User, note: Note, days: int, report: SweepReport) -> None:
        evaluation = evaluate(days, note.check_in_period, note.delivery_trigger)

        if evaluation.decision is Decision.DELIVER:
            delivered = await self.deliver(user, note, self.settings.note_url(note.note_id))
            if delivered:
                report.deliveries.append(
                    {
                        "noteId": note.note_id,
                        "userId": user.id,
                        "status": "delivered",
                        "daysSinceCheckIn": days,
                    }
                )

        elif evaluation.decision is Decision.REMIND:
            result = await send_reminder(
                user, evaluation.days_remaining, self.settings.check_in_url, self.emails
            )
            if result.success:
                report.reminders.append(
                    {
                        "userId": user.id,
                        "email": user.email,
                        "noteId": note.note_id,
                        "daysRemaining": evaluation.days_remaining,
                        "status": "sent",
                    }
                )
