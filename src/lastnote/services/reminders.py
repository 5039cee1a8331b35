from __future__ import annotations

import logging

from lastnote.models import User
from lastnote.services.email import EmailResult, EmailSender

logger = logging.getLogger(__name__)


async def send_reminder(
    user: User, days_remaining: int, check_in_url: str, emails: EmailSender
) -> EmailResult:
    """Tell the user how many days are left before their notes go out."""
    result = await emails.send_reminder_email(
        user_email=user.email,
        user_name=user.greeting_name,
        check_in_url=check_in_url,
        days_remaining=days_remaining,
    )
    if not result.success:
        logger.warning("Reminder to %s failed: %s", user.email, result.error)
    return result
