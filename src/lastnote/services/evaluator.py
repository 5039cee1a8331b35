from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from lastnote.models import DeliveryTrigger
from lastnote.periods import max_days_for

REMINDER_WINDOW_DAYS = 7


class Decision(str, Enum):
    NONE = "none"
    REMIND = "remind"
    DELIVER = "deliver"


@dataclass(frozen=True)
class Evaluation:
    decision: Decision
    max_days: int
    days_remaining: int | None = None


def evaluate(
    days_since_check_in: int,
    check_in_period: str | None,
    delivery_trigger: DeliveryTrigger | str,
) -> Evaluation:
    """Classify one note as deliver, remind, or nothing to do.

    Delivery wins over the reminder window. Only automatic notes are ever
    delivered by the sweep; a zero-day period has an empty reminder window.
    """
    max_days = max_days_for(check_in_period)
    trigger = DeliveryTrigger(delivery_trigger)

    if trigger is DeliveryTrigger.AUTOMATIC and days_since_check_in >= max_days:
        return Evaluation(Decision.DELIVER, max_days)

    if max_days - REMINDER_WINDOW_DAYS <= days_since_check_in < max_days:
        return Evaluation(Decision.REMIND, max_days, max_days - days_since_check_in)

    return Evaluation(Decision.NONE, max_days)
