from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class NoteStatus(str, Enum):
    DRAFT = "draft"
    SAVED = "saved"
    DELIVERED = "delivered"


class DeliveryTrigger(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"
    SCHEDULED = "scheduled"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CheckInFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"


class InvalidTransition(Exception):
    """Raised when a note is moved into a status it cannot reach."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a stored ISO timestamp, treating naive values as UTC."""
    if not value:
        return None
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class Recipient:
    name: str = ""
    email: str = ""
    relationship: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> Recipient:
        return cls(
            name=data.get("name", ""),
            email=data.get("email", ""),
            relationship=data.get("relationship") or None,
        )

    def to_dict(self) -> dict:
        data = {"name": self.name, "email": self.email}
        if self.relationship:
            data["relationship"] = self.relationship
        return data


@dataclass
class DeliveryResults:
    successful: list[str] = field(default_factory=list)
    failed: list[dict] = field(default_factory=list)  # {"email", "error"}
    total_recipients: int = 0

    def to_dict(self) -> dict:
        return {
            "successful": self.successful,
            "failed": self.failed,
            "totalRecipients": self.total_recipients,
        }


@dataclass
class User:
    id: int = 0
    auth_id: str = ""
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    last_check_in: datetime | None = None
    check_in_frequency: CheckInFrequency = CheckInFrequency.MONTHLY
    is_active: bool = True

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> User:
        return cls(
            id=row["id"],
            auth_id=row["auth_id"],
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            last_check_in=parse_timestamp(row["last_check_in"]),
            check_in_frequency=CheckInFrequency(row["check_in_frequency"]),
            is_active=bool(row["is_active"]),
        )

    @property
    def display_name(self) -> str:
        """Name used when the user sends a note: full name, else email."""
        if self.first_name:
            return f"{self.first_name} {self.last_name}".strip()
        return self.email

    @property
    def greeting_name(self) -> str:
        return self.first_name or self.email.split("@")[0]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "lastCheckIn": self.last_check_in.isoformat() if self.last_check_in else None,
            "checkInFrequency": self.check_in_frequency.value,
            "isActive": self.is_active,
        }


@dataclass
class Note:
    id: int = 0
    note_id: str = ""
    user_id: int = 0
    title: str = ""
    content: dict = field(default_factory=dict)
    status: NoteStatus = NoteStatus.DRAFT
    recipients: list[Recipient] = field(default_factory=list)
    delivery_trigger: DeliveryTrigger = DeliveryTrigger.AUTOMATIC
    check_in_period: str | None = None
    is_delivered: bool = False
    delivered_at: datetime | None = None
    delivery_results: DeliveryResults | None = None
    priority: Priority = Priority.MEDIUM
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Note:
        results = None
        if row["delivery_results"]:
            raw = json.loads(row["delivery_results"])
            results = DeliveryResults(
                successful=raw.get("successful", []),
                failed=raw.get("failed", []),
                total_recipients=raw.get("totalRecipients", 0),
            )
        return cls(
            id=row["id"],
            note_id=row["note_id"],
            user_id=row["user_id"],
            title=row["title"],
            content=json.loads(row["content"] or "{}"),
            status=NoteStatus(row["status"]),
            recipients=[Recipient.from_dict(r) for r in json.loads(row["recipients"] or "[]")],
            delivery_trigger=DeliveryTrigger(row["delivery_trigger"]),
            check_in_period=row["check_in_period"],
            is_delivered=bool(row["is_delivered"]),
            delivered_at=parse_timestamp(row["delivered_at"]),
            delivery_results=results,
            priority=Priority(row["priority"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def ensure_deliverable(self) -> None:
        if self.status is NoteStatus.DRAFT:
            raise InvalidTransition(f"Note {self.note_id} is still a draft and cannot be delivered")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "noteId": self.note_id,
            "title": self.title,
            "content": self.content,
            "status": self.status.value,
            "recipients": [r.to_dict() for r in self.recipients],
            "deliveryTrigger": self.delivery_trigger.value,
            "checkInPeriod": self.check_in_period,
            "isDelivered": self.is_delivered,
            "deliveredAt": self.delivered_at.isoformat() if self.delivered_at else None,
            "deliveryResults": self.delivery_results.to_dict() if self.delivery_results else None,
            "priority": self.priority.value,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class DeliveryLogEntry:
    id: int = 0
    note_id: str = ""
    user_id: int = 0
    recipients: list[dict] = field(default_factory=list)
    delivered_at: str = ""
    successful: list[str] = field(default_factory=list)
    failed: list[dict] = field(default_factory=list)
    created_at: str = ""

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> DeliveryLogEntry:
        return cls(
            id=row["id"],
            note_id=row["note_id"],
            user_id=row["user_id"],
            recipients=json.loads(row["recipients"]),
            delivered_at=row["delivered_at"],
            successful=json.loads(row["successful"]),
            failed=json.loads(row["failed"]),
            created_at=row["created_at"],
        )
