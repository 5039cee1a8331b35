from __future__ import annotations

import json
from pathlib import Path

from lastnote.db import get_db
from lastnote.models import (
    CheckInFrequency,
    DeliveryLogEntry,
    DeliveryResults,
    Note,
    NoteStatus,
    Recipient,
    User,
    utcnow,
)

# Columns a note owner may change through the API. user_id and note_id are fixed.
_NOTE_UPDATABLE = {
    "title",
    "content",
    "status",
    "recipients",
    "delivery_trigger",
    "check_in_period",
    "priority",
}
_USER_UPDATABLE = {"email", "first_name", "last_name", "check_in_frequency", "last_check_in"}


def _now_iso() -> str:
    return utcnow().isoformat()


# --- users ---


def get_user_by_auth_id(db_path: Path, auth_id: str) -> User | None:
    with get_db(db_path) as db:
        row = db.execute("SELECT * FROM users WHERE auth_id = ?", (auth_id,)).fetchone()
    return User.from_row(row) if row else None


def get_user_by_id(db_path: Path, user_id: int) -> User | None:
    with get_db(db_path) as db:
        row = db.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    return User.from_row(row) if row else None


def create_user(
    db_path: Path,
    auth_id: str,
    email: str,
    first_name: str = "",
    last_name: str = "",
    check_in_frequency: CheckInFrequency = CheckInFrequency.MONTHLY,
) -> User:
    now = _now_iso()
    with get_db(db_path) as db:
        db.execute(
            """INSERT INTO users (auth_id, email, first_name, last_name, check_in_frequency,
                                  last_check_in, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (auth_id, email, first_name, last_name, check_in_frequency.value, now, now, now),
        )
        row = db.execute("SELECT * FROM users WHERE auth_id = ?", (auth_id,)).fetchone()
    return User.from_row(row)


def update_user(db_path: Path, auth_id: str, **fields) -> User | None:
    unknown = set(fields) - _USER_UPDATABLE
    if unknown:
        raise ValueError(f"Cannot update user fields: {', '.join(sorted(unknown))}")
    if "check_in_frequency" in fields:
        fields["check_in_frequency"] = CheckInFrequency(fields["check_in_frequency"]).value
    fields["updated_at"] = _now_iso()
    assignments = ", ".join(f"{name} = ?" for name in fields)
    with get_db(db_path) as db:
        db.execute(
            f"UPDATE users SET {assignments} WHERE auth_id = ?",
            (*fields.values(), auth_id),
        )
        row = db.execute("SELECT * FROM users WHERE auth_id = ?", (auth_id,)).fetchone()
    return User.from_row(row) if row else None


def record_check_in(db_path: Path, auth_id: str) -> User | None:
    return update_user(db_path, auth_id, last_check_in=_now_iso())


def find_sweep_users(db_path: Path) -> list[User]:
    """Active users that have checked in at least once."""
    with get_db(db_path) as db:
        rows = db.execute(
            "SELECT * FROM users WHERE is_active = 1 AND last_check_in IS NOT NULL ORDER BY id"
        ).fetchall()
    return [User.from_row(r) for r in rows]


# --- notes ---


def create_draft_note(db_path: Path, user_id: int, note_id: str) -> Note:
    now = _now_iso()
    content = {"textNote": "", "sensitiveInfo": "", "attachments": []}
    with get_db(db_path) as db:
        db.execute(
            """INSERT INTO notes (note_id, user_id, content, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?)""",
            (note_id, user_id, json.dumps(content), now, now),
        )
        row = db.execute("SELECT * FROM notes WHERE note_id = ?", (note_id,)).fetchone()
    return Note.from_row(row)


def get_note(db_path: Path, note_id: str, user_id: int | None = None) -> Note | None:
    with get_db(db_path) as db:
        if user_id is None:
            row = db.execute("SELECT * FROM notes WHERE note_id = ?", (note_id,)).fetchone()
        else:
            row = db.execute(
                "SELECT * FROM notes WHERE note_id = ? AND user_id = ?", (note_id, user_id)
            ).fetchone()
    return Note.from_row(row) if row else None


def list_notes(db_path: Path, user_id: int) -> list[Note]:
    with get_db(db_path) as db:
        rows = db.execute(
            "SELECT * FROM notes WHERE user_id = ? ORDER BY updated_at DESC, id DESC", (user_id,)
        ).fetchall()
    return [Note.from_row(r) for r in rows]


def update_note(db_path: Path, note_id: str, user_id: int, **fields) -> Note | None:
    unknown = set(fields) - _NOTE_UPDATABLE
    if unknown:
        raise ValueError(f"Cannot update note fields: {', '.join(sorted(unknown))}")
    if "content" in fields:
        fields["content"] = json.dumps(fields["content"])
    if "recipients" in fields:
        fields["recipients"] = json.dumps(
            [r.to_dict() if isinstance(r, Recipient) else r for r in fields["recipients"]]
        )
    for name in ("status", "delivery_trigger", "priority"):
        if name in fields:
            fields[name] = getattr(fields[name], "value", fields[name])
    fields["updated_at"] = _now_iso()
    assignments = ", ".join(f"{name} = ?" for name in fields)
    with get_db(db_path) as db:
        db.execute(
            f"UPDATE notes SET {assignments} WHERE note_id = ? AND user_id = ?",
            (*fields.values(), note_id, user_id),
        )
    return get_note(db_path, note_id, user_id)


def delete_note(db_path: Path, note_id: str, user_id: int) -> bool:
    with get_db(db_path) as db:
        cur = db.execute("DELETE FROM notes WHERE note_id = ? AND user_id = ?", (note_id, user_id))
    return cur.rowcount == 1


def find_pending_notes(db_path: Path, user_id: int) -> list[Note]:
    """Saved notes of one user that have not been delivered yet."""
    with get_db(db_path) as db:
        rows = db.execute(
            """SELECT * FROM notes
               WHERE user_id = ? AND status = ? AND is_delivered = 0
               ORDER BY id""",
            (user_id, NoteStatus.SAVED.value),
        ).fetchall()
    return [Note.from_row(r) for r in rows]


def mark_delivered(
    db_path: Path,
    note_id: str,
    results: DeliveryResults,
    recipients: list[Recipient],
    user_id: int,
    delivered_at_iso: str,
) -> bool:
    """Record a delivery and append its log entry.

    The note update only applies while is_delivered is still 0, so two
    overlapping sweeps record a note once. Returns False if it was already
    delivered; the log entry is written either way.
    """
    with get_db(db_path) as db:
        cur = db.execute(
            """UPDATE notes
               SET is_delivered = 1, status = ?, delivered_at = ?, delivery_results = ?, updated_at = ?
               WHERE note_id = ? AND is_delivered = 0""",
            (
                NoteStatus.DELIVERED.value,
                delivered_at_iso,
                json.dumps(results.to_dict()),
                _now_iso(),
                note_id,
            ),
        )
        db.execute(
            """INSERT INTO delivery_logs (note_id, user_id, recipients, delivered_at, successful, failed)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                note_id,
                user_id,
                json.dumps([r.to_dict() for r in recipients]),
                delivered_at_iso,
                json.dumps(results.successful),
                json.dumps(results.failed),
            ),
        )
    return cur.rowcount == 1


def list_delivery_logs(db_path: Path, note_id: str | None = None) -> list[DeliveryLogEntry]:
    with get_db(db_path) as db:
        if note_id is None:
            rows = db.execute("SELECT * FROM delivery_logs ORDER BY id").fetchall()
        else:
            rows = db.execute(
                "SELECT * FROM delivery_logs WHERE note_id = ? ORDER BY id", (note_id,)
            ).fetchall()
    return [DeliveryLogEntry.from_row(r) for r in rows]
