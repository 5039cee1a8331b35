from __future__ import annotations

from datetime import timedelta

import pytest

from lastnote import store
from lastnote.db import get_db
from lastnote.models import (
    CheckInFrequency,
    DeliveryResults,
    DeliveryTrigger,
    NoteStatus,
    Recipient,
)


def test_schema_creation(db_path):
    with get_db(db_path) as db:
        tables = db.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        ).fetchall()
    names = [t["name"] for t in tables]
    assert "users" in names
    assert "notes" in names
    assert "delivery_logs" in names


def test_user_create_and_check_in(db_path):
    user = store.create_user(db_path, "auth_1", "a@example.com", first_name="Ann")
    assert user.is_active
    assert user.last_check_in is not None
    assert user.check_in_frequency is CheckInFrequency.MONTHLY

    updated = store.update_user(db_path, "auth_1", check_in_frequency="annually")
    assert updated.check_in_frequency is CheckInFrequency.ANNUALLY

    checked = store.record_check_in(db_path, "auth_1")
    assert checked.last_check_in >= user.last_check_in


def test_record_check_in_unknown_user(db_path):
    assert store.record_check_in(db_path, "nobody") is None


def test_update_user_rejects_unknown_fields(db_path):
    store.create_user(db_path, "auth_1", "a@example.com")
    with pytest.raises(ValueError):
        store.update_user(db_path, "auth_1", is_active=0)


def test_auth_id_unique(db_path):
    store.create_user(db_path, "auth_1", "a@example.com")
    with pytest.raises(Exception):
        store.create_user(db_path, "auth_1", "b@example.com")


def test_note_crud(db_path, seed_user):
    user_id = seed_user()
    note = store.create_draft_note(db_path, user_id, "n-1")
    assert note.status is NoteStatus.DRAFT
    assert note.delivery_trigger is DeliveryTrigger.AUTOMATIC
    assert note.content == {"textNote": "", "sensitiveInfo": "", "attachments": []}

    updated = store.update_note(
        db_path,
        "n-1",
        user_id,
        title="Letter",
        status=NoteStatus.SAVED,
        recipients=[Recipient(name="Ben", email="ben@example.com")],
        check_in_period="30 days",
    )
    assert updated.title == "Letter"
    assert updated.status is NoteStatus.SAVED
    assert updated.recipients == [Recipient(name="Ben", email="ben@example.com")]
    assert updated.check_in_period == "30 days"

    assert [n.note_id for n in store.list_notes(db_path, user_id)] == ["n-1"]
    assert store.delete_note(db_path, "n-1", user_id)
    assert store.get_note(db_path, "n-1") is None


@pytest.mark.parametrize("field", ["is_delivered", "owner_id", "delivered_at"])
def test_update_note_rejects_protected_fields(db_path, seed_user, field):
    user_id = seed_user()
    store.create_draft_note(db_path, user_id, "n-1")
    with pytest.raises(ValueError):
        store.update_note(db_path, "n-1", user_id, **{field: 1})
    assert not store.get_note(db_path, "n-1").is_delivered


def test_note_scoped_to_owner(db_path, seed_user, seed_note):
    owner = seed_user()
    other = seed_user(auth_id="user_2", email="other@example.com")
    seed_note(owner)
    assert store.get_note(db_path, "note-1", other) is None
    assert not store.delete_note(db_path, "note-1", other)


def test_status_check_constraint(db_path, seed_user, seed_note):
    user_id = seed_user()
    with pytest.raises(Exception):
        seed_note(user_id, status="archived")


def test_cascade_delete_notes_with_user(db_path, seed_user, seed_note):
    user_id = seed_user()
    seed_note(user_id)
    with get_db(db_path) as db:
        db.execute("DELETE FROM users WHERE id = ?", (user_id,))
    assert store.get_note(db_path, "note-1") is None


def test_sweep_users_need_active_and_check_in(db_path, seed_user):
    seed_user(auth_id="a", email="a@example.com")
    seed_user(auth_id="b", email="b@example.com", is_active=False)
    seed_user(auth_id="c", email="c@example.com", checked_in=None)
    assert [u.email for u in store.find_sweep_users(db_path)] == ["a@example.com"]


def test_pending_notes_filter(db_path, seed_user, seed_note):
    user_id = seed_user()
    seed_note(user_id, note_id="saved")
    seed_note(user_id, note_id="draft", status="draft")
    seed_note(user_id, note_id="done", is_delivered=True)
    assert [n.note_id for n in store.find_pending_notes(db_path, user_id)] == ["saved"]


def test_mark_delivered_only_once(db_path, seed_user, seed_note):
    user_id = seed_user()
    seed_note(user_id)
    recipients = [Recipient(name="Ava", email="ava@example.com")]
    first = DeliveryResults(successful=["ava@example.com"], total_recipients=1)
    second = DeliveryResults(
        failed=[{"email": "ava@example.com", "error": "boom"}], total_recipients=1
    )

    assert store.mark_delivered(db_path, "note-1", first, recipients, user_id, "2026-03-01T12:00:00+00:00")
    assert not store.mark_delivered(db_path, "note-1", second, recipients, user_id, "2026-03-01T12:05:00+00:00")

    note = store.get_note(db_path, "note-1")
    assert note.is_delivered
    assert note.status is NoteStatus.DELIVERED
    assert note.delivered_at.isoformat() == "2026-03-01T12:00:00+00:00"
    assert note.delivery_results.successful == ["ava@example.com"]
    assert store.find_pending_notes(db_path, user_id) == []

    logs = store.list_delivery_logs(db_path, "note-1")
    assert len(logs) == 2
    assert logs[0].recipients == [{"name": "Ava", "email": "ava@example.com"}]


def test_greeting_and_display_names(db_path, seed_user):
    seed_user(auth_id="named", email="olivia@example.com", first_name="Olivia")
    seed_user(auth_id="anon", email="sam.r@example.com", first_name="")
    named = store.get_user_by_auth_id(db_path, "named")
    anon = store.get_user_by_auth_id(db_path, "anon")
    assert named.greeting_name == "Olivia"
    assert named.display_name == "Olivia"
    assert anon.greeting_name == "sam.r"
    assert anon.display_name == "sam.r@example.com"


def test_last_check_in_round_trips_as_utc(db_path, seed_user):
    seed_user(checked_in=timedelta(days=3))
    user = store.get_user_by_auth_id(db_path, "user_1")
    assert user.last_check_in.utcoffset() == timedelta(0)
