from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from lastnote.config import Settings
from lastnote.db import get_db, init_db
from lastnote.services.email import EmailResult, EmailSender

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "test.db"
    init_db(path)
    return path


@pytest.fixture
def settings(db_path):
    return Settings(
        database_path=db_path,
        app_url="http://testserver",
        cron_secret="cron-secret",
        internal_api_secret="internal-secret",
        resend_api_key="re_test",
    )


@pytest.fixture
def emails():
    mock = AsyncMock(spec=EmailSender)
    mock.send_delivery_email.return_value = EmailResult(success=True, message_id="msg_delivery")
    mock.send_reminder_email.return_value = EmailResult(success=True, message_id="msg_reminder")
    return mock


@pytest.fixture
def seed_user(db_path):
    def _seed(
        auth_id="user_1",
        email="owner@example.com",
        first_name="Olivia",
        checked_in=timedelta(days=0),
        now=NOW,
        is_active=True,
    ):
        last_check_in = (now - checked_in).isoformat() if checked_in is not None else None
        with get_db(db_path) as db:
            cur = db.execute(
                """INSERT INTO users (auth_id, email, first_name, last_check_in, is_active)
                   VALUES (?, ?, ?, ?, ?)""",
                (auth_id, email, first_name, last_check_in, int(is_active)),
            )
            return cur.lastrowid

    return _seed


@pytest.fixture
def seed_note(db_path):
    def _seed(
        user_id,
        note_id="note-1",
        title="For my family",
        period="60 days",
        trigger="automatic",
        status="saved",
        recipients=None,
        is_delivered=False,
    ):
        if recipients is None:
            recipients = [{"name": "Ava", "email": "ava@example.com", "relationship": "sister"}]
        with get_db(db_path) as db:
            db.execute(
                """INSERT INTO notes (note_id, user_id, title, status, recipients,
                                      delivery_trigger, check_in_period, is_delivered)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (note_id, user_id, title, status, json.dumps(recipients), trigger, period, int(is_delivered)),
            )
        return note_id

    return _seed
