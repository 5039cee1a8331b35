from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from lastnote.models import Recipient
from lastnote.services.email import EmailSender


@pytest.fixture
def sender(settings):
    return EmailSender(settings)


@patch("resend.Emails.send")
def test_delivery_email(mock_send, sender):
    mock_send.return_value = {"id": "re_123"}

    result = asyncio.run(
        sender.send_delivery_email(
            recipient=Recipient(name="Ava", email="ava@example.com", relationship="sister"),
            note_title="For my family",
            sender_name="Olivia Reed",
            note_url="http://testserver/view-note/n-1",
            delivered_at=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
        )
    )

    assert result.success
    assert result.message_id == "re_123"
    params = mock_send.call_args.args[0]
    assert params["from"] == "My Last Note <onboarding@lastnote.live>"
    assert params["to"] == ["ava@example.com"]
    assert params["subject"] == "You've received a note from Olivia Reed"
    assert "Hello Ava (sister)," in params["html"]
    assert "http://testserver/view-note/n-1" in params["html"]


@patch("resend.Emails.send")
def test_reminder_email(mock_send, sender):
    mock_send.return_value = {"id": "re_456"}

    result = asyncio.run(
        sender.send_reminder_email(
            user_email="owner@example.com",
            user_name="Olivia",
            check_in_url="http://testserver/notes",
            days_remaining=1,
        )
    )

    assert result.success
    params = mock_send.call_args.args[0]
    assert params["subject"] == "Check-in reminder - 1 days remaining"
    assert "next 1 day," in params["html"]
    assert "Urgent" in params["html"]


@patch("resend.Emails.send")
def test_provider_error_becomes_failed_result(mock_send, sender):
    mock_send.side_effect = RuntimeError("Invalid `to` field")

    result = asyncio.run(
        sender.send_reminder_email(
            user_email="bad", user_name="x", check_in_url="http://testserver/notes", days_remaining=3
        )
    )

    assert not result.success
    assert result.error == "Invalid `to` field"


@patch("resend.Emails.send")
def test_missing_api_key(mock_send, settings):
    sender = EmailSender(replace(settings, resend_api_key=""))

    result = asyncio.run(
        sender.send_reminder_email(
            user_email="owner@example.com",
            user_name="Olivia",
            check_in_url="http://testserver/notes",
            days_remaining=3,
        )
    )

    assert not result.success
    assert "RESEND_API_KEY" in result.error
    mock_send.assert_not_called()


@patch("resend.Emails.send")
def test_note_title_is_escaped(mock_send, sender):
    mock_send.return_value = {"id": "re_789"}

    asyncio.run(
        sender.send_delivery_email(
            recipient=Recipient(name="Ava", email="ava@example.com"),
            note_title="<script>alert(1)</script>",
            sender_name="Olivia",
            note_url="http://testserver/view-note/n-1",
            delivered_at=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
        )
    )

    assert "<script>" not in mock_send.call_args.args[0]["html"]
