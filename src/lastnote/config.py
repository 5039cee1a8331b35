from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from lastnote import db as db_module

DEFAULT_APP_URL = "http://localhost:8000"
DEFAULT_FROM_EMAIL = "onboarding@lastnote.live"


@dataclass(frozen=True)
class Settings:
    """Process configuration, passed explicitly to the app and the sweep."""

    database_path: Path | None = None
    app_url: str = DEFAULT_APP_URL
    cron_secret: str = ""
    internal_api_secret: str = ""
    resend_api_key: str = ""
    resend_from_email: str = DEFAULT_FROM_EMAIL
    auth_subject_header: str = "X-Auth-Subject"

    @property
    def db_path(self) -> Path:
        return self.database_path or db_module.DB_PATH

    def note_url(self, note_id: str) -> str:
        return f"{self.app_url.rstrip('/')}/view-note/{note_id}"

    @property
    def check_in_url(self) -> str:
        return f"{self.app_url.rstrip('/')}/notes"

    @classmethod
    def from_env(cls) -> Settings:
        load_dotenv()
        db_path = os.environ.get("DATABASE_PATH", "")
        return cls(
            database_path=Path(db_path).expanduser() if db_path else None,
            app_url=os.environ.get("APP_URL", DEFAULT_APP_URL),
            cron_secret=os.environ.get("CRON_SECRET", ""),
            internal_api_secret=os.environ.get("INTERNAL_API_SECRET", ""),
            resend_api_key=os.environ.get("RESEND_API_KEY", ""),
            resend_from_email=os.environ.get("RESEND_FROM_EMAIL", DEFAULT_FROM_EMAIL),
            auth_subject_header=os.environ.get("AUTH_SUBJECT_HEADER", "X-Auth-Subject"),
        )
