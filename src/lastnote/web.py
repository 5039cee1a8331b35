from __future__ import annotations

from fastapi import FastAPI

from lastnote.config import Settings
from lastnote.db import init_db
from lastnote.routes import cron, delivery, notes, users
from lastnote.services.delivery import InternalDeliveryClient
from lastnote.services.email import EmailSender
from lastnote.services.sweep import DeliverFn


def create_app(
    settings: Settings | None = None,
    emails: EmailSender | None = None,
    deliver: DeliverFn | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    init_db(settings.db_path)

    app = FastAPI(title="My Last Note")
    app.state.settings = settings
    app.state.emails = emails or EmailSender(settings)
    app.state.deliver = deliver or InternalDeliveryClient(settings)

    app.include_router(cron.router)
    app.include_router(delivery.router)
    app.include_router(users.router)
    app.include_router(notes.router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
