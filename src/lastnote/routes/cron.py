from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from lastnote.auth import bearer_matches, get_settings
from lastnote.services.sweep import DeliverySweep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["cron"])


@router.post("/check-deliveries")
async def check_deliveries(request: Request):
    """Run one sweep. Called by an external scheduler."""
    settings = get_settings(request)
    if not bearer_matches(request, settings.cron_secret):
        logger.warning("Rejected check-deliveries call with a bad cron secret")
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    sweep = DeliverySweep(settings, request.app.state.emails, request.app.state.deliver)
    try:
        report = await sweep.run()
    except Exception as exc:
        logger.exception("Delivery check error")
        return JSONResponse(
            {"success": False, "error": "Failed to check deliveries", "details": str(exc)},
            status_code=500,
        )
    return report.to_dict()
