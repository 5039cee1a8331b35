from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from lastnote import store
from lastnote.auth import get_settings, subject_id
from lastnote.models import CheckInFrequency, utcnow

router = APIRouter(prefix="/api", tags=["users"])


class UserProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(min_length=1)
    first_name: str | None = Field(None, alias="firstName")
    last_name: str | None = Field(None, alias="lastName")
    check_in_frequency: CheckInFrequency | None = Field(None, alias="checkInFrequency")


def _unauthorized() -> JSONResponse:
    return JSONResponse({"error": "Unauthorized"}, status_code=401)


@router.post("/check-in")
async def check_in(request: Request):
    """Reset the caller's delivery countdown."""
    auth_id = subject_id(request)
    if auth_id is None:
        return _unauthorized()
    user = store.record_check_in(get_settings(request).db_path, auth_id)
    if not user:
        return JSONResponse({"error": "User not found"}, status_code=404)
    return {
        "success": True,
        "message": "Check-in successful",
        "lastCheckIn": user.last_check_in.isoformat(),
    }


@router.post("/user/sync")
async def sync_user(request: Request):
    """Signing in counts as a check-in for known users."""
    auth_id = subject_id(request)
    if auth_id is None:
        return _unauthorized()
    user = store.record_check_in(get_settings(request).db_path, auth_id)
    if user:
        return {"success": True, "user": user.to_dict(), "message": "User check-in updated"}
    return {
        "success": False,
        "needsUserData": True,
        "message": "User not found in database. Please provide user details.",
    }


@router.put("/user/sync")
async def upsert_user(request: Request, profile: UserProfile):
    auth_id = subject_id(request)
    if auth_id is None:
        return _unauthorized()
    db_path = get_settings(request).db_path

    if store.get_user_by_auth_id(db_path, auth_id):
        fields = profile.model_dump(exclude_none=True)
        user = store.update_user(db_path, auth_id, last_check_in=utcnow().isoformat(), **fields)
        return {"success": True, "user": user.to_dict(), "message": "User updated successfully"}

    user = store.create_user(
        db_path,
        auth_id,
        profile.email,
        first_name=profile.first_name or "",
        last_name=profile.last_name or "",
        check_in_frequency=profile.check_in_frequency or CheckInFrequency.MONTHLY,
    )
    return {"success": True, "user": user.to_dict(), "message": "User created successfully"}
