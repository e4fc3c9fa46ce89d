import logging

from fastapi import APIRouter, Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials
from supabase import Client

from .. import messages
from ..dependencies import get_current_user, security
from ..profiles import clear_push_token, update_profile as update_profile_row
from ..schemas.auth import AuthResponse, LoginPayload
from ..schemas.profile import Profile, ProfileUpdate
from ..session_store import SessionStore
from ..supabase_client import create_device_client, get_supabase_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginPayload, supabase: Client = Depends(create_device_client)):
    store = SessionStore(supabase)
    result = store.login(payload.email, payload.password)
    if not result.success or store.session is None or store.user is None:
        raise HTTPException(
            status_code=401,
            detail={"error": result.error, "message": messages.login_error_message(result.error)},
        )
    return AuthResponse(
        access_token=store.session.access_token,
        refresh_token=store.session.refresh_token,
        user=store.user,
        profile=store.profile,
    )


@router.post("/logout")
def logout(
    credentials: HTTPAuthorizationCredentials = Security(security),
    user: Profile = Depends(get_current_user),
    supabase: Client = Depends(get_supabase_client),
):
    """Clears the caller's push token, then revokes the access token."""
    try:
        clear_push_token(supabase, user.id)
    except Exception as exc:
        logger.warning("Failed to disable notifications for %s: %s", user.id, exc)

    try:
        supabase.auth.admin.sign_out(credentials.credentials)
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"success": True}


@router.get("/me", response_model=Profile)
def me(user: Profile = Depends(get_current_user)):
    return user


@router.patch("/me", response_model=Profile)
def update_profile(
    payload: ProfileUpdate,
    user: Profile = Depends(get_current_user),
    supabase: Client = Depends(get_supabase_client),
):
    changes = payload.changes()
    if not changes:
        return user
    try:
        profile = update_profile_row(supabase, user.id, changes)
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile
