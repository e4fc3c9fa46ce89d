from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import Client

from . import messages
from .broadcast import BroadcastSender
from .config import get_settings
from .profiles import fetch_or_create_profile
from .push_gateway import ExpoPushClient
from .schemas.profile import Profile
from .supabase_client import get_supabase_client

security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    supabase: Client = Depends(get_supabase_client),
) -> Profile:
    """
    Validates the incoming Supabase access token and returns the caller's
    profile, creating it on first use.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    token = credentials.credentials
    try:
        user_response = supabase.auth.get_user(token)
    except Exception as exc:  # pragma: no cover - passthrough
        raise HTTPException(status_code=401, detail="Session expired. Please sign in again.") from exc

    if not user_response or not user_response.user:
        raise HTTPException(status_code=401, detail="Session expired. Please sign in again.")

    supa_user = user_response.user
    profile = fetch_or_create_profile(supabase, supa_user.id)
    if profile is None:
        raise HTTPException(status_code=500, detail="Unable to load profile")
    if profile.email is None and supa_user.email:
        profile = profile.model_copy(update={"email": supa_user.email})
    return profile


def require_admin(user: Profile = Depends(get_current_user)) -> Profile:
    """Requires an admin profile (either access level)"""
    if not user.is_admin:
        raise HTTPException(status_code=403, detail=messages.NOT_ALLOWED)
    return user


def require_full_access(user: Profile = Depends(get_current_user)) -> Profile:
    """Requires an admin profile with full access"""
    if not user.has_full_access:
        raise HTTPException(status_code=403, detail=messages.NOT_ALLOWED)
    return user


def get_push_gateway() -> ExpoPushClient:
    settings = get_settings()
    return ExpoPushClient(
        settings.EXPO_PUSH_URL,
        access_token=settings.EXPO_ACCESS_TOKEN,
        timeout=settings.PUSH_TIMEOUT_SECONDS,
    )


def get_broadcast_sender(
    supabase: Client = Depends(get_supabase_client),
    gateway: ExpoPushClient = Depends(get_push_gateway),
) -> BroadcastSender:
    settings = get_settings()
    return BroadcastSender(
        supabase,
        gateway,
        batch_size=settings.PUSH_BATCH_SIZE,
        batch_delay=settings.PUSH_BATCH_DELAY_SECONDS,
    )
