from fastapi import APIRouter, Depends, HTTPException, Query
from supabase import Client

from .. import messages
from ..broadcast import BroadcastSender
from ..dependencies import get_broadcast_sender, get_current_user, get_push_gateway, require_full_access
from ..profiles import clear_push_token, set_push_token
from ..push_gateway import ExpoPushClient, PushGatewayError, build_message
from ..schemas.notification import BroadcastCreate, BroadcastResult, NotificationBroadcast, PushResult, PushTokenRegister
from ..schemas.profile import Profile
from ..supabase_client import get_supabase_client

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post("/token", response_model=PushResult)
def register_token(
    payload: PushTokenRegister,
    user: Profile = Depends(get_current_user),
    supabase: Client = Depends(get_supabase_client),
):
    """Stores this device's push token on the caller's profile and opts in."""
    try:
        profile = set_push_token(supabase, user.id, payload.token)
    except Exception as exc:
        raise HTTPException(status_code=500, detail=f"Failed to save push token: {exc}") from exc
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return PushResult(success=True, message="push token saved", token=payload.token)


@router.delete("/token", response_model=PushResult)
def disable_notifications(
    user: Profile = Depends(get_current_user),
    supabase: Client = Depends(get_supabase_client),
):
    try:
        profile = clear_push_token(supabase, user.id)
    except Exception as exc:
        raise HTTPException(status_code=500, detail=f"Failed to disable notifications: {exc}") from exc
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return PushResult(success=True, message="notifications disabled")


@router.post("/test", response_model=PushResult)
def send_test_notification(
    user: Profile = Depends(get_current_user),
    gateway: ExpoPushClient = Depends(get_push_gateway),
):
    if not user.notification_enabled or not user.expo_push_token:
        raise HTTPException(status_code=400, detail="No push token registered for this account")
    message = build_message(
        user.expo_push_token,
        messages.TEST_TITLE,
        messages.TEST_BODY,
        {"screen": "Home", "type": "test"},
    )
    try:
        gateway.send(message)
    except PushGatewayError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return PushResult(success=True, message="test notification sent", token=user.expo_push_token)


@router.post("/broadcast", response_model=BroadcastResult)
def broadcast(
    payload: BroadcastCreate,
    admin: Profile = Depends(require_full_access),
    sender: BroadcastSender = Depends(get_broadcast_sender),
):
    """Pushes a message to every opted-in profile. Full access only."""
    try:
        return sender.send_to_all(admin.id, payload.title, payload.body, payload.data)
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.get("/broadcasts", response_model=list[NotificationBroadcast], dependencies=[Depends(require_full_access)])
def list_broadcasts(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    supabase: Client = Depends(get_supabase_client),
):
    """Broadcast audit log, newest first."""
    response = (
        supabase.table("notification_broadcasts")
        .select("*")
        .order("sent_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )
    return response.data or []
