import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from postgrest.exceptions import APIError
from supabase import Client

from .. import messages
from ..broadcast import BroadcastSender
from ..config import get_settings
from ..dependencies import get_broadcast_sender, require_admin, require_full_access
from ..profiles import NO_ROWS_CODE
from ..schemas.profile import Profile
from ..schemas.request import InspectionRequest, RequestCreate
from ..supabase_client import get_supabase_client
from ..utils.logging import log_action

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/requests", tags=["requests"])


def notify_new_request(sender: BroadcastSender) -> None:
    try:
        result = sender.send_to_all(None, messages.NEW_REQUEST_TITLE, messages.NEW_REQUEST_BODY)
        logger.info("New request notification sent to %d of %d", result.sent, result.total)
    except Exception as exc:
        logger.error("Failed to notify about new request: %s", exc)


@router.post("", response_model=InspectionRequest, status_code=201)
def create_request(
    payload: RequestCreate,
    background_tasks: BackgroundTasks,
    supabase: Client = Depends(get_supabase_client),
    sender: BroadcastSender = Depends(get_broadcast_sender),
):
    """Books an inspection. Riders are anonymous; new requests always start pending."""
    row = {
        "from": payload.from_location,
        "to": payload.to_location,
        "time": payload.time,
        "phone": payload.phone,
        "status": "pending",
    }
    response = supabase.table("requests").insert(row).execute()
    if not response.data:
        raise HTTPException(status_code=500, detail="Failed to create request")

    if get_settings().NOTIFY_ON_NEW_REQUEST:
        background_tasks.add_task(notify_new_request, sender)
    return response.data[0]


@router.get("/admin/all", response_model=list[InspectionRequest], dependencies=[Depends(require_admin)])
def list_all_requests(supabase: Client = Depends(get_supabase_client)):
    response = supabase.table("requests").select("*").order("created_at", desc=True).execute()
    return response.data or []


def _transition_pending(supabase: Client, request_id: str, new_status: str) -> dict:
    """Moves a pending request to new_status; anything else is a conflict."""
    response = (
        supabase.table("requests")
        .update({"status": new_status})
        .eq("id", request_id)
        .eq("status", "pending")
        .execute()
    )
    if response.data:
        return response.data[0]

    try:
        existing = supabase.table("requests").select("id, status").eq("id", request_id).single().execute()
    except APIError as exc:
        if exc.code == NO_ROWS_CODE:
            raise HTTPException(status_code=404, detail="Request not found") from exc
        raise HTTPException(status_code=500, detail=exc.message) from exc
    raise HTTPException(
        status_code=409,
        detail=f"Request is {existing.data.get('status')}, only pending requests can change status",
    )


@router.patch("/admin/{request_id}/accept", response_model=InspectionRequest)
def accept_request(
    request_id: str,
    admin: Profile = Depends(require_admin),
    supabase: Client = Depends(get_supabase_client),
):
    updated = _transition_pending(supabase, request_id, "processing")
    log_action(supabase, admin, "accept", "request", request_id)
    return updated


@router.patch("/admin/{request_id}/reject", response_model=InspectionRequest)
def reject_request(
    request_id: str,
    admin: Profile = Depends(require_admin),
    supabase: Client = Depends(get_supabase_client),
):
    updated = _transition_pending(supabase, request_id, "rejected")
    log_action(supabase, admin, "reject", "request", request_id)
    return updated


@router.delete("/admin/{request_id}")
def delete_request(
    request_id: str,
    admin: Profile = Depends(require_full_access),
    supabase: Client = Depends(get_supabase_client),
):
    response = supabase.table("requests").delete().eq("id", request_id).execute()
    if not response.data:
        raise HTTPException(status_code=404, detail="Request not found")
    log_action(supabase, admin, "delete", "request", request_id)
    return {"message": "Request deleted"}
