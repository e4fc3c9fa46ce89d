from fastapi import APIRouter, Depends, HTTPException
from supabase import Client

from .. import messages
from ..dependencies import require_admin, require_full_access
from ..profiles import SelfActionError, delete_profile, list_admins, toggle_access, upsert_admin_profile
from ..schemas.profile import AccessToggleOut, AdminCreate, Profile
from ..schemas.request import RequestStats
from ..supabase_client import create_device_client, get_supabase_client
from ..utils.logging import log_action

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

REQUEST_STATUS_FIELDS = {
    "pending": "pending_requests",
    "processing": "processing_requests",
    "rejected": "rejected_requests",
    "done": "completed_requests",
}


def _count(query) -> int:
    return query.execute().count or 0


@router.get("/summary", response_model=RequestStats, dependencies=[Depends(require_full_access)])
def get_admin_summary(supabase: Client = Depends(get_supabase_client)):
    stats = {
        "admin_users": _count(
            supabase.table("profiles").select("*", count="exact", head=True).eq("role", "admin")
        ),
        "total_requests": _count(supabase.table("requests").select("*", count="exact", head=True)),
    }
    for status, field in REQUEST_STATUS_FIELDS.items():
        stats[field] = _count(
            supabase.table("requests").select("*", count="exact", head=True).eq("status", status)
        )
    return RequestStats(**stats)


@router.get("/admins", response_model=list[Profile])
def get_admins(
    admin: Profile = Depends(require_admin),
    supabase: Client = Depends(get_supabase_client),
):
    return list_admins(supabase, exclude_id=admin.id)


@router.post("/admins", response_model=Profile, status_code=201)
def create_admin(
    payload: AdminCreate,
    admin: Profile = Depends(require_full_access),
    supabase: Client = Depends(get_supabase_client),
    auth_client: Client = Depends(create_device_client),
):
    try:
        res = auth_client.auth.sign_up(
            {
                "email": payload.email.strip(),
                "password": payload.password.strip(),
                "options": {"data": {"full_name": payload.username.strip()}},
            }
        )
    except Exception as exc:
        error = getattr(exc, "message", None) or str(exc)
        raise HTTPException(status_code=400, detail=messages.signup_error_message(error)) from exc
    if not res.user:
        raise HTTPException(status_code=400, detail=messages.signup_error_message("Unable to sign up"))

    profile = upsert_admin_profile(supabase, res.user.id, payload.username.strip())
    if profile is None:
        raise HTTPException(status_code=500, detail="Failed to create admin profile")
    log_action(supabase, admin, "create", "admin", profile.id)
    return profile


@router.delete("/admins/{profile_id}")
def delete_admin(
    profile_id: str,
    admin: Profile = Depends(require_full_access),
    supabase: Client = Depends(get_supabase_client),
):
    try:
        deleted = delete_profile(supabase, admin, profile_id)
    except SelfActionError as exc:
        raise HTTPException(status_code=400, detail=messages.CANNOT_DELETE_SELF) from exc
    except Exception as exc:
        raise HTTPException(status_code=500, detail=messages.ADMIN_DELETE_FAILED) from exc
    if not deleted:
        raise HTTPException(status_code=404, detail="Profile not found")
    log_action(supabase, admin, "delete", "profile", profile_id)
    return {"message": messages.ADMIN_DELETED}


@router.post("/admins/{profile_id}/toggle-access", response_model=AccessToggleOut)
def toggle_admin_access(
    profile_id: str,
    admin: Profile = Depends(require_full_access),
    supabase: Client = Depends(get_supabase_client),
):
    try:
        updated = toggle_access(supabase, admin, profile_id)
    except SelfActionError as exc:
        raise HTTPException(status_code=400, detail=messages.CANNOT_CHANGE_OWN_ACCESS) from exc
    except Exception as exc:
        raise HTTPException(status_code=500, detail=messages.ACCESS_UPDATE_FAILED) from exc
    if updated is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    log_action(supabase, admin, "toggle_access", "profile", profile_id, {"access": updated.access})
    return AccessToggleOut(id=updated.id, access=updated.access, message=messages.access_toggled_message(updated.access))
