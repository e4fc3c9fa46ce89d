"""
Profile table access: bootstrap-on-first-sign-in plus the handful of
updates the session store, push registrar and admin panel perform.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from postgrest.exceptions import APIError
from pydantic import ValidationError
from supabase import Client

from .schemas.profile import DEFAULT_ACCESS, DEFAULT_ROLE, Profile

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"
NO_ROWS_CODE = "PGRST116"


class SelfActionError(ValueError):
    """Raised when an admin targets their own profile with a destructive action."""


def is_no_rows_error(exc: APIError) -> bool:
    return exc.code == NO_ROWS_CODE or "0 rows" in (exc.message or "")


def to_profile(row: Any) -> Optional[Profile]:
    if not row:
        return None
    try:
        return Profile.model_validate(row)
    except ValidationError as exc:
        logger.error("Rejected malformed profile row %s: %s", row.get("id") if isinstance(row, dict) else row, exc)
        return None


def to_profiles(rows: Iterable[Any] | None) -> list[Profile]:
    profiles = []
    for row in rows or []:
        profile = to_profile(row)
        if profile is not None:
            profiles.append(profile)
    return profiles


def default_profile_row(user_id: str, full_name: str | None = None) -> dict:
    return {
        "id": user_id,
        "full_name": full_name,
        "avatar_url": None,
        "role": DEFAULT_ROLE,
        "access": DEFAULT_ACCESS,
        "notification_enabled": False,
    }


def _select_one(supabase: Client, user_id: str):
    return supabase.table(PROFILES_TABLE).select("*").eq("id", user_id).single().execute()


def get_profile(supabase: Client, user_id: str) -> Optional[Profile]:
    """Returns the profile or None when the row does not exist."""
    try:
        response = _select_one(supabase, user_id)
    except APIError as exc:
        if is_no_rows_error(exc):
            return None
        raise
    return to_profile(response.data)


def fetch_or_create_profile(supabase: Client, user_id: str) -> Optional[Profile]:
    """
    Reads the user's profile, creating it with default role/access when the
    read reports no rows.

    The insert is an upsert that ignores duplicates followed by a re-read, so
    two devices signing in for the first time at once end up with the same
    single row. Any other failure yields None and is not retried.
    """
    try:
        response = _select_one(supabase, user_id)
        return to_profile(response.data)
    except APIError as exc:
        if not is_no_rows_error(exc):
            logger.error("Error fetching profile %s: %s", user_id, exc.message)
            return None
    except Exception as exc:
        logger.error("Error in fetch_or_create_profile for %s: %s", user_id, exc)
        return None

    logger.info("No profile found for %s, creating one", user_id)
    try:
        (
            supabase.table(PROFILES_TABLE)
            .upsert(default_profile_row(user_id), on_conflict="id", ignore_duplicates=True)
            .execute()
        )
        response = _select_one(supabase, user_id)
    except APIError as exc:
        logger.error("Error creating profile %s: %s", user_id, exc.message)
        return None
    except Exception as exc:
        logger.error("Error creating profile %s: %s", user_id, exc)
        return None
    return to_profile(response.data)


def update_profile(supabase: Client, user_id: str, changes: dict) -> Optional[Profile]:
    response = supabase.table(PROFILES_TABLE).update(changes).eq("id", user_id).execute()
    if not response.data:
        return None
    return to_profile(response.data[0])


def set_push_token(supabase: Client, user_id: str, token: str) -> Optional[Profile]:
    return update_profile(supabase, user_id, {"expo_push_token": token, "notification_enabled": True})


def clear_push_token(supabase: Client, user_id: str) -> Optional[Profile]:
    # Token and flag always change together.
    return update_profile(supabase, user_id, {"expo_push_token": None, "notification_enabled": False})


def list_admins(supabase: Client, exclude_id: str | None = None) -> list[Profile]:
    query = supabase.table(PROFILES_TABLE).select("*").eq("role", "admin")
    if exclude_id:
        query = query.neq("id", exclude_id)
    return to_profiles(query.execute().data)


def delete_profile(supabase: Client, actor: Profile, target_id: str) -> bool:
    if target_id == actor.id:
        raise SelfActionError("Cannot delete your own profile")
    response = supabase.table(PROFILES_TABLE).delete().eq("id", target_id).execute()
    return bool(response.data)


def toggle_access(supabase: Client, actor: Profile, target_id: str) -> Optional[Profile]:
    """Flips the target's access between "limit" and "full"."""
    if target_id == actor.id:
        raise SelfActionError("Cannot change your own access")
    target = get_profile(supabase, target_id)
    if target is None:
        return None
    new_access = "limit" if target.access == "full" else "full"
    return update_profile(supabase, target_id, {"access": new_access})


def upsert_admin_profile(supabase: Client, user_id: str, full_name: str) -> Optional[Profile]:
    row = default_profile_row(user_id, full_name)
    row["role"] = "admin"
    response = supabase.table(PROFILES_TABLE).upsert(row, on_conflict="id").execute()
    if not response.data:
        return None
    return to_profile(response.data[0])


def list_push_tokens(supabase: Client) -> list[str]:
    response = (
        supabase.table(PROFILES_TABLE)
        .select("expo_push_token")
        .eq("notification_enabled", True)
        .not_.is_("expo_push_token", "null")
        .execute()
    )
    return [row["expo_push_token"] for row in response.data or [] if row.get("expo_push_token")]
