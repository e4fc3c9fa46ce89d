import logging
from datetime import datetime, timezone
from typing import Optional, Any
from supabase import Client

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def log_action(
    supabase: Client,
    actor: Any,
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    details: Optional[Any] = None
):
    """
    Records an admin action in the audit_logs table.
    'actor' is the Profile of the admin performing the action.
    """
    try:
        log_entry = {
            "user_id": actor.id,
            "user_name": actor.full_name or actor.email,
            "user_role": actor.role,
            "action": action,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "details": details
        }
        supabase.table("audit_logs").insert(log_entry).execute()
    except Exception as e:
        logger.error("Failed to write audit log for %s %s: %s", action, resource_type, e)


def log_broadcast(
    supabase: Client,
    sender_id: Optional[str],
    title: str,
    body: str,
    data: Optional[dict],
    recipients_count: int,
):
    """
    Appends one notification_broadcasts row. Rows are never updated.
    Anonymous senders (rider bookings) are not logged.
    """
    if not sender_id:
        return
    try:
        supabase.table("notification_broadcasts").insert({
            "sender_id": sender_id,
            "title": title,
            "body": body,
            "data": data,
            "recipients_count": recipients_count,
            "sent_at": datetime.now(timezone.utc).isoformat(),
        }).execute()
    except Exception as e:
        logger.error("Failed to log broadcast %r: %s", title, e)
