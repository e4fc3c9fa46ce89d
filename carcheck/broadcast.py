"""
Fan-out of one push message to every opted-in profile.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from supabase import Client

from .profiles import list_push_tokens
from .push_gateway import ExpoPushClient, PushGatewayError, build_message
from .schemas.notification import BroadcastResult
from .utils.logging import log_broadcast

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def chunk(items: list[str], size: int) -> list[list[str]]:
    if size < 1:
        raise ValueError("batch size must be positive")
    return [items[i:i + size] for i in range(0, len(items), size)]


class BroadcastSender:
    def __init__(
        self,
        supabase: Client,
        gateway: ExpoPushClient,
        batch_size: int = 100,
        batch_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.supabase = supabase
        self.gateway = gateway
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.sleep = sleep

    def send_to_all(
        self,
        sender_id: Optional[str],
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> BroadcastResult:
        """
        Sends to every profile with notifications enabled, batch by batch.

        A failed batch is logged and skipped; the remaining batches are still
        attempted. One broadcast row is logged once all batches ran. Raises
        only if the recipient query itself fails.
        """
        tokens = list_push_tokens(self.supabase)
        total = len(tokens)
        if total == 0:
            logger.info("Broadcast %r skipped: no opted-in recipients", title)
            return BroadcastResult(sent=0, total=0)

        payload = dict(data or {})
        payload["sentAt"] = datetime.now(timezone.utc).isoformat()
        payload["senderId"] = sender_id

        batches = chunk(tokens, self.batch_size)
        logger.info("Broadcasting %r to %d tokens in %d batches", title, total, len(batches))

        sent = 0
        failed_batches = 0
        for index, batch in enumerate(batches):
            try:
                self.gateway.send(build_message(batch, title, body, payload))
                sent += len(batch)
            except PushGatewayError as exc:
                failed_batches += 1
                logger.error("Broadcast batch %d/%d failed: %s", index + 1, len(batches), exc)
            except Exception:
                failed_batches += 1
                logger.exception("Broadcast batch %d/%d failed unexpectedly", index + 1, len(batches))

            if progress is not None:
                progress(sent, total)
            if index < len(batches) - 1 and self.batch_delay > 0:
                self.sleep(self.batch_delay)

        log_broadcast(self.supabase, sender_id, title, body, data, recipients_count=total)
        return BroadcastResult(sent=sent, total=total, failed_batches=failed_batches)
