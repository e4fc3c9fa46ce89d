"""
Thin client for the Expo push HTTP endpoint.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

logger = logging.getLogger(__name__)

EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"
DEFAULT_CHANNEL_ID = "default"


class PushGatewayError(Exception):
    """Transport failure or error body returned by the push gateway."""


def build_message(
    to: str | list[str],
    title: str,
    body: str,
    data: Optional[dict[str, Any]] = None,
    channel_id: Optional[str] = DEFAULT_CHANNEL_ID,
) -> dict[str, Any]:
    message: dict[str, Any] = {
        "to": to,
        "title": title,
        "body": body,
        "data": data or {},
        "sound": "default",
        "priority": "high",
    }
    if channel_id:
        message["channelId"] = channel_id
    return message


class ExpoPushClient:
    def __init__(
        self,
        url: str = EXPO_PUSH_URL,
        access_token: Optional[str] = None,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
            "Content-Type": "application/json",
        }
        if access_token:
            self.headers["Authorization"] = f"Bearer {access_token}"

    def send(self, message: dict[str, Any] | list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        Posts one message (or a list of messages) and returns the per-token
        receipts from the response's `data` field.
        """
        try:
            resp = self.session.post(self.url, json=message, headers=self.headers, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except requests.exceptions.HTTPError as e:
            detail = f"HTTP {e.response.status_code}: {e.response.text[:200]}" if e.response is not None else str(e)
            raise PushGatewayError(detail) from e
        except (requests.exceptions.RequestException, ValueError) as e:
            raise PushGatewayError(str(e)) from e

        if not isinstance(body, dict):
            raise PushGatewayError(f"Unexpected response body: {str(body)[:200]}")
        if body.get("errors"):
            raise PushGatewayError(str(body["errors"]))

        receipts = body.get("data") or []
        if isinstance(receipts, dict):
            receipts = [receipts]
        if not isinstance(receipts, list) or not all(isinstance(r, dict) for r in receipts):
            raise PushGatewayError(f"Unexpected receipts: {str(receipts)[:200]}")
        failed = [r for r in receipts if r.get("status") == "error"]
        if failed:
            logger.warning("Push gateway rejected %d of %d messages: %s", len(failed), len(receipts), failed[:3])
        return receipts
