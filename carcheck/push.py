"""
Device push-token lifecycle: permission, token issuance, and persisting the
token on the signed-in user's profile.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Protocol

from supabase import Client

from . import messages
from .profiles import clear_push_token, set_push_token
from .push_gateway import DEFAULT_CHANNEL_ID, ExpoPushClient, PushGatewayError, build_message
from .schemas.auth import AuthState
from .schemas.notification import PushResult

logger = logging.getLogger(__name__)

PERMISSION_GRANTED = "granted"


class NotificationDevice(Protocol):
    """Platform notification API (permission prompt, token issuance, channels)."""

    platform: str

    def get_permission_status(self) -> str: ...

    def request_permission(self) -> str: ...

    def get_push_token(self, project_id: Optional[str] = None) -> str: ...

    def set_notification_channel(
        self,
        channel_id: str,
        name: str,
        importance: str,
        vibration_pattern: list[int],
        light_color: str,
    ) -> None: ...


class RegistrarState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    READY = "ready"


class RegistrarMode(str, Enum):
    GUEST = "guest"
    SESSION = "session"


class PushTokenRegistrar:
    """
    Ties the device's push capability to the signed-in profile.

    `initialize` runs at most once per session: calls made while an
    initialization is in flight are queued, and the latest queued session is
    initialized once the current run finishes. A new session for the same
    user registers the token again.
    """

    def __init__(
        self,
        supabase: Client,
        device: NotificationDevice,
        project_id: Optional[str] = None,
        gateway: Optional[ExpoPushClient] = None,
    ):
        self.supabase = supabase
        self.device = device
        self.project_id = project_id
        self.gateway = gateway
        self.state = RegistrarState.IDLE
        self.mode: Optional[RegistrarMode] = None
        self._user_id: Optional[str] = None
        self._session_id: Optional[str] = None
        self._pending: Optional[tuple[Optional[str], Optional[str]]] = None
        self._channel_ready = False
        self._lock = threading.Lock()

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    def on_auth_state(self, state: AuthState) -> None:
        if state.loading:
            return
        if state.is_authenticated and state.user:
            session_id = state.session.access_token if state.session else None
            self.initialize(state.user.id, session_id)
        else:
            self.initialize(None)

    def initialize(self, user_id: Optional[str], session_id: Optional[str] = None) -> bool:
        """Returns True if this call performed an initialization."""
        key = (user_id, session_id)
        with self._lock:
            if self.state is RegistrarState.INITIALIZING:
                self._pending = key
                return False
            if self.state is RegistrarState.READY and (self._user_id, self._session_id) == key:
                return False
            self.state = RegistrarState.INITIALIZING
            self._user_id, self._session_id = key

        try:
            while True:
                self._configure_channel()
                if user_id:
                    result = self.register_for_push_notifications()
                    if not result.success:
                        logger.info("Push registration skipped: %s", result.message)

                with self._lock:
                    pending, self._pending = self._pending, None
                    if pending is None or pending == key:
                        self.state = RegistrarState.READY
                        self.mode = RegistrarMode.SESSION if user_id else RegistrarMode.GUEST
                        return True
                    key = pending
                    user_id = pending[0]
                    self._user_id, self._session_id = key
        except Exception:
            with self._lock:
                self.state = RegistrarState.IDLE
                self._pending = None
            raise

    def _configure_channel(self) -> None:
        if self._channel_ready or self.device.platform != "android":
            return
        try:
            self.device.set_notification_channel(
                DEFAULT_CHANNEL_ID,
                name="default",
                importance="max",
                vibration_pattern=[0, 250, 250, 250],
                light_color="#FF231F7C",
            )
        except Exception as exc:
            logger.error("Error configuring notification channel: %s", exc)
            return
        self._channel_ready = True

    def register_for_push_notifications(self) -> PushResult:
        user_id = self._user_id
        if not user_id:
            return PushResult(success=False, message="not logged in")

        try:
            status = self.device.get_permission_status()
            if status != PERMISSION_GRANTED:
                status = self.device.request_permission()
            if status != PERMISSION_GRANTED:
                logger.info("Notification permission denied for %s", user_id)
                return PushResult(success=False, message="permission denied")
            token = self.device.get_push_token(self.project_id)
        except Exception as exc:
            logger.error("Error getting push token: %s", exc)
            return PushResult(success=False, message=f"failed to get push token: {exc}")

        try:
            profile = set_push_token(self.supabase, user_id, token)
        except Exception as exc:
            logger.error("Error saving push token for %s: %s", user_id, exc)
            return PushResult(success=False, message="failed to save push token")
        if profile is None:
            logger.error("Error saving push token: no profile row for %s", user_id)
            return PushResult(success=False, message="failed to save push token")

        logger.info("Push token saved to profile %s", user_id)
        return PushResult(success=True, message="push token saved", token=token)

    def disable_notifications(self) -> PushResult:
        user_id = self._user_id
        if not user_id:
            return PushResult(success=False, message="not logged in")
        try:
            profile = clear_push_token(self.supabase, user_id)
        except Exception as exc:
            logger.error("Error disabling notifications for %s: %s", user_id, exc)
            return PushResult(success=False, message=f"failed to disable notifications: {exc}")
        if profile is None:
            logger.error("Error disabling notifications: no profile row for %s", user_id)
            return PushResult(success=False, message="failed to disable notifications: profile not found")
        return PushResult(success=True, message="notifications disabled")

    def send_test_notification(self) -> PushResult:
        result = self.register_for_push_notifications()
        if not result.success or not result.token:
            return result
        if self.gateway is None:
            return PushResult(success=False, message="no push gateway configured", token=result.token)

        data = {
            "screen": "Home",
            "type": "test",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        channel_id = DEFAULT_CHANNEL_ID if self.device.platform == "android" else None
        try:
            self.gateway.send(build_message(result.token, messages.TEST_TITLE, messages.TEST_BODY, data, channel_id))
        except PushGatewayError as exc:
            logger.error("Error sending test notification: %s", exc)
            return PushResult(success=False, message=f"failed to send test notification: {exc}", token=result.token)
        return PushResult(success=True, message="test notification sent", token=result.token)
