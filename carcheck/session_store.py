"""
Device-side authentication state: who is signed in, with which session and
profile.

A `SessionStore` owns one Supabase client. `start()` subscribes to the auth
provider's state-change events and restores the session (live, else the
persisted copy); `close()` tears the subscription down. Listeners registered
with `subscribe()` receive every published `AuthState`.

None of the public operations raise: remote failures are logged and turned
into an unauthenticated state or an `AuthResult` carrying the error message.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from postgrest.exceptions import APIError
from pydantic import ValidationError
from supabase import Client

from . import messages
from .config import get_settings
from .profiles import clear_push_token, fetch_or_create_profile, update_profile
from .push import NotificationDevice, PushTokenRegistrar
from .push_gateway import ExpoPushClient
from .schemas.auth import AuthResult, AuthState, AuthUser, SessionSnapshot
from .schemas.profile import Profile, ProfileUpdate
from .storage import AUTH_KEYS, PROFILE_KEY, SESSION_KEY, USER_KEY, InMemoryStorage, KeyValueStorage, create_storage
from .supabase_client import create_device_client

logger = logging.getLogger(__name__)

Listener = Callable[[AuthState], None]


def _error_message(exc: Exception, default: str) -> str:
    return getattr(exc, "message", None) or str(exc) or default


class SessionStore:
    def __init__(
        self,
        supabase: Client,
        storage: Optional[KeyValueStorage] = None,
        registrar: Optional[PushTokenRegistrar] = None,
    ):
        self.supabase = supabase
        self.storage = storage if storage is not None else InMemoryStorage()
        self.registrar = registrar
        self._state = AuthState()
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()
        self._subscription = None
        self._unsubscribe_registrar: Optional[Callable[[], None]] = None

    @classmethod
    def from_settings(cls, device: Optional[NotificationDevice] = None) -> "SessionStore":
        settings = get_settings()
        supabase = create_device_client()
        registrar = None
        if device is not None:
            gateway = ExpoPushClient(
                settings.EXPO_PUSH_URL,
                access_token=settings.EXPO_ACCESS_TOKEN,
                timeout=settings.PUSH_TIMEOUT_SECONDS,
            )
            registrar = PushTokenRegistrar(supabase, device, settings.EXPO_PROJECT_ID, gateway)
        return cls(supabase, create_storage(settings.SESSION_STORAGE_PATH), registrar)

    # Lifecycle

    def start(self) -> "SessionStore":
        if self._subscription is None:
            self._subscription = self.supabase.auth.on_auth_state_change(self._on_auth_state_change)
        if self.registrar is not None and self._unsubscribe_registrar is None:
            self._unsubscribe_registrar = self.subscribe(self.registrar.on_auth_state)
        self.check_session()
        return self

    def close(self) -> None:
        if self._subscription is not None:
            try:
                self._subscription.unsubscribe()
            except Exception as exc:
                logger.warning("Error unsubscribing from auth events: %s", exc)
            self._subscription = None
        if self._unsubscribe_registrar is not None:
            self._unsubscribe_registrar()
            self._unsubscribe_registrar = None

    def __enter__(self) -> "SessionStore":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # State

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def user(self) -> Optional[AuthUser]:
        return self._state.user

    @property
    def session(self) -> Optional[SessionSnapshot]:
        return self._state.session

    @property
    def profile(self) -> Optional[Profile]:
        return self._state.profile

    @property
    def user_id(self) -> Optional[str]:
        return self._state.user.id if self._state.user else None

    @property
    def display_name(self) -> str:
        if self.profile and self.profile.full_name:
            return self.profile.full_name
        if self.user and self.user.email:
            return self.user.email.split("@")[0]
        return messages.DEFAULT_USER_NAME

    @property
    def avatar_url(self) -> Optional[str]:
        return self.profile.avatar_url if self.profile else None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, state: AuthState) -> None:
        with self._lock:
            self._state = state
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(state)
            except Exception:
                logger.exception("Auth state listener failed")

    def _set_loading(self, loading: bool) -> None:
        self._publish(self._state.model_copy(update={"loading": loading}))

    # Persistence

    def _store_auth_data(self, session: SessionSnapshot, user: AuthUser, profile: Optional[Profile]) -> None:
        try:
            self.storage.set_item(SESSION_KEY, session.model_dump(mode="json"))
            self.storage.set_item(USER_KEY, user.model_dump(mode="json"))
            if profile is not None:
                self.storage.set_item(PROFILE_KEY, profile.model_dump(mode="json"))
        except Exception as exc:
            logger.error("Error storing auth data: %s", exc)

    def _stored_session(self) -> Optional[SessionSnapshot]:
        try:
            raw = self.storage.get_item(SESSION_KEY)
            return SessionSnapshot.model_validate(raw) if raw else None
        except Exception as exc:
            logger.error("Error getting stored session: %s", exc)
            return None

    def stored_profile(self) -> Optional[Profile]:
        try:
            raw = self.storage.get_item(PROFILE_KEY)
            return Profile.model_validate(raw) if raw else None
        except Exception as exc:
            logger.error("Error getting stored profile: %s", exc)
            return None

    def _clear_stored(self) -> None:
        try:
            self.storage.multi_remove(AUTH_KEYS)
        except Exception as exc:
            logger.error("Error clearing session: %s", exc)

    def _adopt_session(self, raw_session: Any) -> Optional[Profile]:
        """
        Validates a provider session, bootstraps the profile, persists all
        three snapshots and publishes the authenticated state, in that order.
        """
        session = SessionSnapshot.model_validate(raw_session, from_attributes=True)
        if session.user is None:
            raise ValueError("session has no user")
        user = session.user
        profile = fetch_or_create_profile(self.supabase, user.id)
        self._store_auth_data(session, user, profile)
        self._publish(AuthState(is_authenticated=True, loading=False, user=user, session=session, profile=profile))
        return profile

    def _sign_out_locally(self) -> None:
        self._clear_stored()
        self._publish(AuthState(loading=False))

    def _on_auth_state_change(self, event: Any, session: Any) -> None:
        logger.info("Auth event: %s", getattr(event, "value", event))
        try:
            if session is not None and getattr(session, "user", None) is not None:
                self._adopt_session(session)
            else:
                self._sign_out_locally()
        except Exception as exc:
            logger.error("Error handling auth event %s: %s", event, exc)

    # Operations

    def check_session(self) -> AuthState:
        try:
            try:
                live = self.supabase.auth.get_session()
            except Exception as exc:
                logger.error("Error getting session: %s", exc)
                self._clear_stored()
                live = None

            if live is not None and getattr(live, "user", None) is not None:
                self._adopt_session(live)
                return self._state

            stored = self._stored_session()
            if stored is not None and stored.user is not None:
                try:
                    response = self.supabase.auth.set_session(stored.access_token, stored.refresh_token)
                except Exception as exc:
                    logger.warning("Stored session could not be refreshed: %s", exc)
                    response = None
                refreshed = getattr(response, "session", None)
                if refreshed is not None and getattr(refreshed, "user", None) is not None:
                    self._adopt_session(refreshed)
                    return self._state
                self._clear_stored()

            self._publish(AuthState(loading=False))
        except Exception as exc:
            logger.error("Error checking session: %s", exc)
            self._publish(AuthState(loading=False))
        return self._state

    def login(self, email: str, password: str) -> AuthResult:
        self._set_loading(True)
        try:
            response = self.supabase.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as exc:
            error = _error_message(exc, "Login failed")
            logger.info("Login failed for %s: %s", email, error)
            self._set_loading(False)
            return AuthResult(success=False, error=error)

        if not getattr(response, "session", None) or not getattr(response, "user", None):
            self._set_loading(False)
            return AuthResult(success=False, error="Login failed")

        try:
            profile = self._adopt_session(response.session)
        except Exception as exc:
            logger.error("Login error: %s", exc)
            self._set_loading(False)
            return AuthResult(success=False, error=_error_message(exc, "Login failed"))
        return AuthResult(success=True, profile=profile)

    def logout(self) -> AuthResult:
        """
        Disables this device's notifications, signs out remotely, then clears
        local state. The local state always ends unauthenticated.
        """
        self._set_loading(True)
        disabled = self.disable_notifications()
        if not disabled.success:
            logger.warning("Failed to disable notifications: %s", disabled.error)

        error = None
        try:
            self.supabase.auth.sign_out()
        except Exception as exc:
            error = _error_message(exc, "Logout failed")
            logger.error("Logout error: %s", error)

        self._sign_out_locally()
        return AuthResult(success=error is None, error=error)

    def disable_notifications(self) -> AuthResult:
        user_id = self.user_id
        if not user_id:
            return AuthResult(success=True)
        try:
            profile = clear_push_token(self.supabase, user_id)
        except APIError as exc:
            logger.error("Error disabling notifications: %s", exc.message)
            return AuthResult(success=False, error=exc.message)
        except Exception as exc:
            logger.error("Exception disabling notifications: %s", exc)
            return AuthResult(success=False, error=_error_message(exc, "Failed to disable notifications"))
        if profile is None:
            logger.error("Error disabling notifications: no profile row for %s", user_id)
            return AuthResult(success=False, error="Profile not found")
        self._set_profile(profile)
        return AuthResult(success=True, profile=profile)

    def update_profile(self, changes: ProfileUpdate | dict) -> AuthResult:
        user_id = self.user_id
        if not user_id:
            return AuthResult(success=False, error="No user logged in")
        try:
            if not isinstance(changes, ProfileUpdate):
                changes = ProfileUpdate.model_validate(changes)
        except ValidationError as exc:
            return AuthResult(success=False, error=str(exc))

        updates = changes.changes()
        if not updates:
            return AuthResult(success=True, profile=self.profile)
        try:
            profile = update_profile(self.supabase, user_id, updates)
        except APIError as exc:
            return AuthResult(success=False, error=exc.message)
        except Exception as exc:
            logger.error("Update profile error: %s", exc)
            return AuthResult(success=False, error=_error_message(exc, "Failed to update profile"))
        if profile is None:
            return AuthResult(success=False, error="Failed to update profile")
        self._set_profile(profile)
        return AuthResult(success=True, profile=profile)

    def refresh_profile(self) -> Optional[Profile]:
        user_id = self.user_id
        if not user_id:
            return None
        profile = fetch_or_create_profile(self.supabase, user_id)
        if profile is not None:
            self._set_profile(profile)
        return profile

    def _set_profile(self, profile: Profile) -> None:
        self._publish(self._state.model_copy(update={"profile": profile}))
        try:
            self.storage.set_item(PROFILE_KEY, profile.model_dump(mode="json"))
        except Exception as exc:
            logger.error("Error storing profile: %s", exc)
