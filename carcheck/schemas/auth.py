from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, EmailStr

from .profile import Profile


class AuthUser(BaseModel):
    model_config = ConfigDict(extra="ignore", from_attributes=True)

    id: str
    email: Optional[str] = None
    user_metadata: Optional[dict[str, Any]] = None


class SessionSnapshot(BaseModel):
    """Bearer credential pair cached on the device."""

    model_config = ConfigDict(extra="ignore", from_attributes=True)

    access_token: str
    refresh_token: str
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None
    token_type: str = "bearer"
    user: Optional[AuthUser] = None


class AuthState(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_authenticated: bool = False
    loading: bool = True
    user: Optional[AuthUser] = None
    session: Optional[SessionSnapshot] = None
    profile: Optional[Profile] = None


class AuthResult(BaseModel):
    success: bool
    error: Optional[str] = None
    profile: Optional[Profile] = None


class LoginPayload(BaseModel):
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: AuthUser
    profile: Optional[Profile] = None
