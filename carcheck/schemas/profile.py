from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field

Role = Literal["user", "admin"]
Access = Literal["full", "limit"]

DEFAULT_ROLE: Role = "user"
DEFAULT_ACCESS: Access = "limit"


class Profile(BaseModel):
    """
    Row of the `profiles` table. Extra columns are ignored, but a role or
    access value outside the known set fails validation.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: Role = DEFAULT_ROLE
    access: Access = DEFAULT_ACCESS
    expo_push_token: Optional[str] = None
    notification_enabled: bool = False
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def has_full_access(self) -> bool:
        return self.is_admin and self.access == "full"


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile."""

    model_config = ConfigDict(extra="forbid")

    full_name: Optional[str] = Field(default=None, max_length=120)
    avatar_url: Optional[str] = None
    expo_push_token: Optional[str] = None
    notification_enabled: Optional[bool] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class AdminCreate(BaseModel):
    username: str = Field(..., min_length=3)
    email: EmailStr
    password: str = Field(..., min_length=6)


class AccessToggleOut(BaseModel):
    id: str
    access: Access
    message: str = ""
