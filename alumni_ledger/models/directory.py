"""
Directory Models for Alumni Ledger

Everything that is not money: the people in the class, the announcements
posted to them, and the explicit session context that tells the service
layer who is acting.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UserRole(str, Enum):
    """Access level of a classmate account."""
    ADMIN = "Admin"
    ADMIN_READ_ONLY = "Admin_ro"
    STANDARD = "Standard"
    GUEST = "Guest"


class ClassmateStatus(str, Enum):
    """Inactive classmates keep their history but cannot sign in."""
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class AnnouncementType(str, Enum):
    TEXT = "text"
    FACEBOOK = "facebook"


class Classmate(BaseModel):
    """
    A classmate profile.

    Ledger entries reference classmates by name, not by id, so a
    profile rename has to be propagated to the ledger.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int = Field(..., ge=1)
    name: str = Field(..., min_length=1)
    role: UserRole = UserRole.STANDARD
    status: ClassmateStatus = ClassmateStatus.ACTIVE
    email: Optional[str] = Field(default=None, max_length=200)
    address: Optional[str] = Field(default=None, max_length=500)
    phone: Optional[str] = Field(default=None, max_length=50)

    @property
    def normalized_name(self) -> str:
        return self.name.strip().lower()


class Announcement(BaseModel):
    """A notice posted to the whole class."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int = Field(..., ge=1)
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=5000)
    date: datetime = Field(default_factory=datetime.utcnow)
    type: AnnouncementType = AnnouncementType.TEXT
    url: Optional[str] = None
    image_url: Optional[str] = None


class User(BaseModel):
    """The signed-in account, as far as the service layer cares."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    name: str = Field(..., min_length=1)
    email: str = ""
    role: UserRole = UserRole.STANDARD
    address: Optional[str] = None
    phone: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class SessionContext(BaseModel):
    """
    Explicit context for one operator session.

    Replaces the shared UI-level state of a browser app: the service
    layer is handed this object instead of reading globals.
    """

    user: Optional[User] = None
    class_subtitle: str = "Class of 1989"

    @property
    def actor_name(self) -> str:
        return self.user.name if self.user else "system"
