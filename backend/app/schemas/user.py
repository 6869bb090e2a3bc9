"""
User Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.enums import UserRole


class UserRegister(BaseModel):
    """
    Schema for first-time registration.

    The email always comes from the verified token; profile fields are
    optional. Any `role` sent by the client is ignored.
    """
    display_name: Optional[str] = Field(None, max_length=255)
    photo_url: Optional[str] = Field(None, max_length=500)


class UserResponse(BaseModel):
    id: int
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    role: UserRole
    created_at: datetime
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RegistrationResponse(BaseModel):
    """Registration is idempotent: `inserted` is False when the user already existed."""
    inserted: bool
    message: str
    user: UserResponse


class UserRoleResponse(BaseModel):
    email: str
    role: UserRole


class RoleUpdate(BaseModel):
    role: UserRole


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int
