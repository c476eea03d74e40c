"""User schemas"""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum


class UserRole(str, Enum):
    """User role enumeration"""
    USER = "user"
    ADMIN = "admin"


class UserStatus(str, Enum):
    """Account status enumeration"""
    ENABLED = "enabled"
    DISABLED = "disabled"


class UserCreate(BaseModel):
    """Registration payload.

    Presence and format are checked by the user service so that failures map
    to specific business messages rather than a generic validation error.
    """
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    nick_name: Optional[str] = Field(None, alias="nickName", max_length=100)
    avatar_url: Optional[str] = Field(None, alias="avatarUrl", max_length=500)

    class Config:
        populate_by_name = True


class UserLogin(BaseModel):
    """User login schema"""
    username: Optional[str] = None
    password: Optional[str] = None
    remember_me: bool = Field(False, alias="rememberMe")

    class Config:
        populate_by_name = True


class UserProfileUpdate(BaseModel):
    """Partial profile update; only fields present in the payload are applied"""
    username: Optional[str] = None
    email: Optional[str] = None
    nick_name: Optional[str] = Field(None, alias="nickName", max_length=100)
    avatar_url: Optional[str] = Field(None, alias="avatarUrl", max_length=500)

    class Config:
        populate_by_name = True


class UserStatusUpdate(BaseModel):
    """Administrative status change"""
    status: UserStatus


class UserResponse(BaseModel):
    """User response schema"""
    id: int
    username: str
    email: str
    nick_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: str

    class Config:
        from_attributes = True
