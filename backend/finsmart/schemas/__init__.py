"""Pydantic schemas for API validation"""

from finsmart.schemas.user import (
    UserRole,
    UserStatus,
    UserCreate,
    UserLogin,
    UserProfileUpdate,
    UserStatusUpdate,
    UserResponse,
)
from finsmart.schemas.auth import Principal, AccessTokenClaims, DeviceInfo
from finsmart.schemas.response import MessageCode, success, fail, http_error

__all__ = [
    "UserRole", "UserStatus", "UserCreate", "UserLogin", "UserProfileUpdate",
    "UserStatusUpdate", "UserResponse",
    "Principal", "AccessTokenClaims", "DeviceInfo",
    "MessageCode", "success", "fail", "http_error",
]
