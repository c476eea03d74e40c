"""Session and token schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from finsmart.schemas.user import UserRole


class Principal(BaseModel):
    """Verified identity attached to a request"""
    id: int
    username: str
    role: UserRole

    class Config:
        frozen = True


class AccessTokenClaims(Principal):
    """Decoded access-token payload"""
    issued_at: datetime
    expires_at: datetime
    jti: str


class DeviceInfo(BaseModel):
    """Audit metadata recorded with a refresh token"""
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
