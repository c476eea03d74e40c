"""Database models"""

from finsmart.models.user import User
from finsmart.models.security import RefreshToken

__all__ = ["User", "RefreshToken"]
