"""Custom exception classes for the application"""

from typing import Optional, Dict, Any

from finsmart.schemas.response import MessageCode, get_message


class BaseAPIException(Exception):
    """Base exception for all API errors"""

    def __init__(
        self,
        message_code: MessageCode,
        status_code: int = 500,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message_code = message_code
        self.message = get_message(message_code, message)
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# Business failures (HTTP 200, envelope code -1)
class BusinessError(BaseAPIException):
    """Business rule failure reported inside a successful HTTP exchange"""
    def __init__(self, message_code: MessageCode, message: Optional[str] = None):
        super().__init__(message_code, status_code=200, message=message)


class MissingFieldsError(BusinessError):
    """Required request fields absent or empty"""


class InvalidUsernameFormatError(BusinessError):
    def __init__(self):
        super().__init__(MessageCode.INVALID_USERNAME_FORMAT)


class UsernameLengthError(BusinessError):
    def __init__(self):
        super().__init__(MessageCode.USERNAME_LENGTH_INVALID)


class InvalidEmailFormatError(BusinessError):
    def __init__(self):
        super().__init__(MessageCode.INVALID_EMAIL_FORMAT)


class NoFieldsToUpdateError(BusinessError):
    def __init__(self):
        super().__init__(MessageCode.NO_FIELDS_TO_UPDATE)


class InvalidCredentialsError(BusinessError):
    """Invalid username or password (also used for unknown users)"""
    def __init__(self):
        super().__init__(MessageCode.USERNAME_OR_PASSWORD_ERROR)


class AccountDisabledError(BusinessError):
    """Account status is disabled"""
    def __init__(self):
        super().__init__(MessageCode.ACCOUNT_DISABLED)


class AccountLockedError(BusinessError):
    """Account is locked due to failed login attempts"""
    def __init__(self):
        super().__init__(MessageCode.ACCOUNT_LOCKED)


class DuplicateUsernameError(BusinessError):
    """Username already exists"""
    def __init__(self):
        super().__init__(MessageCode.USERNAME_EXISTS)


class DuplicateEmailError(BusinessError):
    """Email already exists"""
    def __init__(self):
        super().__init__(MessageCode.EMAIL_EXISTS)


class DuplicateAccountError(BusinessError):
    """Unique constraint hit on insert/update"""
    def __init__(self):
        super().__init__(MessageCode.USERNAME_OR_EMAIL_EXISTS)


class UserNotFoundError(BusinessError):
    def __init__(self):
        super().__init__(MessageCode.USER_NOT_FOUND)


# Authentication Errors
class AuthenticationError(BaseAPIException):
    """Base authentication error"""
    def __init__(self, message: Optional[str] = None):
        super().__init__(MessageCode.UNAUTHORIZED, status_code=401, message=message)


class TokenExpiredError(AuthenticationError):
    """JWT token has expired"""
    def __init__(self):
        super().__init__("Access token has expired")


class TokenInvalidError(AuthenticationError):
    """JWT token is invalid"""
    def __init__(self):
        super().__init__("Invalid access token")


class InvalidRefreshTokenError(AuthenticationError):
    """Refresh token is unknown, revoked, or belongs to an unusable account"""
    def __init__(self):
        super().__init__("Not authenticated or refresh token is invalid")


class ExpiredRefreshTokenError(AuthenticationError):
    """Refresh token is past its expiry"""
    def __init__(self):
        super().__init__("Refresh token has expired")


# Authorization Errors
class AuthorizationError(BaseAPIException):
    """Insufficient permissions"""
    def __init__(self, message: Optional[str] = None):
        super().__init__(MessageCode.FORBIDDEN, status_code=403, message=message)


# Resource Errors
class ResourceNotFoundError(BaseAPIException):
    """Resource not found"""
    def __init__(self, resource: str):
        super().__init__(MessageCode.NOT_FOUND, status_code=404, message=f"{resource} not found")
