"""Response envelope shared by every handler.

Business outcomes travel over HTTP 200 with ``code`` 0 (success) or -1
(failure). Transport-level errors carry the HTTP status as ``code``.
"""

from enum import Enum
from typing import Any, Dict, Optional

BUSINESS_SUCCESS = 0
BUSINESS_FAILURE = -1


class MessageCode(str, Enum):
    """Message identifiers rendered into the envelope ``message``"""

    # Success
    SUCCESS = "SUCCESS"
    REGISTER_SUCCESS = "REGISTER_SUCCESS"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGOUT_SUCCESS = "LOGOUT_SUCCESS"
    UPDATE_SUCCESS = "UPDATE_SUCCESS"
    GET_SUCCESS = "GET_SUCCESS"

    # Business failures
    USERNAME_OR_EMAIL_REQUIRED = "USERNAME_OR_EMAIL_REQUIRED"
    PASSWORD_REQUIRED = "PASSWORD_REQUIRED"
    USERNAME_OR_PASSWORD_ERROR = "USERNAME_OR_PASSWORD_ERROR"
    USERNAME_EXISTS = "USERNAME_EXISTS"
    EMAIL_EXISTS = "EMAIL_EXISTS"
    USERNAME_OR_EMAIL_EXISTS = "USERNAME_OR_EMAIL_EXISTS"
    ACCOUNT_DISABLED = "ACCOUNT_DISABLED"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    INVALID_EMAIL_FORMAT = "INVALID_EMAIL_FORMAT"
    INVALID_USERNAME_FORMAT = "INVALID_USERNAME_FORMAT"
    USERNAME_LENGTH_INVALID = "USERNAME_LENGTH_INVALID"
    NO_FIELDS_TO_UPDATE = "NO_FIELDS_TO_UPDATE"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    INVALID_PARAMS = "INVALID_PARAMS"

    # HTTP errors
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


MESSAGES: Dict[MessageCode, str] = {
    MessageCode.SUCCESS: "Operation succeeded",
    MessageCode.REGISTER_SUCCESS: "Registration succeeded",
    MessageCode.LOGIN_SUCCESS: "Login succeeded",
    MessageCode.LOGOUT_SUCCESS: "Logout succeeded",
    MessageCode.UPDATE_SUCCESS: "Update succeeded",
    MessageCode.GET_SUCCESS: "Fetched successfully",

    MessageCode.USERNAME_OR_EMAIL_REQUIRED: "Username, email and password are required",
    MessageCode.PASSWORD_REQUIRED: "Username and password are required",
    MessageCode.USERNAME_OR_PASSWORD_ERROR: "Invalid username or password",
    MessageCode.USERNAME_EXISTS: "Username is already taken",
    MessageCode.EMAIL_EXISTS: "Email is already taken",
    MessageCode.USERNAME_OR_EMAIL_EXISTS: "Username or email already exists",
    MessageCode.ACCOUNT_DISABLED: "Account is disabled, please contact an administrator",
    MessageCode.ACCOUNT_LOCKED: "Account is locked, please contact an administrator",
    MessageCode.INVALID_EMAIL_FORMAT: "Invalid email format",
    MessageCode.INVALID_USERNAME_FORMAT: "Username may only contain letters, digits and underscores",
    MessageCode.USERNAME_LENGTH_INVALID: "Username must be between 3 and 50 characters",
    MessageCode.NO_FIELDS_TO_UPDATE: "Provide at least one field to update",
    MessageCode.USER_NOT_FOUND: "User does not exist",
    MessageCode.INVALID_PARAMS: "Invalid request parameters",

    MessageCode.UNAUTHORIZED: "Not authenticated, please log in",
    MessageCode.FORBIDDEN: "Access denied",
    MessageCode.NOT_FOUND: "Resource not found",
    MessageCode.INTERNAL_SERVER_ERROR: "Internal server error",
}


def get_message(code: MessageCode, custom_message: Optional[str] = None) -> str:
    """Resolve display text, preferring an explicit override"""
    if custom_message:
        return custom_message
    return MESSAGES.get(code, "Unknown error")


def success(
    message_code: MessageCode = MessageCode.SUCCESS,
    data: Optional[Any] = None,
    custom_message: Optional[str] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "code": BUSINESS_SUCCESS,
        "message": get_message(message_code, custom_message),
    }
    if data is not None:
        body["data"] = data
    return body


def fail(
    message_code: MessageCode,
    data: Optional[Any] = None,
    custom_message: Optional[str] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "code": BUSINESS_FAILURE,
        "message": get_message(message_code, custom_message),
    }
    if data is not None:
        body["data"] = data
    return body


def http_error(
    status_code: int,
    message_code: MessageCode,
    data: Optional[Any] = None,
    custom_message: Optional[str] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "code": status_code,
        "message": get_message(message_code, custom_message),
    }
    if data is not None:
        body["data"] = data
    return body

