"""Authentication and profile routes"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from finsmart.api.cookies import (
    REFRESH_TOKEN_COOKIE,
    clear_auth_cookies,
    set_access_cookie,
    set_auth_cookies,
    set_refresh_cookie,
)
from finsmart.api.deps import get_current_admin, get_current_principal
from finsmart.core.database import get_db
from finsmart.core.exceptions import AuthenticationError, UserNotFoundError
from finsmart.schemas.auth import DeviceInfo, Principal
from finsmart.schemas.response import MessageCode, http_error, success
from finsmart.schemas.user import UserCreate, UserLogin, UserProfileUpdate, UserResponse
from finsmart.services.auth_service import auth_service
from finsmart.services.token_service import utcnow
from finsmart.services.user_service import user_service

router = APIRouter()


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


def _device_info(request: Request) -> DeviceInfo:
    return DeviceInfo(
        user_agent=request.headers.get("user-agent") or None,
        ip_address=_client_ip(request),
    )


def _user_payload(user) -> dict:
    return {"user": UserResponse.model_validate(user).model_dump()}


@router.post("/register", status_code=status.HTTP_200_OK)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """
    Register a new account with role ``user``

    Missing fields, bad formats and taken usernames/emails are business
    failures (HTTP 200, code -1).
    """
    user = await user_service.create_user(db, user_data)
    return success(MessageCode.REGISTER_SUCCESS, _user_payload(user))


@router.post("/login", status_code=status.HTTP_200_OK)
async def login(
    credentials: UserLogin,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """
    Login endpoint - authenticate and set the session cookies

    Tokens travel only in HttpOnly cookies; the body carries the user.
    """
    result = await auth_service.login(
        db,
        credentials.username,
        credentials.password,
        remember_me=credentials.remember_me,
        device=_device_info(request),
    )
    set_auth_cookies(
        response,
        result.access_token,
        result.refresh_token,
        refresh_max_age=auth_service.tokens.ttl_seconds(result.session_class),
    )
    return success(MessageCode.LOGIN_SUCCESS, _user_payload(result.user))


@router.post("/logout", status_code=status.HTTP_200_OK)
async def logout(request: Request, response: Response, db: AsyncSession = Depends(get_db)):
    """Revoke the refresh token if present and clear cookies. Always succeeds."""
    await auth_service.logout(db, request.cookies.get(REFRESH_TOKEN_COOKIE))
    clear_auth_cookies(response)
    return success(MessageCode.LOGOUT_SUCCESS)


@router.post("/refresh-token", status_code=status.HTTP_200_OK)
async def refresh_token(request: Request, response: Response, db: AsyncSession = Depends(get_db)):
    """
    Issue a new access token from the refresh cookie

    On any failure both cookies are cleared and 401 is returned. The refresh
    cookie is re-sent unchanged, bounded by the ledger row's remaining life.
    """
    raw_refresh = request.cookies.get(REFRESH_TOKEN_COOKIE)
    try:
        if not raw_refresh:
            raise AuthenticationError("Not authenticated: missing refresh token")
        result = await auth_service.refresh(db, raw_refresh)
    except AuthenticationError as exc:
        rejected = JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=http_error(status.HTTP_401_UNAUTHORIZED, exc.message_code, custom_message=exc.message),
        )
        clear_auth_cookies(rejected)
        return rejected

    remaining = int((result.refresh_expires_at - utcnow()).total_seconds())
    set_access_cookie(response, result.access_token)
    set_refresh_cookie(response, raw_refresh, max_age=max(remaining, 0))
    return success(MessageCode.SUCCESS)


@router.get("/profile")
async def get_profile(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Current user's profile"""
    user = await user_service.get_active_by_id(db, principal.id)
    if not user:
        raise UserNotFoundError()
    return success(MessageCode.GET_SUCCESS, _user_payload(user))


@router.post("/profile/update")
async def update_profile(
    data: UserProfileUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Partial profile update for the current user"""
    user = await user_service.update_profile(db, principal.id, data)
    return success(MessageCode.UPDATE_SUCCESS, _user_payload(user))


@router.get("/admin-only")
async def admin_only(principal: Principal = Depends(get_current_admin)):
    """Example route restricted to administrators"""
    return success(MessageCode.SUCCESS, custom_message="Welcome, administrator")
