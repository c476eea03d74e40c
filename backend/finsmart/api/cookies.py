"""Session cookie transport"""

from typing import Optional

from fastapi import Response

from finsmart.config import Settings, settings

ACCESS_TOKEN_COOKIE = "access_token"
REFRESH_TOKEN_COOKIE = "refresh_token"


def _set_cookie(response: Response, key: str, value: str, max_age: int, config: Settings) -> None:
    response.set_cookie(
        key=key,
        value=value,
        max_age=max_age,
        path="/",
        httponly=True,
        samesite="lax",
        secure=config.cookie_secure,
    )


def set_access_cookie(
    response: Response,
    access_token: str,
    max_age: Optional[int] = None,
    config: Settings = settings,
) -> None:
    _set_cookie(
        response,
        ACCESS_TOKEN_COOKIE,
        access_token,
        max_age if max_age is not None else config.ACCESS_TOKEN_EXPIRES_IN,
        config,
    )


def set_refresh_cookie(
    response: Response,
    refresh_token: str,
    max_age: int,
    config: Settings = settings,
) -> None:
    _set_cookie(response, REFRESH_TOKEN_COOKIE, refresh_token, max_age, config)


def set_auth_cookies(
    response: Response,
    access_token: str,
    refresh_token: str,
    refresh_max_age: int,
    config: Settings = settings,
) -> None:
    """Set both session cookies after login"""
    set_access_cookie(response, access_token, config=config)
    set_refresh_cookie(response, refresh_token, refresh_max_age, config=config)


def clear_auth_cookies(response: Response, config: Settings = settings) -> None:
    response.delete_cookie(
        ACCESS_TOKEN_COOKIE, path="/", httponly=True, samesite="lax", secure=config.cookie_secure
    )
    response.delete_cookie(
        REFRESH_TOKEN_COOKIE, path="/", httponly=True, samesite="lax", secure=config.cookie_secure
    )
