"""API dependencies - authentication and authorization gates"""

from typing import Iterable, Optional, Union
import logging

from fastapi import Depends, Request

from finsmart.api.cookies import ACCESS_TOKEN_COOKIE
from finsmart.core.exceptions import AuthenticationError, AuthorizationError
from finsmart.core.security import TokenCodec, token_codec
from finsmart.schemas.auth import Principal
from finsmart.schemas.user import UserRole

logger = logging.getLogger(__name__)


def authenticate_token(token: Optional[str], codec: TokenCodec) -> Principal:
    """
    Resolve an access token into a principal

    Pure function of the token and the signing key; no database access.

    Raises:
        AuthenticationError: token missing, invalid or expired
    """
    if not token:
        raise AuthenticationError("Not authenticated: missing access token")

    claims = codec.verify_access_token(token)
    return Principal(id=claims.id, username=claims.username, role=claims.role)


def authorize(
    principal: Optional[Principal],
    roles: Iterable[Union[UserRole, str]],
) -> Principal:
    """
    Check a principal against a set of allowed roles

    Raises:
        AuthenticationError: no principal attached
        AuthorizationError: role not allowed
    """
    if principal is None:
        raise AuthenticationError()

    allowed = {UserRole(role) for role in roles}
    if principal.role not in allowed:
        logger.info("Role %s denied (requires %s)", principal.role.value, sorted(r.value for r in allowed))
        raise AuthorizationError()
    return principal


def get_token_codec() -> TokenCodec:
    return token_codec


async def get_current_principal(
    request: Request,
    codec: TokenCodec = Depends(get_token_codec),
) -> Principal:
    """
    Authenticate the request from its ``access_token`` cookie

    Returns:
        Principal, also attached to ``request.state.principal``
    """
    principal = authenticate_token(request.cookies.get(ACCESS_TOKEN_COOKIE), codec)
    request.state.principal = principal
    return principal


def require_role(*roles: Union[UserRole, str]):
    """Dependency factory gating a route on the principal's role"""

    async def role_gate(principal: Principal = Depends(get_current_principal)) -> Principal:
        return authorize(principal, roles)

    return role_gate


get_current_admin = require_role(UserRole.ADMIN)
