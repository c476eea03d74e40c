from datetime import timedelta
from types import SimpleNamespace

import pytest

from finsmart.api.deps import authenticate_token, authorize, get_current_principal, require_role
from finsmart.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    TokenExpiredError,
    TokenInvalidError,
)
from finsmart.schemas.auth import Principal
from finsmart.schemas.user import UserRole

ALICE = Principal(id=1, username="alice", role=UserRole.USER)
ROOT = Principal(id=2, username="root", role=UserRole.ADMIN)


def test_authenticate_token_resolves_principal(codec):
    principal = authenticate_token(codec.sign_access_token(ROOT), codec)
    assert principal == ROOT


@pytest.mark.parametrize("token", [None, ""])
def test_missing_token_is_unauthenticated(codec, token):
    with pytest.raises(AuthenticationError) as exc_info:
        authenticate_token(token, codec)
    assert exc_info.value.status_code == 401


def test_expired_and_invalid_tokens_are_distinguished(codec):
    with pytest.raises(TokenExpiredError):
        authenticate_token(codec.sign_access_token(ALICE, expires_delta=timedelta(seconds=-1)), codec)
    with pytest.raises(TokenInvalidError):
        authenticate_token("garbage", codec)


def test_authorize_checks_role_membership():
    assert authorize(ROOT, [UserRole.ADMIN]) is ROOT
    assert authorize(ALICE, ["user", "admin"]) is ALICE

    with pytest.raises(AuthorizationError) as exc_info:
        authorize(ALICE, [UserRole.ADMIN])
    assert exc_info.value.status_code == 403

    with pytest.raises(AuthenticationError):
        authorize(None, [UserRole.USER])


async def test_get_current_principal_reads_cookie_and_attaches_state(codec):
    request = SimpleNamespace(
        cookies={"access_token": codec.sign_access_token(ALICE)},
        state=SimpleNamespace(),
    )
    principal = await get_current_principal(request, codec)
    assert principal == ALICE
    assert request.state.principal == ALICE


async def test_require_role_gate():
    gate = require_role(UserRole.ADMIN)
    assert await gate(ROOT) is ROOT
    with pytest.raises(AuthorizationError):
        await gate(ALICE)
