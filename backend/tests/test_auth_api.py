from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from conftest import TEST_PASSWORD
from finsmart.models.security import RefreshToken
from finsmart.models.user import User
from finsmart.services.auth_service import auth_service
from finsmart.services.token_service import utcnow


def _set_cookies(response):
    return response.headers.get_list("set-cookie")


def _cookie_header(response, name):
    return next(header for header in _set_cookies(response) if header.startswith(f"{name}="))


async def _login(client, username="alice", password=TEST_PASSWORD, **extra):
    return await client.post("/api/login", json={"username": username, "password": password, **extra})


async def test_register_then_lockout_scenario(client):
    response = await client.post(
        "/api/register",
        json={"username": "alice", "email": "alice@x.com", "password": TEST_PASSWORD, "nickName": "Al"},
    )
    body = response.json()
    assert response.status_code == 200
    assert body["code"] == 0
    assert body["data"]["user"]["role"] == "user"
    assert body["data"]["user"]["nick_name"] == "Al"
    assert "password_hash" not in body["data"]["user"]

    for _ in range(5):
        response = await _login(client, password="wrong")
        assert response.status_code == 200
        assert response.json() == {"code": -1, "message": "Invalid username or password"}

    response = await _login(client)
    assert response.json() == {"code": -1, "message": "Account is locked, please contact an administrator"}


async def test_register_business_failures(client, make_user):
    await make_user("alice", email="alice@x.com")

    cases = [
        ({"username": "alice", "email": "other@x.com", "password": "pw"}, "Username is already taken"),
        ({"username": "bob", "email": "alice@x.com", "password": "pw"}, "Email is already taken"),
        ({"username": "bob", "password": "pw"}, "Username, email and password are required"),
        ({"username": "b-b", "email": "b@x.com", "password": "pw"},
         "Username may only contain letters, digits and underscores"),
    ]
    for payload, message in cases:
        response = await client.post("/api/register", json=payload)
        assert response.status_code == 200
        assert response.json() == {"code": -1, "message": message}


async def test_login_sets_http_only_cookies(client, make_user):
    await make_user()

    response = await _login(client)

    assert response.json()["code"] == 0
    assert response.json()["data"]["user"]["username"] == "alice"
    access = _cookie_header(response, "access_token")
    refresh = _cookie_header(response, "refresh_token")
    for header in (access, refresh):
        assert "HttpOnly" in header
        assert "Path=/" in header
        assert "samesite=lax" in header.lower()
    assert "Max-Age=86400" in access
    assert "Max-Age=604800" in refresh


async def test_remember_me_extends_refresh_cookie(client, make_user):
    await make_user()
    response = await _login(client, rememberMe=True)
    assert "Max-Age=2592000" in _cookie_header(response, "refresh_token")


async def test_login_records_device_info(client, session_factory, make_user):
    await make_user()
    await client.post(
        "/api/login",
        json={"username": "alice", "password": TEST_PASSWORD},
        headers={"user-agent": "pytest-agent", "x-forwarded-for": "203.0.113.9, 10.0.0.1"},
    )

    async with session_factory() as session:
        record = (await session.execute(select(RefreshToken))).scalar_one()
    assert record.user_agent == "pytest-agent"
    assert record.ip_address == "203.0.113.9"


async def test_profile_requires_access_cookie(client):
    response = await client.get("/api/profile")
    assert response.status_code == 401
    assert response.json()["code"] == 401


async def test_profile_and_update(client, make_user):
    await make_user()
    await _login(client)

    response = await client.get("/api/profile")
    assert response.json()["code"] == 0
    assert response.json()["data"]["user"]["email"] == "alice@example.com"

    response = await client.post("/api/profile/update", json={"avatarUrl": "https://img/a.png"})
    assert response.json()["code"] == 0
    assert response.json()["data"]["user"]["avatar_url"] == "https://img/a.png"

    response = await client.post("/api/profile/update", json={})
    assert response.json() == {"code": -1, "message": "Provide at least one field to update"}


async def test_profile_of_deleted_user_is_business_failure(client, session_factory, make_user):
    user = await make_user()
    await _login(client)

    async with session_factory() as session:
        (await session.get(User, user.id)).is_deleted = True
        await session.commit()

    response = await client.get("/api/profile")
    assert response.status_code == 200
    assert response.json() == {"code": -1, "message": "User does not exist"}


async def test_refresh_token_renews_access_cookie(client, make_user):
    await make_user()
    await _login(client)

    response = await client.post("/api/refresh-token")

    assert response.status_code == 200
    assert response.json()["code"] == 0
    assert _cookie_header(response, "access_token")
    assert _cookie_header(response, "refresh_token")


async def test_refresh_token_failure_clears_cookies(client):
    client.cookies.set("refresh_token", "forged")

    response = await client.post("/api/refresh-token")

    assert response.status_code == 401
    assert response.json()["code"] == 401
    for name in ("access_token", "refresh_token"):
        assert "Max-Age=0" in _cookie_header(response, name)


async def test_refresh_without_cookie_is_401(client):
    response = await client.post("/api/refresh-token")
    assert response.status_code == 401


async def test_refresh_with_expired_ledger_row(client, session_factory, make_user):
    await make_user()
    await _login(client)
    async with session_factory() as session:
        record = (await session.execute(select(RefreshToken))).scalar_one()
        record.expires_at = utcnow() - timedelta(minutes=1)
        await session.commit()

    response = await client.post("/api/refresh-token")
    assert response.status_code == 401


async def test_logout_revokes_and_always_succeeds(client, session_factory, make_user):
    await make_user()
    await _login(client)

    response = await client.post("/api/logout")
    assert response.json() == {"code": 0, "message": "Logout succeeded"}
    for name in ("access_token", "refresh_token"):
        assert "Max-Age=0" in _cookie_header(response, name)

    async with session_factory() as session:
        record = (await session.execute(select(RefreshToken))).scalar_one()
    assert record.revoked is True

    # Nothing left to revoke
    response = await client.post("/api/logout")
    assert response.json()["code"] == 0


async def test_admin_only_route(client, make_user):
    await make_user("alice")
    await make_user("root", role="admin")

    assert (await client.get("/api/admin-only")).status_code == 401

    await _login(client, "alice")
    response = await client.get("/api/admin-only")
    assert response.status_code == 403
    assert response.json()["code"] == 403

    client.cookies.clear()
    await _login(client, "root")
    response = await client.get("/api/admin-only")
    assert response.status_code == 200
    assert response.json()["code"] == 0


async def test_invalid_payload_is_business_failure(client):
    response = await client.post("/api/login", json={"username": "alice", "rememberMe": "maybe"})
    assert response.status_code == 200
    body = response.json()
    assert body["code"] == -1
    assert "rememberMe" in body["message"]


async def test_health_and_metrics(client):
    health = (await client.get("/health")).json()
    assert "status" in health

    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "finsmart_http_requests_total" in response.text


async def test_long_password_register_and_login(client):
    passphrase = "p" * 80
    response = await client.post(
        "/api/register", json={"username": "bob", "email": "bob@x.com", "password": passphrase}
    )
    assert response.status_code == 200
    assert response.json()["code"] == 0

    response = await _login(client, "bob", passphrase)
    assert response.json()["code"] == 0

    client.cookies.clear()
    response = await _login(client, "bob", "p" * 79 + "q")
    assert response.json() == {"code": -1, "message": "Invalid username or password"}


async def test_logout_succeeds_when_revocation_fails(client, make_user, monkeypatch):
    await make_user()
    await _login(client)

    async def failing_revoke(session, raw_secret):
        raise SQLAlchemyError("database unavailable")

    monkeypatch.setattr(auth_service.tokens, "revoke", failing_revoke)

    response = await client.post("/api/logout")
    assert response.status_code == 200
    assert response.json() == {"code": 0, "message": "Logout succeeded"}
    for name in ("access_token", "refresh_token"):
        assert "Max-Age=0" in _cookie_header(response, name)
