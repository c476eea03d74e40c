"""Shared fixtures: isolated SQLite database per test, ASGI client, user factory."""

import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="finsmart-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP}/bootstrap.db")
os.environ.setdefault("DB_INIT_MODE", "off")
os.environ.setdefault("LOG_FILE", os.path.join(_TMP, "app.log"))
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret-with-enough-length-123")
os.environ.setdefault("ENVIRONMENT", "test")

import bcrypt  # noqa: E402
import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from finsmart.config import Settings  # noqa: E402
from finsmart.core.database import Base, get_db  # noqa: E402
from finsmart.core.security import TokenCodec, prepare_password  # noqa: E402
from finsmart.models.user import User  # noqa: E402
from finsmart.services.auth_service import AuthService  # noqa: E402
from finsmart.services.token_service import TokenService  # noqa: E402

TEST_PASSWORD = "Secr3t!"


@pytest.fixture
def test_settings():
    return Settings(
        ACCESS_TOKEN_SECRET="unit-test-secret-key-0123456789abcdef",
        ACCESS_TOKEN_EXPIRES_IN=900,
        REFRESH_TOKEN_EXPIRES_IN=3600,
        REFRESH_TOKEN_EXPIRES_IN_REMEMBER=86400,
    )


@pytest.fixture
def codec(test_settings):
    return TokenCodec(test_settings)


@pytest.fixture
def tokens(test_settings, codec):
    return TokenService(test_settings, codec)


@pytest.fixture
def authenticator(test_settings, codec, tokens):
    return AuthService(test_settings, codec, tokens)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    from finsmart.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory):
    """Insert a user directly, bypassing registration checks."""

    async def _make_user(
        username: str = "alice",
        password: str = TEST_PASSWORD,
        *,
        email: str = None,
        role: str = "user",
        status: str = "enabled",
        failed_login_count: int = 0,
        is_deleted: bool = False,
    ) -> User:
        # Low bcrypt cost keeps the suite fast; verification is cost-agnostic
        password_hash = bcrypt.hashpw(prepare_password(password), bcrypt.gensalt(rounds=4)).decode("utf-8")
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            password_hash=password_hash,
            role=role,
            status=status,
            failed_login_count=failed_login_count,
            is_deleted=is_deleted,
        )
        async with session_factory() as session:
            session.add(user)
            await session.commit()
            await session.refresh(user)
        return user

    return _make_user
