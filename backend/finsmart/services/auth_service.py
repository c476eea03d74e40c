"""Authenticator: login with lockout, access-token refresh, logout."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import asyncio
import logging

from prometheus_client import Counter
from sqlalchemy.ext.asyncio import AsyncSession

from finsmart.config import Settings, settings
from finsmart.core.database import transactional
from finsmart.core.exceptions import (
    AccountDisabledError,
    AccountLockedError,
    ExpiredRefreshTokenError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    MissingFieldsError,
)
from finsmart.core.security import TokenCodec, token_codec, verify_password
from finsmart.models.user import User
from finsmart.schemas.auth import DeviceInfo, Principal
from finsmart.schemas.response import MessageCode
from finsmart.services.token_service import (
    SessionClass,
    TokenService,
    as_utc,
    token_service,
    utcnow,
)
from finsmart.services.user_service import user_service

logger = logging.getLogger(__name__)

LOGIN_ATTEMPTS = Counter(
    "finsmart_login_attempts_total",
    "Login attempts by outcome",
    ["outcome"],
)


@dataclass
class LoginResult:
    """Outcome of a successful login.

    ``refresh_token`` is the raw secret: hand it to the transport and drop it.
    """
    user: User
    principal: Principal
    access_token: str
    refresh_token: str
    refresh_expires_at: datetime
    session_class: SessionClass


@dataclass
class RefreshResult:
    principal: Principal
    access_token: str
    refresh_expires_at: datetime


class AuthService:
    """Only component that mints tokens or flips refresh-token revocation."""

    def __init__(self, config: Settings, codec: TokenCodec, tokens: TokenService):
        self.codec = codec
        self.tokens = tokens
        self.max_failed_login = config.MAX_FAILED_LOGIN

    @staticmethod
    def principal_for(user: User) -> Principal:
        return Principal(id=user.id, username=user.username, role=user.role)

    async def login(
        self,
        db: AsyncSession,
        username: Optional[str],
        password: Optional[str],
        remember_me: bool = False,
        device: Optional[DeviceInfo] = None,
    ) -> LoginResult:
        """
        Authenticate user with account lockout protection

        Lockout is checked before the password, so a locked account is
        rejected even with the right password. Unknown users and wrong
        passwords produce the same error.

        Raises:
            MissingFieldsError: username or password empty
            InvalidCredentialsError: unknown user or wrong password
            AccountDisabledError: status is disabled
            AccountLockedError: failed-login counter reached the threshold
        """
        if not username or not password:
            raise MissingFieldsError(MessageCode.PASSWORD_REQUIRED)

        user = await user_service.get_by_username(db, username)
        if not user or user.is_deleted:
            LOGIN_ATTEMPTS.labels("invalid_credentials").inc()
            raise InvalidCredentialsError()

        if not user.is_enabled:
            LOGIN_ATTEMPTS.labels("disabled").inc()
            raise AccountDisabledError()

        if user.failed_login_count >= self.max_failed_login:
            LOGIN_ATTEMPTS.labels("locked").inc()
            logger.warning("Login rejected for locked account: %s", user.username)
            raise AccountLockedError()

        password_ok = await asyncio.to_thread(verify_password, password, user.password_hash)
        if not password_ok:
            async with transactional(db):
                failures = await user_service.increment_failed_logins(db, user.id)
            LOGIN_ATTEMPTS.labels("invalid_credentials").inc()
            logger.info("Failed login for %s (%d consecutive)", user.username, failures)
            raise InvalidCredentialsError()

        principal = self.principal_for(user)
        session_class = self.tokens.session_class_for(remember_me)
        raw_secret = self.codec.generate_refresh_secret()

        # Counter reset and ledger insert succeed or fail together
        async with transactional(db):
            await user_service.record_successful_login(db, user.id)
            record = await self.tokens.create_record(
                db,
                user_id=user.id,
                raw_secret=raw_secret,
                session_class=session_class,
                device=device or DeviceInfo(),
            )

        LOGIN_ATTEMPTS.labels("success").inc()
        logger.info("User authenticated: %s (%s session)", user.username, session_class.value)
        return LoginResult(
            user=user,
            principal=principal,
            access_token=self.codec.sign_access_token(principal),
            refresh_token=raw_secret,
            refresh_expires_at=as_utc(record.expires_at),
            session_class=session_class,
        )

    async def refresh(self, db: AsyncSession, raw_refresh_token: Optional[str]) -> RefreshResult:
        """
        Mint a new access token from a live refresh token

        The refresh token itself is not rotated: it stays valid until its
        original expiry or an explicit logout.

        Raises:
            InvalidRefreshTokenError: unknown, revoked, or owner no longer active
            ExpiredRefreshTokenError: past expires_at
        """
        if not raw_refresh_token:
            raise InvalidRefreshTokenError()

        record = await self.tokens.find_by_secret(db, raw_refresh_token)
        if not record or record.revoked:
            raise InvalidRefreshTokenError()

        if self.tokens.is_expired(record, utcnow()):
            raise ExpiredRefreshTokenError()

        owner = record.user
        if not owner or owner.is_deleted or not owner.is_enabled:
            raise InvalidRefreshTokenError()

        principal = self.principal_for(owner)
        return RefreshResult(
            principal=principal,
            access_token=self.codec.sign_access_token(principal),
            refresh_expires_at=as_utc(record.expires_at),
        )

    async def logout(self, db: AsyncSession, raw_refresh_token: Optional[str]) -> None:
        """
        Revoke the presented refresh token, if any.

        Never raises: logout reports success whether or not the token was
        known, so responses leak nothing about token validity.
        """
        if not raw_refresh_token:
            return

        try:
            async with transactional(db):
                revoked = await self.tokens.revoke(db, raw_refresh_token)
        except Exception:
            logger.exception("Refresh token revocation failed during logout")
            return

        if revoked:
            logger.info("Refresh token revoked on logout")


auth_service = AuthService(settings, token_codec, token_service)
