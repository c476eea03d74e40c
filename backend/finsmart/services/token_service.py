"""Refresh token ledger: issue, look up, revoke and purge stored token hashes."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from finsmart.config import Settings, settings
from finsmart.core.security import TokenCodec, token_codec
from finsmart.models.security import RefreshToken
from finsmart.schemas.auth import DeviceInfo


class SessionClass(str, Enum):
    """Refresh-token lifetime class chosen at login"""
    STANDARD = "standard"
    EXTENDED = "extended"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; every stored value is UTC."""
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class TokenService:
    """Persisted refresh-token records; the raw secret never reaches the database."""

    def __init__(self, config: Settings, codec: TokenCodec):
        self._codec = codec
        self._ttl = {
            SessionClass.STANDARD: config.REFRESH_TOKEN_EXPIRES_IN,
            SessionClass.EXTENDED: config.REFRESH_TOKEN_EXPIRES_IN_REMEMBER,
        }

    @staticmethod
    def session_class_for(remember_me: bool) -> SessionClass:
        return SessionClass.EXTENDED if remember_me else SessionClass.STANDARD

    def ttl_seconds(self, session_class: SessionClass) -> int:
        return self._ttl[session_class]

    async def create_record(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        raw_secret: str,
        session_class: SessionClass,
        device: DeviceInfo,
        now: Optional[datetime] = None,
    ) -> RefreshToken:
        """Add a ledger row for a freshly minted secret. Flushes; the caller commits."""
        issued_at = now or utcnow()
        record = RefreshToken(
            user_id=user_id,
            token_hash=self._codec.hash_refresh_secret(raw_secret),
            remember_me=session_class is SessionClass.EXTENDED,
            user_agent=device.user_agent[:255] if device.user_agent else None,
            ip_address=device.ip_address[:64] if device.ip_address else None,
            expires_at=issued_at + timedelta(seconds=self.ttl_seconds(session_class)),
            revoked=False,
        )
        db.add(record)
        await db.flush()
        return record

    async def find_by_secret(self, db: AsyncSession, raw_secret: str) -> Optional[RefreshToken]:
        """Look up a ledger row by the hash of the presented secret, owner loaded"""
        result = await db.execute(
            select(RefreshToken)
            .options(joinedload(RefreshToken.user))
            .where(RefreshToken.token_hash == self._codec.hash_refresh_secret(raw_secret))
            .limit(1)
        )
        return result.scalars().first()

    @staticmethod
    def is_expired(record: RefreshToken, now: Optional[datetime] = None) -> bool:
        return as_utc(record.expires_at) <= (now or utcnow())

    async def revoke(self, db: AsyncSession, raw_secret: str) -> bool:
        """
        Mark the matching live row revoked. The caller commits.

        Returns:
            True if a row changed state
        """
        result = await db.execute(
            update(RefreshToken)
            .where(
                RefreshToken.token_hash == self._codec.hash_refresh_secret(raw_secret),
                RefreshToken.revoked.is_(False),
            )
            .values(revoked=True, revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def purge_expired(self, db: AsyncSession, now: Optional[datetime] = None) -> int:
        """Delete rows that can never be used again (expired or revoked). The caller commits."""
        cutoff = now or utcnow()
        result = await db.execute(
            delete(RefreshToken)
            .where(or_(RefreshToken.expires_at <= cutoff, RefreshToken.revoked.is_(True)))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


token_service = TokenService(settings, token_codec)
