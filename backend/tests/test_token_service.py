from datetime import timedelta

from sqlalchemy import func, select

from finsmart.models.security import RefreshToken
from finsmart.schemas.auth import DeviceInfo
from finsmart.services.token_service import SessionClass, utcnow


def test_session_class_maps_to_configured_ttl(tokens):
    assert tokens.session_class_for(False) is SessionClass.STANDARD
    assert tokens.session_class_for(True) is SessionClass.EXTENDED
    assert tokens.ttl_seconds(SessionClass.STANDARD) == 3600
    assert tokens.ttl_seconds(SessionClass.EXTENDED) == 86400


async def test_create_record_stores_hash_not_raw_secret(db, tokens, codec, make_user):
    user = await make_user()
    raw = codec.generate_refresh_secret()
    now = utcnow()

    record = await tokens.create_record(
        db,
        user_id=user.id,
        raw_secret=raw,
        session_class=SessionClass.EXTENDED,
        device=DeviceInfo(user_agent="pytest", ip_address="10.0.0.1"),
        now=now,
    )
    await db.commit()

    assert record.token_hash == codec.hash_refresh_secret(raw)
    assert record.token_hash != raw
    assert record.remember_me is True
    assert record.revoked is False
    assert record.user_agent == "pytest"
    assert record.ip_address == "10.0.0.1"
    assert record.expires_at == now + timedelta(seconds=86400)


async def test_find_by_secret_loads_owner(db, tokens, codec, make_user):
    user = await make_user()
    raw = codec.generate_refresh_secret()
    await tokens.create_record(
        db, user_id=user.id, raw_secret=raw, session_class=SessionClass.STANDARD, device=DeviceInfo()
    )
    await db.commit()

    found = await tokens.find_by_secret(db, raw)
    assert found is not None
    assert found.user.username == "alice"
    assert await tokens.find_by_secret(db, codec.generate_refresh_secret()) is None


async def test_revoke_only_changes_live_rows(db, tokens, codec, make_user):
    user = await make_user()
    raw = codec.generate_refresh_secret()
    await tokens.create_record(
        db, user_id=user.id, raw_secret=raw, session_class=SessionClass.STANDARD, device=DeviceInfo()
    )
    await db.commit()

    assert await tokens.revoke(db, raw) is True
    await db.commit()
    assert await tokens.revoke(db, raw) is False
    assert await tokens.revoke(db, "unknown") is False

    record = (await db.execute(select(RefreshToken))).scalar_one()
    await db.refresh(record)
    assert record.revoked is True
    assert record.revoked_at is not None


async def test_expiry_is_checked_lazily(db, tokens, codec, make_user):
    user = await make_user()
    now = utcnow()
    record = await tokens.create_record(
        db,
        user_id=user.id,
        raw_secret=codec.generate_refresh_secret(),
        session_class=SessionClass.STANDARD,
        device=DeviceInfo(),
        now=now,
    )
    assert tokens.is_expired(record, now) is False
    assert tokens.is_expired(record, now + timedelta(seconds=3600)) is True


async def test_purge_removes_expired_and_revoked_rows(db, tokens, codec, make_user):
    user = await make_user()
    live, expired, revoked = (codec.generate_refresh_secret() for _ in range(3))
    for raw in (live, expired, revoked):
        await tokens.create_record(
            db, user_id=user.id, raw_secret=raw, session_class=SessionClass.STANDARD, device=DeviceInfo()
        )
    await db.commit()

    stale = await tokens.find_by_secret(db, expired)
    stale.expires_at = utcnow() - timedelta(seconds=1)
    await tokens.revoke(db, revoked)
    await db.commit()

    assert await tokens.purge_expired(db) == 2
    await db.commit()
    remaining = (await db.execute(select(func.count()).select_from(RefreshToken))).scalar_one()
    assert remaining == 1
    assert await tokens.find_by_secret(db, live) is not None


async def test_purge_is_undone_by_rollback(db, session_factory, tokens, codec, make_user):
    user = await make_user()
    raw = codec.generate_refresh_secret()
    await tokens.create_record(
        db, user_id=user.id, raw_secret=raw, session_class=SessionClass.STANDARD, device=DeviceInfo()
    )
    await tokens.revoke(db, raw)
    await db.commit()

    assert await tokens.purge_expired(db) == 1
    await db.rollback()

    async with session_factory() as session:
        remaining = (await session.execute(select(func.count()).select_from(RefreshToken))).scalar_one()
    assert remaining == 1
