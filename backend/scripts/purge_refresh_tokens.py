"""
Delete expired and revoked refresh-token rows.

Expiry is enforced lazily at lookup time, so dead rows accumulate until this
runs. Schedule it externally (cron, k8s CronJob):

  python scripts/purge_refresh_tokens.py
"""

import asyncio
import logging

from finsmart.core.database import SessionLocal, engine
from finsmart.services.token_service import token_service

logger = logging.getLogger("purge_refresh_tokens")


async def purge() -> int:
    async with SessionLocal() as db:
        removed = await token_service.purge_expired(db)
        await db.commit()
        return removed


async def _run() -> None:
    try:
        removed = await purge()
        logger.info("Purged %d refresh token rows", removed)
    finally:
        await engine.dispose()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    asyncio.run(_run())


if __name__ == "__main__":
    main()
