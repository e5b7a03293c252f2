"""Background sweep of expired entries in the access token denylist."""

import asyncio
import logging

from storefront.core.config import settings
from storefront.core.database import AsyncSessionLocal
from storefront.services.tokens import AccessTokenRevocationStore

logger = logging.getLogger(__name__)


async def run_revoked_token_cleanup(session_factory=AsyncSessionLocal) -> int:
    async with session_factory() as db:
        return await AccessTokenRevocationStore(db).cleanup_expired_revoked_tokens()


async def revoked_token_cleanup_loop(interval_seconds: int | None = None) -> None:
    """Run the sweep every interval until cancelled."""
    interval = interval_seconds
    if interval is None:
        interval = settings.REVOKED_TOKEN_CLEANUP_INTERVAL_SECONDS
    while True:
        try:
            await asyncio.sleep(interval)
            await run_revoked_token_cleanup()
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.warning(f"Revoked token cleanup error: {e}")
