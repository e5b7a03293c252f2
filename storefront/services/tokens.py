from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from storefront.core.config import settings
from storefront.core.database import utcnow
from storefront.core.errors import InvalidToken
from storefront.core.security import (
    fast_hash,
    hash_secret,
    refresh_token_ttl,
    run_hashing,
    verify_access_token,
    verify_refresh_token,
    verify_secret,
)
from storefront.models.refresh_token import RefreshToken
from storefront.models.revoked_access_token import RevokedAccessToken

logger = logging.getLogger(__name__)


class RefreshTokenStore:
    """Hashed refresh tokens, one row per issued token.

    Rows are never deleted here; rotation and logout only flip `revoked`.
    Methods flush but never commit, so they join the caller's transaction.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(self, user_id: int, raw_token: str) -> RefreshToken:
        token_hash = await run_hashing(hash_secret, raw_token)
        record = RefreshToken(
            user_id=user_id,
            token_hash=token_hash,
            expires_at=utcnow() + refresh_token_ttl(),
        )
        self.db.add(record)
        await self.db.flush()
        return record

    async def _match(self, raw_token: str, *conditions) -> Optional[RefreshToken]:
        # Linear scan; a user only has a handful of live sessions
        result = await self.db.execute(
            select(RefreshToken)
            .where(RefreshToken.revoked == False, *conditions)  # noqa: E712
            .order_by(RefreshToken.created_at.desc(), RefreshToken.id.desc())
        )
        for record in result.scalars():
            if await run_hashing(verify_secret, raw_token, record.token_hash):
                return record
        return None

    async def find_live(self, user_id: int, raw_token: str) -> Optional[RefreshToken]:
        """Non-revoked, unexpired record of user_id whose hash matches raw_token."""
        return await self._match(
            raw_token,
            RefreshToken.user_id == user_id,
            RefreshToken.expires_at >= utcnow(),
        )

    async def revoke_if_active(self, record: RefreshToken) -> bool:
        """Atomically flip revoked; False if another request got there first."""
        result = await self.db.execute(
            update(RefreshToken)
            .where(RefreshToken.id == record.id, RefreshToken.revoked == False)  # noqa: E712
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            await self.db.refresh(record)
            return True
        return False

    async def revoke(self, raw_token: str) -> bool:
        """Revoke the stored record for raw_token, scoped to the token's owner.

        Expiry is ignored for the owner lookup so an expired session can
        still be closed; a token whose signature fails was never ours.
        """
        try:
            payload = verify_refresh_token(raw_token, verify_exp=False)
        except InvalidToken:
            return False

        record = await self._match(raw_token, RefreshToken.user_id == payload["userId"])
        if record is None:
            return False
        return await self.revoke_if_active(record)


class AccessTokenRevocationStore:
    """Denylist of logged-out access tokens, keyed by SHA-256 of the raw token."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def revoke_access_token(self, raw_token: str) -> bool:
        """Record raw_token until its own exp claim. False if it no longer verifies."""
        try:
            payload = verify_access_token(raw_token)
        except InvalidToken:
            return False

        token_hash = fast_hash(raw_token)
        existing = await self.db.execute(
            select(RevokedAccessToken.id).where(RevokedAccessToken.token_hash == token_hash)
        )
        if existing.scalar_one_or_none() is not None:
            return True

        expires_at = datetime.fromtimestamp(payload["exp"], timezone.utc).replace(tzinfo=None)
        self.db.add(
            RevokedAccessToken(
                token_hash=token_hash,
                expires_at=expires_at,
                user_id=payload["userId"],
            )
        )
        await self.db.flush()
        return True

    async def is_access_token_revoked(self, raw_token: str) -> bool:
        """True when a live denylist entry exists.

        A failing lookup answers REVOCATION_FAIL_CLOSED: False keeps the
        service available, True rejects the token.
        """
        try:
            result = await self.db.execute(
                select(RevokedAccessToken.id).where(
                    RevokedAccessToken.token_hash == fast_hash(raw_token),
                    RevokedAccessToken.expires_at > utcnow(),
                )
            )
            return result.scalar_one_or_none() is not None
        except Exception:
            logger.warning(
                "Revocation lookup failed, treating token as %s",
                "revoked" if settings.REVOCATION_FAIL_CLOSED else "not revoked",
                exc_info=True,
            )
            return settings.REVOCATION_FAIL_CLOSED

    async def cleanup_expired_revoked_tokens(self) -> int:
        """Delete entries whose token has expired anyway. Returns rows removed."""
        try:
            result = await self.db.execute(
                delete(RevokedAccessToken)
                .where(RevokedAccessToken.expires_at <= utcnow())
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.warning("Revoked token cleanup failed", exc_info=True)
            return 0

        removed = result.rowcount or 0
        if removed:
            logger.info("Removed %d expired revoked access tokens", removed)
        return removed
