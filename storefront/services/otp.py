import logging
import secrets
from datetime import timedelta
from typing import Literal

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm.attributes import set_committed_value

from storefront.core.config import settings
from storefront.core.database import utcnow
from storefront.core.errors import (
    InvalidOrExpiredOtp,
    InvalidOtp,
    UserAlreadyExists,
    UserNotFound,
)
from storefront.core.security import hash_secret, run_hashing, verify_secret
from storefront.models.otp import OneTimePasscode
from storefront.models.user import User

logger = logging.getLogger(__name__)

OtpPurpose = Literal["login", "signup"]


def generate_numeric_otp(length: int) -> str:
    """Uniform code over 10**length values, leading zeros kept."""
    return str(secrets.randbelow(10 ** length)).zfill(length)


class OtpService:
    """Issues and consumes one-time passcodes scoped to a phone number."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def generate_and_store_otp(self, phone_number: str, purpose: OtpPurpose) -> str:
        """Store a hashed code for phone_number and return the plaintext.

        Login requires an existing user, signup requires there is none.
        Earlier unconsumed codes stay valid until their own expiry.
        """
        result = await self.db.execute(
            select(User).where(User.phone_number == phone_number)
        )
        user = result.scalar_one_or_none()
        if purpose == "login" and user is None:
            raise UserNotFound()
        if purpose == "signup" and user is not None:
            raise UserAlreadyExists()

        code = generate_numeric_otp(settings.OTP_LENGTH)
        code_hash = await run_hashing(hash_secret, code)

        otp = OneTimePasscode(
            phone_number=phone_number,
            code_hash=code_hash,
            expires_at=utcnow() + timedelta(minutes=settings.OTP_EXPIRY_MINUTES),
            user_id=user.id if user else None,
        )
        self.db.add(otp)
        await self.db.commit()

        # The code would go out by SMS here
        logger.info("OTP issued for %s (%s)", phone_number, purpose)
        if not settings.is_production:
            logger.debug("OTP for %s: %s", phone_number, code)

        return code

    async def validate_otp_and_consume(self, phone_number: str, plain_code: str) -> bool:
        """Consume the newest pending code for phone_number if plain_code matches.

        The consumed flag is flipped with a conditional update inside the
        caller's transaction; committing is left to the caller.
        """
        result = await self.db.execute(
            select(OneTimePasscode)
            .where(
                OneTimePasscode.phone_number == phone_number,
                OneTimePasscode.consumed == False,  # noqa: E712
                OneTimePasscode.expires_at >= utcnow(),
            )
            .order_by(OneTimePasscode.created_at.desc(), OneTimePasscode.id.desc())
            .limit(1)
        )
        otp = result.scalar_one_or_none()
        if otp is None:
            raise InvalidOrExpiredOtp()

        if not await run_hashing(verify_secret, plain_code, otp.code_hash):
            raise InvalidOtp()

        consumed = await self.db.execute(
            update(OneTimePasscode)
            .where(OneTimePasscode.id == otp.id, OneTimePasscode.consumed == False)  # noqa: E712
            .values(consumed=True)
            .execution_options(synchronize_session=False)
        )
        if consumed.rowcount != 1:
            # Another request consumed it first
            raise InvalidOrExpiredOtp()
        set_committed_value(otp, "consumed", True)
        return True
