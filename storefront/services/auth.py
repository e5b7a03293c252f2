import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from storefront.core.errors import (
    InvalidPassword,
    InvalidRefreshToken,
    InvalidToken,
    RefreshTokenNotFound,
    UserAlreadyExists,
    UserNotFound,
)
from storefront.core.security import (
    compare_password,
    hash_password,
    sign_access_token,
    sign_refresh_token,
    verify_refresh_token,
)
from storefront.models.user import Role, User
from storefront.services.otp import OtpService
from storefront.services.tokens import AccessTokenRevocationStore, RefreshTokenStore

logger = logging.getLogger(__name__)


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass
class AuthSession:
    user: User
    access_token: str
    refresh_token: str


class AuthService:
    """Password + OTP signup and login, refresh rotation and logout."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.otps = OtpService(db)
        self.refresh_tokens = RefreshTokenStore(db)
        self.revoked_access_tokens = AccessTokenRevocationStore(db)

    async def get_user_by_id(self, user_id: int) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_phone(self, phone_number: str) -> User | None:
        result = await self.db.execute(
            select(User).where(User.phone_number == phone_number)
        )
        return result.scalar_one_or_none()

    async def _mint_pair(self, user: User) -> TokenPair:
        access_token = sign_access_token({"userId": user.id, "role": user.role.value})
        refresh_token = sign_refresh_token({"userId": user.id})
        await self.refresh_tokens.create(user.id, refresh_token)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    async def issue_session(self, user: User) -> AuthSession:
        pair = await self._mint_pair(user)
        return AuthSession(user=user, access_token=pair.access_token, refresh_token=pair.refresh_token)

    async def signup_with_password_otp(self, phone_number: str, password: str, otp: str) -> AuthSession:
        if await self.get_user_by_phone(phone_number) is not None:
            raise UserAlreadyExists()

        try:
            await self.otps.validate_otp_and_consume(phone_number, otp)
            password_hash = await hash_password(password)
            user = User(phone_number=phone_number, password_hash=password_hash, role=Role.USER)
            self.db.add(user)
            await self.db.flush()
            session = await self.issue_session(user)
            await self.db.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent signup for the same number
            await self.db.rollback()
            raise UserAlreadyExists() from exc
        except Exception:
            # Nothing is kept, the OTP included
            await self.db.rollback()
            raise

        await self.db.refresh(user)
        logger.info("User %s signed up", user.id)
        return session

    async def login_with_password_otp(self, phone_number: str, password: str, otp: str) -> AuthSession:
        user = await self.get_user_by_phone(phone_number)
        if user is None or not user.is_active:
            raise UserNotFound("User not found")

        # Password before OTP so a typo does not burn the code
        if not await compare_password(password, user.password_hash):
            raise InvalidPassword()

        try:
            await self.otps.validate_otp_and_consume(phone_number, otp)
            session = await self.issue_session(user)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("User %s logged in", user.id)
        return session

    async def refresh_access_token(self, raw_refresh_token: str) -> TokenPair:
        try:
            payload = verify_refresh_token(raw_refresh_token)
        except InvalidToken as exc:
            raise InvalidRefreshToken() from exc

        user = await self.get_user_by_id(payload["userId"])
        if user is None or not user.is_active:
            raise UserNotFound("User not found")

        record = await self.refresh_tokens.find_live(user.id, raw_refresh_token)
        if record is None:
            raise RefreshTokenNotFound()

        try:
            if not await self.refresh_tokens.revoke_if_active(record):
                raise RefreshTokenNotFound()
            pair = await self._mint_pair(user)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return pair

    async def revoke_refresh_token(self, raw_refresh_token: str) -> bool:
        revoked = await self.refresh_tokens.revoke(raw_refresh_token)
        await self.db.commit()
        return revoked

    async def revoke_access_token(self, raw_access_token: str) -> bool:
        revoked = await self.revoked_access_tokens.revoke_access_token(raw_access_token)
        await self.db.commit()
        return revoked

    async def is_access_token_revoked(self, raw_access_token: str) -> bool:
        return await self.revoked_access_tokens.is_access_token_revoked(raw_access_token)

    async def logout(
        self,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
    ) -> None:
        """Revoke whichever tokens were presented; never raises."""
        if access_token:
            try:
                await self.revoke_access_token(access_token)
            except Exception:
                await self.db.rollback()
                logger.warning("Access token revocation failed on logout", exc_info=True)
        if refresh_token:
            try:
                await self.revoke_refresh_token(refresh_token)
            except Exception:
                await self.db.rollback()
                logger.warning("Refresh token revocation failed on logout", exc_info=True)
