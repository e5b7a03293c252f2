from typing import List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from storefront.core.errors import PermissionDenied
from storefront.models.user import Role, User


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_users(self) -> List[User]:
        result = await self.db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
        return list(result.scalars())

    async def get_by_id(self, user_id: int) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_phone(self, phone_number: str) -> User | None:
        result = await self.db.execute(select(User).where(User.phone_number == phone_number))
        return result.scalar_one_or_none()

    async def update_role(self, user: User, role: Role) -> User:
        """Role checks read the stored role; the token claim follows on the next refresh."""
        user.role = role
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def delete(self, user: User, acting_user: User) -> None:
        if user.id == acting_user.id:
            raise PermissionDenied("You cannot delete your own account")
        await self.db.delete(user)
        await self.db.commit()
