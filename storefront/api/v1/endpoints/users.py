from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.database import get_db
from storefront.core.dependencies import require_roles
from storefront.core.errors import PermissionDenied
from storefront.models.user import Role, User
from storefront.schemas.user import RoleUpdate, UserDetail
from storefront.services.user import UserService

router = APIRouter()

staff_only = require_roles(Role.SUB_ADMIN, Role.SUPER_ADMIN)
super_admin_only = require_roles(Role.SUPER_ADMIN)


async def _get_user_or_404(service: UserService, user_id: int) -> User:
    user = await service.get_by_id(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


@router.get("", response_model=List[UserDetail], response_model_by_alias=True)
async def list_users(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff_only),
):
    """Lists every user for the back office."""
    return await UserService(db).list_users()


@router.get("/{user_id}", response_model=UserDetail, response_model_by_alias=True)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff_only),
):
    return await _get_user_or_404(UserService(db), user_id)


@router.put("/{user_id}/role", response_model=UserDetail, response_model_by_alias=True)
async def update_user_role(
    user_id: int,
    payload: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(super_admin_only),
):
    """Changes a user's role."""
    service = UserService(db)
    user = await _get_user_or_404(service, user_id)
    return await service.update_role(user, payload.role)


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(super_admin_only),
) -> dict:
    service = UserService(db)
    user = await _get_user_or_404(service, user_id)
    try:
        await service.delete(user, acting_user=current_user)
    except PermissionDenied as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
    return {"ok": True}
