from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from storefront.models.user import Role


class UserPublic(BaseModel):
    """The user shape returned by signup, login and /auth/me."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    phone_number: str = Field(serialization_alias="phoneNumber")
    role: Role


class UserDetail(UserPublic):
    is_active: bool = Field(serialization_alias="isActive")
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")


class RoleUpdate(BaseModel):
    role: Role


def serialize_user(user) -> dict:
    return UserPublic.model_validate(user).model_dump(mode="json", by_alias=True)
