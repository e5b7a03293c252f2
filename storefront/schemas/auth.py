from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class OtpRequest(_Body):
    phone_number: str = Field(alias="phoneNumber", min_length=1)
    purpose: Literal["login", "signup"] = "login"


class CredentialsRequest(_Body):
    phone_number: str = Field(alias="phoneNumber", min_length=1)
    password: str = Field(min_length=1)
    otp: str = Field(min_length=1)

    @field_validator("otp")
    @classmethod
    def clean_otp(cls, value: str) -> str:
        return value.strip()


class RefreshTokenBody(_Body):
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")


class OtpResponse(BaseModel):
    success: bool = True
    otp: Optional[str] = None
