import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.database import get_db
from storefront.core.dependencies import bearer_token, get_current_user
from storefront.core.errors import (
    AuthError,
    InvalidOrExpiredOtp,
    InvalidOtp,
    InvalidPassword,
    ValidationError,
)
from storefront.core.phone import is_valid_phone, normalize_phone
from storefront.core.security import refresh_token_ttl
from storefront.models.user import User
from storefront.schemas.auth import CredentialsRequest, OtpRequest, OtpResponse, RefreshTokenBody
from storefront.schemas.user import serialize_user
from storefront.services.auth import AuthService
from storefront.services.otp import OtpService

logger = logging.getLogger(__name__)

# Password and OTP failures share one message so callers cannot tell which check failed
CREDENTIALS_ERROR = "Invalid password or OTP"

router = APIRouter()


def _clean_phone(phone: str) -> str:
    normalized = normalize_phone(phone)
    if not is_valid_phone(normalized):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=ValidationError("Invalid phone number").message,
        )
    return normalized


def _set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=refresh_token,
        max_age=int(refresh_token_ttl().total_seconds()),
        path="/",
        httponly=True,
        secure=settings.REFRESH_COOKIE_SECURE,
        samesite=settings.REFRESH_COOKIE_SAMESITE,
    )


def _clear_refresh_cookie(response: Response) -> None:
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value="",
        max_age=0,
        path="/",
        httponly=True,
        secure=settings.REFRESH_COOKIE_SECURE,
        samesite=settings.REFRESH_COOKIE_SAMESITE,
    )


def _presented_refresh_token(request: Request, body: Optional[RefreshTokenBody]) -> Optional[str]:
    if body is not None and body.refresh_token:
        return body.refresh_token
    return request.cookies.get(settings.REFRESH_COOKIE_NAME) or None


def _session_payload(session) -> dict:
    payload = {"user": serialize_user(session.user), "accessToken": session.access_token}
    # Outside production the body carries the refresh token too
    if not settings.is_production:
        payload["refreshToken"] = session.refresh_token
    return payload


def _credentials_failure(exc: AuthError) -> HTTPException:
    message = exc.message
    if isinstance(exc, (InvalidPassword, InvalidOtp, InvalidOrExpiredOtp)):
        message = CREDENTIALS_ERROR
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


@router.post("/request-otp", response_model=OtpResponse, response_model_exclude_none=True)
async def request_otp(request: OtpRequest, db: AsyncSession = Depends(get_db)):
    """
    Issues a one-time passcode for signup or login.
    The code is returned in the body outside production instead of an SMS.
    """
    phone_number = _clean_phone(request.phone_number)
    try:
        code = await OtpService(db).generate_and_store_otp(phone_number, request.purpose)
    except AuthError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)

    return OtpResponse(success=True, otp=None if settings.is_production else code)


@router.post("/signup")
async def signup(
    request: CredentialsRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    phone_number = _clean_phone(request.phone_number)
    try:
        session = await AuthService(db).signup_with_password_otp(
            phone_number, request.password, request.otp
        )
    except AuthError as exc:
        raise _credentials_failure(exc)
    except Exception:
        logger.exception("Signup failed for %s", phone_number)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Signup failed")

    _set_refresh_cookie(response, session.refresh_token)
    return _session_payload(session)


@router.post("/login")
async def login(
    request: CredentialsRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    phone_number = _clean_phone(request.phone_number)
    try:
        session = await AuthService(db).login_with_password_otp(
            phone_number, request.password, request.otp
        )
    except AuthError as exc:
        raise _credentials_failure(exc)
    except Exception:
        logger.exception("Login failed for %s", phone_number)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Login failed")

    _set_refresh_cookie(response, session.refresh_token)
    return _session_payload(session)


@router.post("/refresh")
async def refresh(
    request: Request,
    response: Response,
    body: Optional[RefreshTokenBody] = Body(default=None),
    db: AsyncSession = Depends(get_db),
):
    """
    Rotates the refresh token: the presented one is revoked and a new pair issued.
    Every failure is the same 401 so expired, forged and rotated tokens look alike.
    """
    raw = _presented_refresh_token(request, body)
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token is required",
        )

    try:
        tokens = await AuthService(db).refresh_access_token(raw)
    except AuthError as exc:
        logger.info("Refresh rejected: %s", exc.message)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )
    except Exception:
        logger.exception("Refresh failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )

    _set_refresh_cookie(response, tokens.refresh_token)
    payload = {"accessToken": tokens.access_token}
    if not settings.is_production:
        payload["refreshToken"] = tokens.refresh_token
    return payload


@router.get("/me")
async def me(current_user: User = Depends(get_current_user)):
    return {"user": serialize_user(current_user)}


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    body: Optional[RefreshTokenBody] = Body(default=None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Revokes the presented tokens, if any, and always answers ok."""
    await AuthService(db).logout(
        access_token=bearer_token(request),
        refresh_token=_presented_refresh_token(request, body),
    )
    _clear_refresh_cookie(response)
    return {"ok": True}
