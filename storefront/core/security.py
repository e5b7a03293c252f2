import asyncio
import hashlib
import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from fastapi.concurrency import run_in_threadpool
from jose import JWTError, jwt

from storefront.core.config import settings
from storefront.core.errors import InvalidConfiguration, InvalidToken

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*(ms|s|m|h|d|w)\s*$")
_UNIT_MS = {
    "ms": 1,
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
    "w": 7 * 24 * 60 * 60 * 1000,
}

hasher = PasswordHasher(
    time_cost=settings.HASH_TIME_COST,
    memory_cost=settings.HASH_MEMORY_COST,
    parallelism=settings.HASH_PARALLELISM,
)


# --- Durations ---

def parse_expiry_to_ms(duration: str) -> int:
    """Convert a duration such as "30d" or "15m" to milliseconds.

    Raises InvalidConfiguration for anything that is not a positive integer
    followed by one of ms, s, m, h, d or w.
    """
    match = _DURATION_RE.match(str(duration or ""))
    if not match:
        raise InvalidConfiguration(f"Invalid duration: {duration!r}")
    amount, unit = int(match.group(1)), match.group(2)
    if amount <= 0:
        raise InvalidConfiguration(f"Duration must be positive: {duration!r}")
    return amount * _UNIT_MS[unit]


def access_token_ttl() -> timedelta:
    return timedelta(milliseconds=parse_expiry_to_ms(settings.ACCESS_TOKEN_EXPIRY))


def refresh_token_ttl() -> timedelta:
    return timedelta(milliseconds=parse_expiry_to_ms(settings.REFRESH_TOKEN_EXPIRY))


def validate_token_settings() -> None:
    """Fail at startup rather than on the first login."""
    access_token_ttl()
    refresh_token_ttl()
    if not settings.JWT_ACCESS_SECRET or not settings.JWT_REFRESH_SECRET:
        raise InvalidConfiguration("JWT secrets must be set")
    if settings.JWT_ACCESS_SECRET == settings.JWT_REFRESH_SECRET:
        raise InvalidConfiguration("Access and refresh tokens need independent secrets")


# --- Slow hashing (passwords, OTPs, refresh tokens) ---

def hash_secret(plain: str) -> str:
    return hasher.hash(plain)


def verify_secret(plain: str, hashed: str) -> bool:
    """Constant-time check of plain against an argon2 hash."""
    try:
        return hasher.verify(hashed, plain)
    except (VerificationError, InvalidHashError):
        return False


async def run_hashing(func: Callable[..., Any], *args: Any) -> Any:
    """Run a CPU-bound hash on the thread pool, bounded by HASH_TIMEOUT_SECONDS."""
    return await asyncio.wait_for(
        run_in_threadpool(func, *args), timeout=settings.HASH_TIMEOUT_SECONDS
    )


async def hash_password(plain: str) -> str:
    return await run_hashing(hash_secret, plain)


async def compare_password(plain: str, hashed: str) -> bool:
    return await run_hashing(verify_secret, plain, hashed)


def fast_hash(token: str) -> str:
    """Unsalted SHA-256 digest used as a lookup key for high-entropy tokens."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


# --- JWT ---

def _sign(claims: dict, secret: str, token_type: str, ttl: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = dict(claims)
    user_id = to_encode.get("userId")
    if user_id is not None:
        to_encode.setdefault("sub", str(user_id))
    to_encode.update(
        {
            "type": token_type,
            "jti": secrets.token_hex(16),
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
    )
    return jwt.encode(to_encode, secret, algorithm=settings.JWT_ALGORITHM)


def _verify(token: str, secret: str, token_type: str, verify_exp: bool = True) -> dict:
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": verify_exp},
        )
    except JWTError as exc:
        raise InvalidToken() from exc
    if payload.get("type") != token_type or payload.get("userId") is None:
        raise InvalidToken()
    return payload


def sign_access_token(claims: dict) -> str:
    return _sign(claims, settings.JWT_ACCESS_SECRET, ACCESS_TOKEN_TYPE, access_token_ttl())


def sign_refresh_token(claims: dict) -> str:
    return _sign(claims, settings.JWT_REFRESH_SECRET, REFRESH_TOKEN_TYPE, refresh_token_ttl())


def verify_access_token(token: str) -> dict:
    return _verify(token, settings.JWT_ACCESS_SECRET, ACCESS_TOKEN_TYPE)


def verify_refresh_token(token: str, verify_exp: bool = True) -> dict:
    return _verify(token, settings.JWT_REFRESH_SECRET, REFRESH_TOKEN_TYPE, verify_exp)
