from pydantic import field_validator
from pydantic_settings import BaseSettings
from pathlib import Path
from typing import List


class Settings(BaseSettings):
    # Project
    PROJECT_NAME: str = "Storefront API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Paths
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"

    # Server
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 4000

    # Database
    DATABASE_URL: str = f"sqlite+aiosqlite:///{DATA_DIR}/app.db"
    DATABASE_ECHO: bool = False
    DB_TIMEOUT_SECONDS: float = 10.0

    # Tokens
    JWT_ACCESS_SECRET: str = "change-me-access-secret"
    JWT_REFRESH_SECRET: str = "change-me-refresh-secret"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRY: str = "15m"
    REFRESH_TOKEN_EXPIRY: str = "30d"

    # One-time passcodes
    OTP_LENGTH: int = 4
    OTP_EXPIRY_MINUTES: int = 3

    # Argon2 cost for passwords, OTPs and refresh tokens
    HASH_TIME_COST: int = 3
    HASH_MEMORY_COST: int = 65536
    HASH_PARALLELISM: int = 4
    HASH_TIMEOUT_SECONDS: float = 5.0

    # Revocation
    REVOCATION_FAIL_CLOSED: bool = False
    REVOKED_TOKEN_CLEANUP_INTERVAL_SECONDS: int = 3600

    # Refresh cookie
    REFRESH_COOKIE_NAME: str = "refreshToken"
    REFRESH_COOKIE_SECURE: bool = True
    REFRESH_COOKIE_SAMESITE: str = "none"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    @field_validator("REFRESH_TOKEN_EXPIRY", mode="before")
    @classmethod
    def refresh_expiry_in_days(cls, value):
        # A bare number has always meant days for the refresh token
        text = str(value).strip()
        if text.isdigit():
            return f"{text}d"
        return text

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
