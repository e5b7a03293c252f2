from datetime import datetime, timezone
from typing import AsyncGenerator
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from storefront.core.config import settings

Base = declarative_base()


def driver_timeout_args(url: str, seconds: float) -> dict:
    """Connect arguments that bound every statement for the given driver."""
    backend = make_url(url).get_backend_name()
    if backend == "sqlite":
        return {"timeout": seconds}
    if backend.startswith("postgresql"):
        return {"command_timeout": seconds}
    return {}


def build_engine(url: str, *, echo: bool = False, **kwargs):
    return create_async_engine(
        url,
        echo=echo,
        connect_args=driver_timeout_args(url, settings.DB_TIMEOUT_SECONDS),
        **kwargs,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
