from storefront.core.config import settings
from storefront.core.database import Base, build_engine

# Import models so they are registered on the metadata before create_all
from storefront.models import user  # noqa: F401
from storefront.models import otp  # noqa: F401
from storefront.models import refresh_token  # noqa: F401
from storefront.models import revoked_access_token  # noqa: F401


async def init_db(url: str | None = None):
    """Create every table that does not exist yet."""
    url = url or settings.DATABASE_URL
    if url.startswith("sqlite"):
        settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    engine = build_engine(url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await engine.dispose()
