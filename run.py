import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parent))

import asyncio
import logging
import platform

import uvicorn
from storefront.core.config import settings
from storefront.core.init_db import init_db

# aiosqlite and asyncpg both want the selector loop on Windows
if platform.system() == 'Windows':
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)

    # Create missing tables before serving
    asyncio.run(init_db())

    uvicorn.run(
        "storefront.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=False,
    )
