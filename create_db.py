# create_db.py
import asyncio
from sqlalchemy.ext.asyncio import AsyncEngine
from shared.db import engine, Base
from shared.app_logger import get_logger

# Every collection lives in the documents table; importing it registers the table
import shared.document_store  # noqa: F401

log = get_logger("create_db")


async def init_models(target: AsyncEngine = engine):
    async with target.begin() as conn:
        log.info("Creating tables...")
        await conn.run_sync(Base.metadata.create_all)
        log.info("Tables created.")

if __name__ == "__main__":
    asyncio.run(init_models())
