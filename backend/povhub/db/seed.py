"""
Create tables and load the default permission matrix.

    python -m povhub.db.seed
"""
from __future__ import annotations

import asyncio

from povhub.auth.defaults import seed_default_permissions
from povhub.auth.store import SqlPermissionStore
from povhub.core.logging_config import logger
from povhub.db.session import AsyncSessionLocal, create_all, engine


async def main() -> None:
    await create_all()
    async with AsyncSessionLocal() as session:
        count = await seed_default_permissions(SqlPermissionStore(session))
    await engine.dispose()
    logger.info("Permissions setup complete (%d grants)", count)


if __name__ == "__main__":
    asyncio.run(main())
