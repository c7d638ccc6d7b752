"""
Create all tables on the configured database.

  python -m dst_crm.db.create_tables
"""
import asyncio

import dst_crm.auth.models  # noqa: F401
import dst_crm.core.models  # noqa: F401
from dst_crm.db.session import Base, engine


async def main() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    print("Tables created:", ", ".join(sorted(Base.metadata.tables)))


if __name__ == "__main__":
    asyncio.run(main())
