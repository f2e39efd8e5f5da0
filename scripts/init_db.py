# scripts/init_db.py
import asyncio

from listing_sync.db import engine
from listing_sync.models import Base


async def main() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print(f"OK: canonical listing tables ready on {engine.url.render_as_string(hide_password=True)}")


if __name__ == "__main__":
    asyncio.run(main())
