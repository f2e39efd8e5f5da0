from __future__ import annotations

import argparse
import asyncio
import json
import logging

from listing_sync.adapters.clients.mlsgrid import create_mlsgrid_client
from listing_sync.adapters.clients.search_api import SearchApiClient
from listing_sync.db import engine as db_engine
from listing_sync.models import Base
from listing_sync.service_layer.sync_engine import IncrementalSyncEngine


async def main() -> None:
    parser = argparse.ArgumentParser(description="Run one incremental sync pass and print the report.")
    parser.add_argument("--search-city", help="Also pull the search API for this city and reconcile it")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
    logging.getLogger("httpx").setLevel(logging.WARNING)

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    client = create_mlsgrid_client()
    sync_engine = IncrementalSyncEngine(client)
    try:
        report = await sync_engine.run()
        print(json.dumps(report.as_dict(), indent=2))

        if args.search_city:
            search = SearchApiClient()
            try:
                results = await search.search_listings({"city": args.search_city})
                batch = await sync_engine.reconcile_search_results(results)
                print(json.dumps(batch.as_dict(), indent=2))
            finally:
                await search.aclose()
    finally:
        if client is not None:
            await client.aclose()


if __name__ == "__main__":
    asyncio.run(main())
