"""
Backfill the token-link index from existing customer records.

Scans every customer:{id} record and populates business:{b}:customers,
token:{t}:customers, customer:{id}:businesses and customer:{id}:tokens.
Replaces done through the API keep the index current on their own; this is
for bootstrapping and repair. Additive and idempotent: rerun to resume.

Usage:
    python scripts/backfill_token_index.py [--redis-url URL] [--page-size N]
"""
import asyncio
import sys
import os
import argparse

# Add parent dir to path to find 'customer_service'
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "customer_service")))

from app.core.backfill import BackfillJob
from app.core.config import settings
from app.core.store import CustomerRecordStore
from db import create_redis_client


async def backfill(redis_url: str, page_size: int) -> int:
    redis = create_redis_client(redis_url)
    try:
        await redis.ping()
        print(f"Connected to Redis. Backfilling index (page size {page_size})...\n")

        job = BackfillJob(redis, CustomerRecordStore(redis), page_size=page_size)
        report = await job.run()
    finally:
        await redis.aclose()

    print("--- Done ---")
    print(f"Customers processed: {report.processed}")
    print(f"Customers with links (indexed): {report.with_links}")
    print(f"business:*:customers SADD count: {report.business_links_written}")
    print(f"token:*:customers SADD count: {report.token_links_written}")
    if report.malformed:
        print(f"Malformed records skipped: {report.malformed}")
    return 0


if __name__ == "__main__":
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

    parser = argparse.ArgumentParser(description="Backfill the token-link index from stored customer records.")
    parser.add_argument("--redis-url", default=settings.REDIS_URL, help="Redis URL (default: REDIS_URL from env/.env).")
    parser.add_argument("--page-size", type=int, default=settings.BACKFILL_PAGE_SIZE, help="SCAN page size.")
    args = parser.parse_args()

    if args.page_size < 1:
        parser.error("--page-size must be >= 1")

    sys.exit(asyncio.run(backfill(args.redis_url, args.page_size)))
