from typing import Optional, Set

import redis.asyncio as aioredis
from structlog import get_logger

from app.core import keys
from app.core.config import settings
from app.core.metrics import BACKFILL_RUNS
from app.core.resolver import resolve
from app.core.store import CustomerRecordStore, MalformedRecordError
from app.schemas.index import BackfillReport

logger = get_logger()


class BackfillJob:
    """
    Rebuilds the token-link index from every stored customer record.

    Reverse sets (business/token -> customers) only grow: stale members are
    never removed here. Forward sets (customer -> businesses/tokens) of each
    visited customer are rewritten exactly. Every write is an idempotent set
    operation, so an interrupted run is resumed by running it again.
    """

    def __init__(self, redis: aioredis.Redis, store: CustomerRecordStore, page_size: Optional[int] = None):
        self._redis = redis
        self._store = store
        self._page_size = page_size or settings.BACKFILL_PAGE_SIZE

    async def run(self) -> BackfillReport:
        report = BackfillReport()
        seen: Set[str] = set()
        logger.info("backfill_start", page_size=self._page_size)

        try:
            cursor = 0
            pages = 0
            while True:
                cursor, batch = await self._redis.scan(cursor=cursor, match=f"{keys.CUSTOMER_PREFIX}*", count=self._page_size)
                pages += 1

                page_ids = []
                for key in batch:
                    customer_id = keys.customer_id_from_key(key)
                    # SCAN may return a key more than once
                    if customer_id and customer_id not in seen:
                        seen.add(customer_id)
                        page_ids.append(customer_id)

                for customer_id in page_ids:
                    await self._backfill_customer(customer_id, report)

                logger.debug("backfill_page_scanned", page=pages, customers=len(page_ids), processed=report.processed)
                if int(cursor) == 0:
                    break
        except Exception as e:
            BACKFILL_RUNS.labels(status="failed").inc()
            logger.error("backfill_failed", error=str(e), **report.model_dump())
            raise

        BACKFILL_RUNS.labels(status="ok").inc()
        logger.info("backfill_complete", customers_found=len(seen), **report.model_dump())
        return report

    async def _backfill_customer(self, customer_id: str, report: BackfillReport) -> None:
        try:
            record = await self._store.get_by_id(customer_id)
        except MalformedRecordError as e:
            report.malformed += 1
            logger.warning("backfill_record_malformed", customer_id=customer_id, key=e.key, error=e.reason)
            return

        if record is None:
            # Deleted between SCAN and GET
            return

        resolved = resolve(record.token_items)
        token_ids = resolved.all_token_ids
        report.processed += 1
        if resolved.business_ids or token_ids:
            report.with_links += 1

        for business_id in sorted(resolved.business_ids):
            await self._redis.sadd(keys.business_customers(business_id), customer_id)
            report.business_links_written += 1
        for token_id in sorted(token_ids):
            await self._redis.sadd(keys.token_customers(token_id), customer_id)
            report.token_links_written += 1

        await self._redis.delete(keys.customer_businesses(customer_id))
        await self._redis.delete(keys.customer_tokens(customer_id))
        if resolved.business_ids:
            await self._redis.sadd(keys.customer_businesses(customer_id), *sorted(resolved.business_ids))
        if token_ids:
            await self._redis.sadd(keys.customer_tokens(customer_id), *sorted(token_ids))
