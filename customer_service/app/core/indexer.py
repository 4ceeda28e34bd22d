import redis.asyncio as aioredis
from redis.exceptions import RedisError
from structlog import get_logger

from app.core import keys
from app.core.metrics import INDEX_MUTATIONS
from app.core.resolver import ResolvedIds, resolve
from app.core.store import CustomerRecordStore, MalformedRecordError
from app.schemas.customer import CustomerRecord
from app.schemas.index import IndexUpdateResult

logger = get_logger()


class IndexMaintainer:
    """
    Keeps the token-link index in step with customer records on full replace.

    The document is the source of truth. Index writes happen after it, one
    idempotent SADD/SREM/DEL at a time, and a failed index write is logged and
    skipped rather than failing the replace. Anything left stale is repaired
    by BackfillJob.

    Two concurrent replaces for the same customer id can interleave between
    the read of the previous document and the index writes; callers serialize
    writes per customer when that matters.
    """

    def __init__(self, redis: aioredis.Redis, store: CustomerRecordStore):
        self._redis = redis
        self._store = store

    async def replace_and_reindex(self, customer_id: str, record: CustomerRecord) -> IndexUpdateResult:
        # 1. Previous state
        old = await self._previous_ids(customer_id)

        # 2. New state
        new = resolve(record.token_items)

        # 3. Document first; errors here propagate and nothing is indexed
        await self._store.replace(customer_id, record)

        result = IndexUpdateResult(customer_id=customer_id)

        # 4. business:{b}:customers, difference only
        for business_id in sorted(old.business_ids - new.business_ids):
            if await self._mutate("srem", keys.business_customers(business_id), customer_id, "business_customers", result):
                result.business_links_removed += 1
        for business_id in sorted(new.business_ids - old.business_ids):
            if await self._mutate("sadd", keys.business_customers(business_id), customer_id, "business_customers", result):
                result.business_links_added += 1

        # 5. token:{t}:customers over plain ids and campaign document ids
        old_tokens, new_tokens = old.all_token_ids, new.all_token_ids
        for token_id in sorted(old_tokens - new_tokens):
            if await self._mutate("srem", keys.token_customers(token_id), customer_id, "token_customers", result):
                result.token_links_removed += 1
        for token_id in sorted(new_tokens - old_tokens):
            if await self._mutate("sadd", keys.token_customers(token_id), customer_id, "token_customers", result):
                result.token_links_added += 1

        # 6. Forward sets are rewritten whole
        await self._rewrite_forward(keys.customer_businesses(customer_id), new.business_ids, "customer_businesses", result)
        await self._rewrite_forward(keys.customer_tokens(customer_id), new_tokens, "customer_tokens", result)

        log = logger.bind(
            customer_id=customer_id,
            business_added=result.business_links_added,
            business_removed=result.business_links_removed,
            token_added=result.token_links_added,
            token_removed=result.token_links_removed,
        )
        if result.failed_mutations:
            log.warning("customer_record_replaced_index_partial", failed_mutations=result.failed_mutations)
        else:
            log.info("customer_record_replaced")
        return result

    async def _previous_ids(self, customer_id: str) -> ResolvedIds:
        try:
            previous = await self._store.get_by_id(customer_id)
        except MalformedRecordError as e:
            # The forward index still describes what the old document linked to
            logger.warning("previous_record_malformed", customer_id=customer_id, key=e.key, error=e.reason)
            return await self._store.get_forward_index(customer_id)

        if previous is None:
            return ResolvedIds()
        return resolve(previous.token_items)

    async def _rewrite_forward(self, key: str, members: set, relation: str, result: IndexUpdateResult) -> None:
        await self._mutate("delete", key, None, relation, result)
        if members:
            await self._mutate("sadd", key, sorted(members), relation, result)

    async def _mutate(self, op: str, key: str, member, relation: str, result: IndexUpdateResult) -> bool:
        try:
            if op == "delete":
                await self._redis.delete(key)
            elif isinstance(member, list):
                await getattr(self._redis, op)(key, *member)
            else:
                await getattr(self._redis, op)(key, member)
        except RedisError as e:
            result.failed_mutations += 1
            INDEX_MUTATIONS.labels(relation=relation, op=op, status="failed").inc()
            logger.warning("index_mutation_failed", relation=relation, op=op, key=key, error=str(e))
            return False
        INDEX_MUTATIONS.labels(relation=relation, op=op, status="ok").inc()
        return True
