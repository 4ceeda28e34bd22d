from typing import Dict, List

import redis.asyncio as aioredis

from app.core import keys


class IndexReader:
    """Read-only view of the four token-link relations. Exact-match set reads, nothing else."""

    def __init__(self, redis: aioredis.Redis):
        self._redis = redis

    async def dump_index(self) -> Dict[str, List[str]]:
        """Every relation key (business:*:customers, token:*:customers, customer:*:businesses, customer:*:tokens) with its members."""
        dump: Dict[str, List[str]] = {}
        for pattern in keys.INDEX_PATTERNS:
            async for key in self._redis.scan_iter(match=pattern, count=200):
                if key in dump:
                    continue
                dump[key] = await self._members(key)
        return dict(sorted(dump.items()))

    async def customers_for_business(self, business_id: str) -> List[str]:
        return await self._members(keys.business_customers(business_id))

    async def customers_for_token(self, token_id: str) -> List[str]:
        return await self._members(keys.token_customers(token_id))

    async def businesses_for_customer(self, customer_id: str) -> List[str]:
        return await self._members(keys.customer_businesses(customer_id))

    async def tokens_for_customer(self, customer_id: str) -> List[str]:
        return await self._members(keys.customer_tokens(customer_id))

    async def _members(self, key: str) -> List[str]:
        return sorted(await self._redis.smembers(key))
