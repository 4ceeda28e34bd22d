import json
from typing import Optional

import redis.asyncio as aioredis
from pydantic import ValidationError
from structlog import get_logger

from app.core import keys
from app.core.resolver import ResolvedIds
from app.schemas.customer import CustomerRecord, EmailIndexEntry

logger = get_logger()


class MalformedRecordError(ValueError):
    """A stored value under `key` could not be deserialized."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Malformed value at {key}: {reason}")
        self.key = key
        self.reason = reason


class CustomerRecordStore:
    """
    Key-value persistence of customer records and the email lookup.
    Pure pass-through: records are stored exactly as supplied (no timestamps, no derived fields).
    Index relations are not touched here; see IndexMaintainer.
    """

    def __init__(self, redis: aioredis.Redis):
        self._redis = redis

    async def get_by_id(self, customer_id: str) -> Optional[CustomerRecord]:
        key = keys.customer(customer_id)
        raw = await self._redis.get(key)
        if raw is None:
            return None
        return self._decode_record(key, raw)

    async def get_by_email(self, email: str) -> Optional[CustomerRecord]:
        normalized = keys.normalize_email(email)
        if not normalized:
            return None

        key = keys.customer_by_email(normalized)
        raw = await self._redis.get(key)
        if raw is None:
            return None

        try:
            entry = EmailIndexEntry.model_validate_json(raw)
        except ValidationError as e:
            raise MalformedRecordError(key, str(e)) from e

        record = await self.get_by_id(entry.customer_id)
        if record is None:
            # Dangling email index entry: reported as not found, left in place
            logger.warning("email_index_dangling", email=normalized, customer_id=entry.customer_id)
        return record

    async def replace(self, customer_id: str, record: CustomerRecord) -> None:
        await self._redis.set(keys.customer(customer_id), json.dumps(record.to_document()))

        email = keys.normalize_email(record.email)
        if email:
            await self._redis.set(
                keys.customer_by_email(email),
                json.dumps({"customerId": customer_id}),
            )
        logger.debug("customer_record_stored", customer_id=customer_id, email_indexed=bool(email))

    async def get_forward_index(self, customer_id: str) -> ResolvedIds:
        """The customer's current customer:{id}:businesses and customer:{id}:tokens sets."""
        business_ids = await self._redis.smembers(keys.customer_businesses(customer_id))
        token_ids = await self._redis.smembers(keys.customer_tokens(customer_id))
        return ResolvedIds(business_ids=set(business_ids), token_ids=set(token_ids))

    @staticmethod
    def _decode_record(key: str, raw: str) -> CustomerRecord:
        try:
            return CustomerRecord.model_validate_json(raw)
        except ValidationError as e:
            raise MalformedRecordError(key, str(e)) from e
