import redis.asyncio as aioredis
from fastapi import Depends, Header, HTTPException, Request
from structlog import get_logger

from app.core.backfill import BackfillJob
from app.core.config import settings
from app.core.indexer import IndexMaintainer
from app.core.reader import IndexReader
from app.core.store import CustomerRecordStore

logger = get_logger()


def get_redis(request: Request) -> aioredis.Redis:
    """The client built in the app lifespan. Tests swap it by setting app.state.redis."""
    return request.app.state.redis


def get_store(redis: aioredis.Redis = Depends(get_redis)) -> CustomerRecordStore:
    return CustomerRecordStore(redis)


def get_indexer(
    redis: aioredis.Redis = Depends(get_redis),
    store: CustomerRecordStore = Depends(get_store),
) -> IndexMaintainer:
    return IndexMaintainer(redis, store)


def get_reader(redis: aioredis.Redis = Depends(get_redis)) -> IndexReader:
    return IndexReader(redis)


def get_backfill_job(
    redis: aioredis.Redis = Depends(get_redis),
    store: CustomerRecordStore = Depends(get_store),
) -> BackfillJob:
    return BackfillJob(redis, store)


async def verify_admin_token(x_admin_token: str = Header(None)):
    if x_admin_token != settings.ADMIN_TOKEN.get_secret_value():
        logger.warning("admin_auth_rejected", token_present=bool(x_admin_token))
        raise HTTPException(status_code=401, detail="Invalid Admin Token")
