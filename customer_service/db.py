import redis.asyncio as aioredis
from typing import Optional

from app.core.config import settings


def create_redis_client(url: Optional[str] = None, socket_timeout: Optional[float] = None) -> aioredis.Redis:
    """
    Builds the Redis client shared by one application instance.
    The caller owns it: it is stored on app.state and closed on shutdown.
    """
    return aioredis.from_url(
        url or settings.REDIS_URL,
        decode_responses=True,
        socket_timeout=socket_timeout if socket_timeout is not None else settings.REDIS_SOCKET_TIMEOUT,
    )
