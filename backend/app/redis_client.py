# backend/app/redis_client.py

import redis.asyncio as aioredis
from redis import Redis

from .config import settings

# Connections are lazy: nothing is opened until the first command.
# Sync client for sync handlers (/health), asyncio client for coroutines.
redis_client = Redis.from_url(
    settings.redis_url,
    socket_timeout=settings.redis_socket_timeout,
    socket_connect_timeout=settings.redis_socket_timeout,
    decode_responses=True,
)

async_redis_client = aioredis.from_url(
    settings.redis_url,
    socket_timeout=settings.redis_socket_timeout,
    socket_connect_timeout=settings.redis_socket_timeout,
    decode_responses=True,
)
