from typing import List, Optional

import redis.asyncio as redis
from app.core.config import settings

RELEASE_QUEUE_KEY = "release:pending"

class RedisClient:
    def __init__(self, client: Optional[redis.Redis] = None):
        self.redis = client or redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)

    def lock(self, name: str, timeout: float, blocking_timeout: float):
        """Named mutex shared by every service instance talking to this Redis."""
        return self.redis.lock(f"lock:{name}", timeout=timeout, blocking_timeout=blocking_timeout)

    async def schedule_release(self, member: str, due_at: float):
        await self.redis.zadd(RELEASE_QUEUE_KEY, {member: due_at})

    async def due_releases(self, now: float, limit: int = 100) -> List[str]:
        return await self.redis.zrangebyscore(RELEASE_QUEUE_KEY, "-inf", now, start=0, num=limit)

    async def claim_release(self, member: str) -> bool:
        # Only the worker whose ZREM removes the member processes it
        return await self.redis.zrem(RELEASE_QUEUE_KEY, member) == 1

    async def pending_release_count(self) -> int:
        return await self.redis.zcard(RELEASE_QUEUE_KEY)

    async def close(self):
        await self.redis.aclose()

redis_client = RedisClient()
