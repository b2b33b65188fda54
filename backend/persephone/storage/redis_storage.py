"""
Redis Storage Implementation.
Shares sessions and rate-limit records between processes.
"""

import json
import logging
from typing import Optional, List, Dict, Any

from redis.asyncio import Redis

from .interface import StorageInterface

logger = logging.getLogger(__name__)


class RedisStorage(StorageInterface):
    """
    Redis-backed key-value store.
    Values are stored as JSON strings; expiry uses native key TTLs.
    """

    def __init__(self, url: str = "redis://localhost:6379/0", client: Optional[Redis] = None):
        """
        Args:
            url: Redis connection URL
            client: Pre-built client (used instead of ``url`` when given)
        """
        self.url = url
        self.client = client or Redis.from_url(url, decode_responses=True)

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        raw = await self.client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(
        self,
        key: str,
        value: Dict[str, Any],
        ttl_seconds: Optional[int] = None
    ) -> None:
        await self.client.set(key, json.dumps(value), ex=ttl_seconds or None)

    async def delete(self, key: str) -> bool:
        return bool(await self.client.delete(key))

    async def scan(self, prefix: str) -> List[str]:
        return [key async for key in self.client.scan_iter(match=f"{prefix}*")]

    async def close(self) -> None:
        await self.client.aclose()
        logger.info("Redis storage connection closed")
