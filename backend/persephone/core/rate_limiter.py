"""
Rate Limiter - Daily per-visitor message quota.

Windows are anchored to UTC calendar days for every backend: a window
opened at any time of day resets at the next UTC midnight.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import httpx
from pydantic import BaseModel

from ..storage import StorageInterface

logger = logging.getLogger(__name__)

DAILY_LIMIT = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def window_reset_at(now: datetime) -> datetime:
    """Start of the next UTC day."""
    day_start = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return day_start + timedelta(days=1)


def seconds_until(reset_at: datetime, now: datetime) -> int:
    return max(1, math.ceil((reset_at - now).total_seconds()))


@dataclass(frozen=True)
class RateLimitResult:
    """Quota decision for one visitor."""
    allowed: bool
    remaining: int
    reset_at: datetime


class RateLimitRecord(BaseModel):
    """Usage counter for one identity in one window."""
    identity: str
    count: int
    window_reset_at: datetime


class RateLimitBackend(ABC):
    """Storage strategy for usage counters. Errors propagate to the limiter."""

    def __init__(self, daily_limit: int = DAILY_LIMIT):
        self.daily_limit = daily_limit

    @abstractmethod
    async def check(self, identity: str, now: datetime) -> RateLimitResult:
        """Check the quota and count the request when it is allowed."""
        pass

    @abstractmethod
    async def status(self, identity: str, now: datetime) -> RateLimitResult:
        """Report usage without counting anything."""
        pass


class LocalRateLimitBackend(RateLimitBackend):
    """
    Counters kept as records in the injected key-value store.

    With ``MemoryStorage`` the read-modify-write never suspends and is
    effectively atomic. With a shared store two concurrent requests from
    one identity may both read the same count; use the Upstash backend
    where the ceiling must be strict.
    """

    def __init__(self, storage: StorageInterface, daily_limit: int = DAILY_LIMIT):
        super().__init__(daily_limit)
        self.storage = storage

    def _key(self, identity: str) -> str:
        return f"ratelimit:{identity}"

    async def _load(self, identity: str, now: datetime) -> Optional[RateLimitRecord]:
        data = await self.storage.get(self._key(identity))
        if data is None:
            return None
        record = RateLimitRecord.model_validate(data)
        if now >= record.window_reset_at:
            return None
        return record

    async def _save(self, record: RateLimitRecord, now: datetime) -> None:
        await self.storage.set(
            self._key(record.identity),
            record.model_dump(mode="json"),
            ttl_seconds=seconds_until(record.window_reset_at, now),
        )

    async def check(self, identity: str, now: datetime) -> RateLimitResult:
        record = await self._load(identity, now)

        if record is None:
            record = RateLimitRecord(identity=identity, count=1, window_reset_at=window_reset_at(now))
            await self._save(record, now)
            return RateLimitResult(True, self.daily_limit - 1, record.window_reset_at)

        if record.count >= self.daily_limit:
            return RateLimitResult(False, 0, record.window_reset_at)

        record.count += 1
        await self._save(record, now)
        return RateLimitResult(True, self.daily_limit - record.count, record.window_reset_at)

    async def status(self, identity: str, now: datetime) -> RateLimitResult:
        record = await self._load(identity, now)
        if record is None:
            return RateLimitResult(True, self.daily_limit, window_reset_at(now))
        return RateLimitResult(
            record.count < self.daily_limit,
            max(0, self.daily_limit - record.count),
            record.window_reset_at,
        )


class UpstashRateLimitBackend(RateLimitBackend):
    """
    Counters held in Upstash Redis and driven through its REST API.
    INCR is atomic on the server, so concurrent requests cannot overshoot.
    """

    def __init__(
        self,
        url: str,
        token: str,
        daily_limit: int = DAILY_LIMIT,
        timeout: float = 5.0,
    ):
        super().__init__(daily_limit)
        self.url = url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _get_headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}

    def _key(self, identity: str, now: datetime) -> str:
        return f"ratelimit:{identity}:{now.astimezone(timezone.utc).date().isoformat()}"

    async def _command(self, client: httpx.AsyncClient, *parts) -> Optional[str]:
        path = "/".join(str(p) for p in parts)
        resp = await client.get(f"{self.url}/{path}", headers=self._get_headers())
        resp.raise_for_status()
        data = resp.json()
        if "error" in data:
            raise RuntimeError(f"Upstash command {parts[0]} failed: {data['error']}")
        return data.get("result")

    async def _pipeline(self, client: httpx.AsyncClient, *commands: list) -> List[Optional[str]]:
        """Run several commands in one round trip; results come back in order."""
        resp = await client.post(
            f"{self.url}/pipeline", json=list(commands), headers=self._get_headers()
        )
        resp.raise_for_status()
        results = []
        for command, item in zip(commands, resp.json()):
            if "error" in item:
                raise RuntimeError(f"Upstash command {command[0]} failed: {item['error']}")
            results.append(item.get("result"))
        return results

    async def check(self, identity: str, now: datetime) -> RateLimitResult:
        reset_at = window_reset_at(now)
        key = self._key(identity, now)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            # NX: only a key without a TTL gets one, so every hit repairs a missed expiry
            count, _ = await self._pipeline(
                client,
                ["INCR", key],
                ["EXPIRE", key, seconds_until(reset_at, now), "NX"],
            )
            count = int(count)

            if count > self.daily_limit:
                # Give the slot back so a rejected request is never counted
                await self._command(client, "decr", key)
                return RateLimitResult(False, 0, reset_at)

        return RateLimitResult(True, self.daily_limit - count, reset_at)

    async def status(self, identity: str, now: datetime) -> RateLimitResult:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            result = await self._command(client, "get", self._key(identity, now))

        count = int(result) if result is not None else 0
        return RateLimitResult(
            count < self.daily_limit,
            max(0, self.daily_limit - count),
            window_reset_at(now),
        )


class RateLimiter:
    """
    Applies the daily quota through a backend.

    When the backend fails, ``fail_open`` decides the outcome: allow the
    request and report the full quota, or reject it with nothing remaining.
    """

    def __init__(
        self,
        backend: RateLimitBackend,
        fail_open: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.backend = backend
        self.fail_open = fail_open
        self.clock = clock

    @property
    def daily_limit(self) -> int:
        return self.backend.daily_limit

    def _on_backend_failure(self, identity: str, now: datetime, operation: str) -> RateLimitResult:
        logger.error(
            f"Rate limit backend failed during {operation}, failing "
            f"{'open' if self.fail_open else 'closed'}",
            exc_info=True,
            extra={"extra_fields": {
                "identity": identity,
                "backend": type(self.backend).__name__,
                "fail_open": self.fail_open,
            }}
        )
        if self.fail_open:
            return RateLimitResult(True, self.daily_limit, window_reset_at(now))
        return RateLimitResult(False, 0, window_reset_at(now))

    async def check(self, identity: str) -> RateLimitResult:
        """Check the quota, counting the request if it is allowed."""
        now = self.clock()
        try:
            result = await self.backend.check(identity, now)
        except Exception:
            return self._on_backend_failure(identity, now, "check")

        if not result.allowed:
            logger.warning(
                "Daily quota exhausted",
                extra={"extra_fields": {"identity": identity, "reset_at": result.reset_at.isoformat()}}
            )
        return result

    async def status(self, identity: str) -> RateLimitResult:
        """Current usage, read-only."""
        now = self.clock()
        try:
            return await self.backend.status(identity, now)
        except Exception:
            return self._on_backend_failure(identity, now, "status")


def create_rate_limiter(config, storage: StorageInterface) -> RateLimiter:
    """
    Build the limiter from settings: Upstash when its REST credentials
    are configured, otherwise counters in the shared key-value store.
    """
    if config.upstash_redis_rest_url and config.upstash_redis_rest_token:
        backend: RateLimitBackend = UpstashRateLimitBackend(
            config.upstash_redis_rest_url,
            config.upstash_redis_rest_token,
            daily_limit=config.rate_limit_daily,
        )
    else:
        backend = LocalRateLimitBackend(storage, daily_limit=config.rate_limit_daily)
    return RateLimiter(backend, fail_open=config.rate_limit_fail_open)
