"""
Unit tests for the rate limiter and its backends.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from persephone.core.rate_limiter import (
    LocalRateLimitBackend,
    RateLimiter,
    RateLimitBackend,
    UpstashRateLimitBackend,
    create_rate_limiter,
    window_reset_at,
)
from persephone.storage import MemoryStorage

IDENTITY = "ip_1a2b3c"


class TestWindow:
    """Tests for window boundaries."""

    def test_reset_at_next_utc_midnight(self):
        now = datetime(2026, 3, 14, 15, 30, tzinfo=timezone.utc)
        assert window_reset_at(now) == datetime(2026, 3, 15, tzinfo=timezone.utc)

    def test_reset_at_exact_midnight(self):
        now = datetime(2026, 3, 14, tzinfo=timezone.utc)
        assert window_reset_at(now) == datetime(2026, 3, 15, tzinfo=timezone.utc)


class TestLocalBackend:
    """Tests for counters kept in the key-value store."""

    @pytest.mark.asyncio
    async def test_first_request_allowed(self, rate_limiter):
        result = await rate_limiter.check(IDENTITY)
        assert result.allowed is True
        assert result.remaining == 99
        assert result.reset_at == datetime(2026, 3, 15, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_ceiling_rejects_101st_without_increment(self, rate_limiter, storage):
        for expected_remaining in range(99, -1, -1):
            result = await rate_limiter.check(IDENTITY)
            assert result.allowed is True
            assert result.remaining == expected_remaining

        rejected = await rate_limiter.check(IDENTITY)
        assert rejected.allowed is False
        assert rejected.remaining == 0

        record = await storage.get(f"ratelimit:{IDENTITY}")
        assert record["count"] == 100

    @pytest.mark.asyncio
    async def test_identities_counted_separately(self, rate_limiter):
        await rate_limiter.check(IDENTITY)
        await rate_limiter.check(IDENTITY)
        other = await rate_limiter.check("ip_other")
        assert other.remaining == 99

    @pytest.mark.asyncio
    async def test_expired_window_replaced(self, rate_limiter, clock):
        for _ in range(100):
            await rate_limiter.check(IDENTITY)
        assert (await rate_limiter.check(IDENTITY)).allowed is False

        clock.advance(hours=9)  # past midnight UTC
        result = await rate_limiter.check(IDENTITY)
        assert result.allowed is True
        assert result.remaining == 99
        assert result.reset_at == datetime(2026, 3, 16, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_status_is_read_only(self, rate_limiter):
        await rate_limiter.check(IDENTITY)
        for _ in range(5):
            status = await rate_limiter.status(IDENTITY)
            assert status.remaining == 99
            assert status.allowed is True

    @pytest.mark.asyncio
    async def test_status_unknown_identity_full_quota(self, rate_limiter):
        status = await rate_limiter.status("ip_new")
        assert status.remaining == 100
        assert status.allowed is True

    @pytest.mark.asyncio
    async def test_status_when_exhausted(self, storage, clock):
        limiter = RateLimiter(LocalRateLimitBackend(storage, daily_limit=2), clock=clock)
        await limiter.check(IDENTITY)
        await limiter.check(IDENTITY)
        status = await limiter.status(IDENTITY)
        assert status.allowed is False
        assert status.remaining == 0


class FailingBackend(RateLimitBackend):
    async def check(self, identity, now):
        raise ConnectionError("counter unreachable")

    async def status(self, identity, now):
        raise ConnectionError("counter unreachable")


class TestFailurePolicy:
    """Tests for fail-open / fail-closed behaviour."""

    @pytest.mark.asyncio
    async def test_fail_open_allows_with_full_quota(self, clock):
        limiter = RateLimiter(FailingBackend(daily_limit=100), fail_open=True, clock=clock)
        result = await limiter.check(IDENTITY)
        assert result.allowed is True
        assert result.remaining == 100

    @pytest.mark.asyncio
    async def test_fail_closed_rejects(self, clock):
        limiter = RateLimiter(FailingBackend(daily_limit=100), fail_open=False, clock=clock)
        result = await limiter.check(IDENTITY)
        assert result.allowed is False
        assert result.remaining == 0

    @pytest.mark.asyncio
    async def test_status_follows_policy(self, clock):
        limiter = RateLimiter(FailingBackend(daily_limit=100), fail_open=True, clock=clock)
        assert (await limiter.status(IDENTITY)).remaining == 100


def _upstash_response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status = MagicMock()
    return response


def _mock_upstash(mock_client, results, pipeline=None):
    """
    Route each single REST command (decr/get) to a canned result, and answer
    the /pipeline endpoint with the given list of entries.
    """
    mock_instance = AsyncMock()

    async def fake_get(url, headers=None):
        command = url.split("/")[3]
        return _upstash_response({"result": results[command]})

    async def fake_post(url, json=None, headers=None):
        return _upstash_response(pipeline)

    mock_instance.get.side_effect = fake_get
    mock_instance.post.side_effect = fake_post
    mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_instance.__aexit__ = AsyncMock(return_value=False)
    mock_client.return_value = mock_instance
    return mock_instance


class TestUpstashBackend:
    """Tests for the Upstash REST counter backend."""

    NOW = datetime(2026, 3, 14, 15, 30, tzinfo=timezone.utc)
    KEY = f"ratelimit:{IDENTITY}:2026-03-14"

    def _backend(self):
        return UpstashRateLimitBackend("https://example.upstash.io/", "tok", daily_limit=100)

    @pytest.mark.asyncio
    async def test_increment_and_expiry_sent_together(self):
        with patch("httpx.AsyncClient") as mock_client:
            instance = _mock_upstash(mock_client, {}, pipeline=[{"result": 1}, {"result": 1}])
            result = await self._backend().check(IDENTITY, self.NOW)

        assert result.allowed is True
        assert result.remaining == 99
        call = instance.post.call_args
        assert call.args[0] == "https://example.upstash.io/pipeline"
        assert call.kwargs["json"] == [
            ["INCR", self.KEY],
            ["EXPIRE", self.KEY, 30600, "NX"],
        ]
        assert call.kwargs["headers"]["Authorization"] == "Bearer tok"
        instance.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_expiry_sent_on_every_hit(self):
        # A key that missed its TTL on the first hit gets one on the next
        with patch("httpx.AsyncClient") as mock_client:
            instance = _mock_upstash(mock_client, {}, pipeline=[{"result": 7}, {"result": 1}])
            result = await self._backend().check(IDENTITY, self.NOW)

        assert result.remaining == 93
        assert instance.post.call_args.kwargs["json"][1] == ["EXPIRE", self.KEY, 30600, "NX"]

    @pytest.mark.asyncio
    async def test_over_ceiling_rejected_and_rolled_back(self):
        with patch("httpx.AsyncClient") as mock_client:
            instance = _mock_upstash(mock_client, {"decr": 100}, pipeline=[{"result": 101}, {"result": 0}])
            result = await self._backend().check(IDENTITY, self.NOW)

        assert result.allowed is False
        assert result.remaining == 0
        urls = [call.args[0] for call in instance.get.call_args_list]
        assert urls == [f"https://example.upstash.io/decr/{self.KEY}"]

    @pytest.mark.asyncio
    async def test_pipeline_error_entry_raises(self):
        with patch("httpx.AsyncClient") as mock_client:
            _mock_upstash(mock_client, {}, pipeline=[{"result": 1}, {"error": "ERR syntax error"}])
            with pytest.raises(RuntimeError, match="EXPIRE"):
                await self._backend().check(IDENTITY, self.NOW)

    @pytest.mark.asyncio
    async def test_pipeline_error_fails_open_through_limiter(self, clock):
        limiter = RateLimiter(self._backend(), fail_open=True, clock=clock)
        with patch("httpx.AsyncClient") as mock_client:
            _mock_upstash(mock_client, {}, pipeline=[{"error": "WRONGTYPE"}, {"result": 0}])
            result = await limiter.check(IDENTITY)
        assert result.allowed is True
        assert result.remaining == 100

    @pytest.mark.asyncio
    async def test_status_reads_counter(self):
        with patch("httpx.AsyncClient") as mock_client:
            _mock_upstash(mock_client, {"get": "42"})
            result = await self._backend().status(IDENTITY, self.NOW)
        assert result.remaining == 58

    @pytest.mark.asyncio
    async def test_status_missing_key(self):
        with patch("httpx.AsyncClient") as mock_client:
            _mock_upstash(mock_client, {"get": None})
            result = await self._backend().status(IDENTITY, self.NOW)
        assert result.remaining == 100

    @pytest.mark.asyncio
    async def test_unreachable_fails_open_through_limiter(self, clock):
        limiter = RateLimiter(self._backend(), fail_open=True, clock=clock)
        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_instance.post.side_effect = ConnectionError("down")
            mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
            mock_instance.__aexit__ = AsyncMock(return_value=False)
            mock_client.return_value = mock_instance
            result = await limiter.check(IDENTITY)
        assert result.allowed is True
        assert result.remaining == 100


class TestCreateRateLimiter:
    """Tests for backend selection from settings."""

    def _config(self, **overrides):
        config = MagicMock()
        config.upstash_redis_rest_url = None
        config.upstash_redis_rest_token = None
        config.rate_limit_daily = 100
        config.rate_limit_fail_open = True
        for key, value in overrides.items():
            setattr(config, key, value)
        return config

    def test_local_by_default(self):
        limiter = create_rate_limiter(self._config(), MemoryStorage())
        assert isinstance(limiter.backend, LocalRateLimitBackend)

    def test_upstash_when_configured(self):
        limiter = create_rate_limiter(
            self._config(upstash_redis_rest_url="https://x.upstash.io", upstash_redis_rest_token="t",
                         rate_limit_fail_open=False),
            MemoryStorage(),
        )
        assert isinstance(limiter.backend, UpstashRateLimitBackend)
        assert limiter.fail_open is False
