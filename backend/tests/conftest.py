"""
Shared test fixtures and configuration.
"""

import asyncio
import os
from datetime import datetime, timedelta, timezone

import pytest

# Set test environment variables before importing app modules
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_API_REQUESTS", "true")
os.environ.setdefault("STORAGE_BACKEND", "memory")

from persephone.core.orchestrator import ChatOrchestrator
from persephone.core.rate_limiter import LocalRateLimitBackend, RateLimiter
from persephone.core.session_store import SessionStore
from persephone.llm.base import LLMProvider, LLMResponse
from persephone.storage import MemoryStorage


class FakeClock:
    """Controllable replacement for ``datetime.now(timezone.utc)``."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeLLMProvider(LLMProvider):
    """Records calls and answers with a canned reply, an error, or after a delay."""

    def __init__(self, reply: str = "Ship it with **confidence**.", error: Exception = None,
                 delay: float = 0.0):
        super().__init__(api_key="test-key", model="fake-model")
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls = []

    async def chat_completion(self, messages, temperature=None, max_tokens=None, **kwargs):
        self.calls.append(list(messages))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return LLMResponse(content=self.reply, model=self.model)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 14, 15, 30, tzinfo=timezone.utc))


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def session_store(storage, clock):
    return SessionStore(storage, clock=clock)


@pytest.fixture
def rate_limiter(storage, clock):
    return RateLimiter(LocalRateLimitBackend(storage, daily_limit=100), clock=clock)


@pytest.fixture
def fake_llm():
    return FakeLLMProvider()


@pytest.fixture
def orchestrator(session_store, rate_limiter, fake_llm):
    return ChatOrchestrator(
        session_store=session_store,
        rate_limiter=rate_limiter,
        llm_provider=fake_llm,
        llm_timeout=1.0,
    )
