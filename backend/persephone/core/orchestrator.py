"""
Chat Orchestrator - Sequences quota, moderation, session bookkeeping and the
model call for every chat turn.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

from ..config import Settings
from ..llm.base import LLMProvider, LLMMessage
from ..llm.factory import create_llm_provider
from ..models import ChatMode, Message
from ..storage import StorageInterface, create_storage
from .errors import ConfigurationError, ModerationRejected, QuotaExceeded, UpstreamFailure
from .logging_config import VisitorLoggerAdapter
from .moderation import moderate_input, sanitize_output
from .persona import build_system_prompt
from .rate_limiter import RateLimiter, create_rate_limiter
from .session_store import SessionStore

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I apologize, but I could not generate a response. Please try again."


@dataclass
class ChatResult:
    message: str
    session_id: str
    remaining: int


@dataclass
class HistoryResult:
    messages: List[Message]
    session_id: Optional[str]
    remaining: int


class ChatOrchestrator:
    """
    Runs one chat turn end to end.

    Order matters: the quota slot is spent before moderation runs, so
    rejected content still counts against the daily ceiling. Rejections
    raise a ``ChatError`` subclass and stop the pipeline before any later
    step mutates state.
    """

    def __init__(
        self,
        session_store: SessionStore,
        rate_limiter: RateLimiter,
        llm_provider: Optional[LLMProvider] = None,
        context_window: int = 6,
        llm_timeout: float = 60.0,
        min_length: int = 2,
        max_length: int = 2000,
    ):
        """
        Args:
            session_store: Conversation state
            rate_limiter: Daily quota
            llm_provider: Model collaborator; None means the service is unconfigured
            context_window: Prior messages forwarded to the model
            llm_timeout: Seconds to wait for the model before giving up
            min_length: Shortest accepted user message
            max_length: Longest accepted user message
        """
        self.session_store = session_store
        self.rate_limiter = rate_limiter
        self.llm_provider = llm_provider
        self.context_window = context_window
        self.llm_timeout = llm_timeout
        self.min_length = min_length
        self.max_length = max_length

    @property
    def is_configured(self) -> bool:
        return self.llm_provider is not None

    def ensure_configured(self) -> None:
        if not self.is_configured:
            logger.error("Chat requested but no LLM API key is configured")
            raise ConfigurationError()

    async def build_context(self, session_id: str, current: Message) -> List[LLMMessage]:
        """
        System prompt, then the last ``context_window`` prior turns, then the
        current user turn.
        """
        prior = await self.session_store.recent(session_id, self.context_window)
        return [
            LLMMessage.system(build_system_prompt(current.mode)),
            *(LLMMessage(m.role, m.content) for m in prior),
            LLMMessage.user(current.content),
        ]

    async def handle_chat(
        self,
        identity: str,
        message: str,
        mode: ChatMode,
        session_id: Optional[str] = None,
    ) -> ChatResult:
        """
        Process one visitor message.

        Raises:
            ConfigurationError: No model credentials
            QuotaExceeded: Daily ceiling reached
            ModerationRejected: Message refused
            UpstreamFailure: Model call failed or timed out
        """
        log = VisitorLoggerAdapter(logger, {"identity": identity, "mode": mode.value})
        self.ensure_configured()

        quota = await self.rate_limiter.check(identity)
        if not quota.allowed:
            raise QuotaExceeded(quota.reset_at)

        verdict = moderate_input(message, self.min_length, self.max_length)
        if not verdict.allowed:
            log.info(f"Message rejected by moderation: {verdict.reason}")
            raise ModerationRejected(verdict.reason)

        session = await self.session_store.get_or_create(identity, session_id)
        # Not saved until the model answers
        user_turn = self.session_store.new_message("user", message, mode)
        llm_messages = await self.build_context(session.id, user_turn)

        try:
            response = await asyncio.wait_for(
                self.llm_provider.chat_completion(llm_messages),
                timeout=self.llm_timeout,
            )
        except Exception as e:
            log.error(
                f"Model call failed: {type(e).__name__}: {e}",
                exc_info=True,
                extra={"extra_fields": {"session_id": session.id}}
            )
            raise UpstreamFailure() from e

        reply = sanitize_output(response.content) or FALLBACK_REPLY
        assistant_turn = self.session_store.new_message("assistant", reply, mode)
        await self.session_store.extend(session.id, [user_turn, assistant_turn])

        log.info(
            "Chat turn completed",
            extra={"extra_fields": {
                "session_id": session.id,
                "context_messages": len(llm_messages),
                "remaining": quota.remaining,
            }}
        )
        return ChatResult(message=reply, session_id=session.id, remaining=quota.remaining)

    async def get_history(self, identity: str) -> HistoryResult:
        """History of the visitor's session plus read-only quota status."""
        quota = await self.rate_limiter.status(identity)
        session = await self.session_store.find_by_owner(identity)
        if session is None:
            return HistoryResult(messages=[], session_id=None, remaining=quota.remaining)
        return HistoryResult(
            messages=await self.session_store.history(session.id),
            session_id=session.id,
            remaining=quota.remaining,
        )


def create_orchestrator(config: Settings, storage: Optional[StorageInterface] = None) -> ChatOrchestrator:
    """Wire an orchestrator from settings."""
    storage = storage or create_storage(config)
    llm_provider = create_llm_provider(
        provider=config.llm_provider,
        api_key=config.resolved_llm_api_key,
        model=config.llm_model,
        base_url=config.llm_base_url,
        default_max_tokens=config.llm_max_tokens,
        timeout=config.llm_timeout_seconds,
    )
    return ChatOrchestrator(
        session_store=SessionStore(
            storage,
            max_messages=config.session_max_messages,
            ttl_hours=config.session_ttl_hours,
        ),
        rate_limiter=create_rate_limiter(config, storage),
        llm_provider=llm_provider,
        context_window=config.context_window_messages,
        llm_timeout=config.llm_timeout_seconds,
        min_length=config.moderation_min_length,
        max_length=config.moderation_max_length,
    )


# Global orchestrator instance
_orchestrator: Optional[ChatOrchestrator] = None


def init_orchestrator(orchestrator: ChatOrchestrator) -> None:
    """Install the global orchestrator instance."""
    global _orchestrator
    _orchestrator = orchestrator


def get_orchestrator() -> ChatOrchestrator:
    """
    Get the global orchestrator instance, building one from settings on
    first use when the app lifespan has not installed it.
    """
    global _orchestrator
    if _orchestrator is None:
        from ..config import settings
        _orchestrator = create_orchestrator(settings)
    return _orchestrator
