"""Core module - the chat request pipeline and its components."""

from .errors import (
    ChatError, ConfigurationError, ValidationError, QuotaExceeded,
    ModerationRejected, UpstreamFailure, SessionNotFoundError,
)
from .identity import get_client_ip, hash_ip, resolve_identity
from .moderation import ModerationVerdict, moderate_input, sanitize_output
from .rate_limiter import (
    RateLimiter, RateLimitResult, LocalRateLimitBackend, UpstashRateLimitBackend,
)
from .session_store import SessionStore
from .maintenance import SessionSweeper
from .orchestrator import ChatOrchestrator, ChatResult, HistoryResult

__all__ = [
    'ChatError', 'ConfigurationError', 'ValidationError', 'QuotaExceeded',
    'ModerationRejected', 'UpstreamFailure', 'SessionNotFoundError',
    'get_client_ip', 'hash_ip', 'resolve_identity',
    'ModerationVerdict', 'moderate_input', 'sanitize_output',
    'RateLimiter', 'RateLimitResult', 'LocalRateLimitBackend', 'UpstashRateLimitBackend',
    'SessionStore', 'SessionSweeper',
    'ChatOrchestrator', 'ChatResult', 'HistoryResult',
]
