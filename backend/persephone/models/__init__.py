"""Models module."""

from .session import ChatMode, Message, Session, generate_id
from .chat import ChatRequest, ChatResponse, HistoryResponse

__all__ = [
    'ChatMode', 'Message', 'Session', 'generate_id',
    'ChatRequest', 'ChatResponse', 'HistoryResponse'
]
