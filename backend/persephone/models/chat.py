"""
Chat API Models - Request and response payloads for the chat endpoints.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from .session import ChatMode, Message


class ChatRequest(BaseModel):
    """Body of ``POST /chat``."""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    mode: ChatMode
    session_id: Optional[str] = Field(default=None, alias="sessionId")


class ChatResponse(BaseModel):
    """Body returned by ``POST /chat``. Unset fields are omitted."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: Optional[str] = None
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    remaining: Optional[int] = None
    error: Optional[str] = None


class HistoryResponse(BaseModel):
    """Body returned by ``GET /history``."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    messages: List[Message] = Field(default_factory=list)
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    remaining: int
