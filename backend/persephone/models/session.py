"""
Session Models - Defines structures for chat sessions and their messages.
"""

import secrets
import time
from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal
from pydantic import BaseModel, ConfigDict, Field


class ChatMode(str, Enum):
    """Persona selected by the visitor."""
    SWEET = "Sweet"
    TARGET = "Target"
    BULLET_BABE = "Bullet Babe"
    CI_LEV = "CI Lev"
    JT = "JT"
    CXO = "CXO"
    QUEEN = "Queen"


_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(number: int) -> str:
    digits = ""
    while True:
        number, rem = divmod(number, 36)
        digits = _BASE36[rem] + digits
        if number == 0:
            return digits


def generate_id(prefix: str, random_length: int = 8) -> str:
    """Time-ordered id such as ``session_lx2k9abc_4f9qz0w1``."""
    random_part = "".join(secrets.choice(_BASE36) for _ in range(random_length))
    return f"{prefix}_{_base36(time.time_ns() // 1_000_000)}_{random_part}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    """A single chat turn. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: generate_id("msg", 6))
    role: Literal["user", "assistant"]
    content: str
    mode: ChatMode
    timestamp: datetime = Field(default_factory=utcnow)


class Session(BaseModel):
    """Conversation owned by one visitor identity."""
    id: str = Field(default_factory=lambda: generate_id("session"))
    owner_identity: str
    messages: List[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
