"""
Model collaborator contract shared by every provider.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class LLMMessage:
    """One plain-text turn sent to the model."""
    role: Role
    content: str

    @classmethod
    def system(cls, content: str) -> "LLMMessage":
        return cls("system", content)

    @classmethod
    def user(cls, content: str) -> "LLMMessage":
        return cls("user", content)

    @classmethod
    def assistant(cls, content: str) -> "LLMMessage":
        return cls("assistant", content)

    def as_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class LLMResponse:
    """Text returned by the model plus whatever the provider reported."""
    content: str
    model: str = ""
    usage: Dict[str, int] = field(default_factory=dict)
    raw: Optional[Dict[str, Any]] = None


class LLMProvider(ABC):
    """
    A chat-completion backend.

    Subclasses own the wire format; callers only build ``LLMMessage`` lists
    and read ``LLMResponse.content``. Errors are raised, never turned into
    placeholder replies.
    """

    name: str = "base"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        default_temperature: float = 0.7,
        default_max_tokens: int = 1024,
        timeout: float = 60.0,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens
        self.timeout = timeout

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Ask the model for the next assistant turn.

        Args:
            messages: Conversation so far; ``system`` entries carry the persona prompt
            temperature: Overrides ``default_temperature``
            max_tokens: Overrides ``default_max_tokens``
            **kwargs: Provider-specific options, e.g. ``model``
        """
        pass

    def _sampling(self, temperature: Optional[float], max_tokens: Optional[int]) -> Dict[str, Any]:
        return {
            "temperature": self.default_temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self.default_max_tokens,
        }

    def _format_messages(self, messages: List[LLMMessage]) -> List[Dict[str, str]]:
        return [m.as_dict() for m in messages]

    def _log_summary(self, messages: List[LLMMessage]) -> str:
        if not messages:
            return "0 messages"
        return f"{len(messages)} messages, last: {messages[-1].content[:200]}"
