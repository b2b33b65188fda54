"""
Input moderation and output sanitization.

Keyword screening is a cheap first line of defense, not semantic
understanding: paraphrased requests will get through.
"""

import re
from dataclasses import dataclass
from typing import Optional

MIN_LENGTH = 2
MAX_LENGTH = 2000

BLOCKED_PATTERNS = [
    # Security exploitation
    re.compile(r"\b(hack|exploit|attack|ddos|phishing)\b", re.IGNORECASE),
    # Illegal goods
    re.compile(r"\b(illegal|drugs|weapons)\b", re.IGNORECASE),
    # Explicit sexual content
    re.compile(r"\b(explicit|nsfw|nude|porn)\b", re.IGNORECASE),
    # Sensitive personal data
    re.compile(r"\b(social security|ssn|credit card|bank account)\b", re.IGNORECASE),
    # Violence
    re.compile(r"\b(kill|murder|harm|hurt someone)\b", re.IGNORECASE),
]

_SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_MARKUP_TAG = re.compile(r"<[^>]*>")


@dataclass(frozen=True)
class ModerationVerdict:
    """Outcome of screening one message."""
    allowed: bool
    reason: Optional[str] = None


def contains_blocked_content(text: str) -> bool:
    return any(pattern.search(text) for pattern in BLOCKED_PATTERNS)


def moderate_input(
    text: str,
    min_length: int = MIN_LENGTH,
    max_length: int = MAX_LENGTH,
) -> ModerationVerdict:
    """
    Decide whether a visitor message may be sent to the model.

    Args:
        text: Raw message text
        min_length: Shortest accepted message after trimming
        max_length: Longest accepted message after trimming

    Returns:
        ModerationVerdict with a human-readable reason on rejection
    """
    trimmed = (text or "").strip()

    if not trimmed:
        return ModerationVerdict(False, "Message cannot be empty.")

    if len(trimmed) > max_length:
        return ModerationVerdict(
            False, f"Message is too long. Please keep it under {max_length} characters."
        )

    if len(trimmed) < min_length:
        return ModerationVerdict(False, "Message is too short. Please provide more context.")

    if contains_blocked_content(trimmed):
        return ModerationVerdict(
            False,
            "This message contains content that Persephone cannot discuss. "
            "Please rephrase your question."
        )

    return ModerationVerdict(True)


def sanitize_output(text: str) -> str:
    """Strip script blocks and markup tags from model output. Markdown is left alone."""
    sanitized = _SCRIPT_BLOCK.sub("", text)
    sanitized = _MARKUP_TAG.sub("", sanitized)
    return sanitized.strip()
