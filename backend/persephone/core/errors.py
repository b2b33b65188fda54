"""
Error taxonomy for the chat pipeline.

Every error carries the HTTP status it maps to and a message that is safe
to show to the visitor.
"""

from datetime import datetime
from typing import Optional


class ChatError(Exception):
    """Base class for errors reported as ``{success: false, error}``."""

    status_code: int = 500
    default_message: str = "An unexpected error occurred. Please try again."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(ChatError):
    """Model credentials are missing."""

    status_code = 503
    default_message = "API is not properly configured. Please contact the administrator."


class ValidationError(ChatError):
    """Malformed body or unknown mode."""

    status_code = 400
    default_message = "Invalid request body."


class QuotaExceeded(ChatError):
    """Daily message ceiling reached."""

    status_code = 429

    def __init__(self, reset_at: datetime):
        self.reset_at = reset_at
        self.remaining = 0
        super().__init__(
            "Daily message limit reached. "
            f"Your limit resets at {reset_at.strftime('%H:%M:%S')} UTC."
        )


class ModerationRejected(ChatError):
    """Input refused by the moderator."""

    status_code = 400


class UpstreamFailure(ChatError):
    """The model call failed or timed out."""

    status_code = 500
    default_message = "Failed to generate response. Please try again later."


class SessionNotFoundError(ChatError):
    """Append targeted a session that does not exist."""

    status_code = 500

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__("Session not found.")
