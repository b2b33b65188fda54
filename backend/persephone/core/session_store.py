"""
Session Store - Owns conversation state per visitor identity.

Sessions live in the injected key-value store:
- ``session:<session_id>``        the serialized Session
- ``session_owner:<identity>``    ``{"session_id": ...}`` index for owner lookup
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from ..models import ChatMode, Message, Session
from ..storage import StorageInterface
from .errors import SessionNotFoundError

logger = logging.getLogger(__name__)

MAX_MESSAGES = 50
SESSION_TTL_HOURS = 24

SESSION_PREFIX = "session:"
OWNER_PREFIX = "session_owner:"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """
    Keeps at most one live session per identity, each holding a bounded
    message history. Every read returns a fresh copy; mutations go through
    ``append`` and ``extend``.
    """

    def __init__(
        self,
        storage: StorageInterface,
        max_messages: int = MAX_MESSAGES,
        ttl_hours: int = SESSION_TTL_HOURS,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            storage: Key-value store holding sessions
            max_messages: Retention cap per session, oldest dropped first
            ttl_hours: Idle time after which ``sweep`` deletes a session
            clock: Source of the current time
        """
        self.storage = storage
        self.max_messages = max_messages
        self.ttl = timedelta(hours=ttl_hours)
        self.clock = clock

    def _session_key(self, session_id: str) -> str:
        return f"{SESSION_PREFIX}{session_id}"

    def _owner_key(self, identity: str) -> str:
        return f"{OWNER_PREFIX}{identity}"

    async def _save(self, session: Session) -> None:
        await self.storage.set(self._session_key(session.id), session.model_dump(mode="json"))

    async def get(self, session_id: str) -> Optional[Session]:
        """Load a session by id."""
        data = await self.storage.get(self._session_key(session_id))
        if data is None:
            return None
        return Session.model_validate(data)

    async def find_by_owner(self, identity: str) -> Optional[Session]:
        """
        Find the live session owned by an identity, without creating one.

        Uses the owner index and falls back to scanning all sessions when
        the index entry is missing or stale.
        """
        index = await self.storage.get(self._owner_key(identity))
        if index:
            session = await self.get(index["session_id"])
            if session and session.owner_identity == identity:
                return session

        for key in await self.storage.scan(SESSION_PREFIX):
            data = await self.storage.get(key)
            if data and data.get("owner_identity") == identity:
                session = Session.model_validate(data)
                await self.storage.set(self._owner_key(identity), {"session_id": session.id})
                return session

        return None

    async def get_or_create(self, identity: str, session_id: Optional[str] = None) -> Session:
        """
        Resolve the visitor's session.

        A given ``session_id`` is honoured only when its owner matches
        ``identity``. Otherwise the visitor's existing session is returned,
        so clients that lost their id still recover their history. A new
        empty session is created as a last resort.
        """
        if session_id:
            session = await self.get(session_id)
            if session and session.owner_identity == identity:
                return session

        session = await self.find_by_owner(identity)
        if session:
            return session

        now = self.clock()
        session = Session(owner_identity=identity, created_at=now, updated_at=now)
        await self._save(session)
        await self.storage.set(self._owner_key(identity), {"session_id": session.id})
        logger.info(
            f"Session created: {session.id}",
            extra={"extra_fields": {"identity": identity, "session_id": session.id}}
        )
        return session

    def new_message(self, role: str, content: str, mode: ChatMode) -> Message:
        """Build a message stamped with the store clock, without saving it."""
        return Message(role=role, content=content, mode=mode, timestamp=self.clock())

    async def append(self, session_id: str, role: str, content: str, mode: ChatMode) -> Message:
        """
        Append a message, bump ``updated_at`` and enforce the retention cap.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        message = self.new_message(role, content, mode)
        await self.extend(session_id, [message])
        return message

    async def extend(self, session_id: str, messages: List[Message]) -> None:
        """
        Append already-built messages in a single write.

        A chat turn saves its user and assistant messages together, so a
        turn that never got a reply leaves the session untouched.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        session = await self.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)

        session.messages.extend(messages)
        session.updated_at = max(session.updated_at, self.clock())

        if len(session.messages) > self.max_messages:
            session.messages = session.messages[-self.max_messages:]

        await self._save(session)

    async def history(self, session_id: str) -> List[Message]:
        """Full history in chronological order; empty for unknown sessions."""
        session = await self.get(session_id)
        if session is None:
            return []
        return session.messages

    async def recent(self, session_id: str, count: int) -> List[Message]:
        """Last ``count`` messages."""
        if count <= 0:
            return []
        return (await self.history(session_id))[-count:]

    async def sweep(self) -> int:
        """
        Delete sessions idle for longer than the TTL.

        Returns:
            int: Number of sessions deleted
        """
        cutoff = self.clock() - self.ttl
        removed = 0

        for key in await self.storage.scan(SESSION_PREFIX):
            data = await self.storage.get(key)
            if data is None:
                continue
            session = Session.model_validate(data)
            if session.updated_at >= cutoff:
                continue

            await self.storage.delete(key)
            index = await self.storage.get(self._owner_key(session.owner_identity))
            if index and index.get("session_id") == session.id:
                await self.storage.delete(self._owner_key(session.owner_identity))
            removed += 1

        if removed:
            logger.info(f"Session sweep removed {removed} stale sessions")
        return removed
