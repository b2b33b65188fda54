"""
Storage Interface - Abstract base class for all key-value store implementations.
This interface lets the in-process store and Redis be swapped without
touching the session or rate-limit logic.
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any


class StorageInterface(ABC):
    """
    Abstract key-value store with optional per-key expiry.
    Values are JSON-serializable dicts.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Load the value stored under a key.

        Args:
            key: Key to look up (e.g., "session:session_lx2k9_ab12cd34")

        Returns:
            Optional[Dict]: A copy of the stored value, or None if absent or expired
        """
        pass

    @abstractmethod
    async def set(
        self,
        key: str,
        value: Dict[str, Any],
        ttl_seconds: Optional[int] = None
    ) -> None:
        """
        Store a value, replacing any previous one.

        Args:
            key: Key to store under
            value: JSON-serializable dict
            ttl_seconds: Optional lifetime after which the key disappears
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete a key.

        Returns:
            bool: True if the key existed
        """
        pass

    @abstractmethod
    async def scan(self, prefix: str) -> List[str]:
        """
        List live keys starting with a prefix.

        Args:
            prefix: Key prefix (e.g., "session:")

        Returns:
            List[str]: Matching keys, in no particular order
        """
        pass

    async def close(self) -> None:
        """Release connections held by the store."""
        return None
