"""
In-process Storage Implementation.
Keeps everything in a dict owned by the current process; data is lost on restart.
"""

import json
import time
from typing import Optional, List, Dict, Any, Tuple

from .interface import StorageInterface


class MemoryStorage(StorageInterface):
    """
    Dict-backed key-value store.

    Values are kept as JSON strings so callers always receive a fresh copy.
    Expired keys are dropped lazily when read or scanned.
    None of the methods suspend, so each call completes within a single
    event-loop step.
    """

    def __init__(self):
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    def _is_expired(self, expires_at: Optional[float], now: float) -> bool:
        return expires_at is not None and now >= expires_at

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        entry = self._data.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        if self._is_expired(expires_at, time.time()):
            del self._data[key]
            return None
        return json.loads(raw)

    async def set(
        self,
        key: str,
        value: Dict[str, Any],
        ttl_seconds: Optional[int] = None
    ) -> None:
        expires_at = time.time() + ttl_seconds if ttl_seconds else None
        self._data[key] = (json.dumps(value), expires_at)

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def scan(self, prefix: str) -> List[str]:
        now = time.time()
        keys = []
        # Copy: expired entries are removed while iterating
        for key, (_, expires_at) in list(self._data.items()):
            if self._is_expired(expires_at, now):
                del self._data[key]
            elif key.startswith(prefix):
                keys.append(key)
        return keys

    def __len__(self) -> int:
        return len(self._data)
