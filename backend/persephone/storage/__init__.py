"""Storage module - key-value interface and its implementations."""

from typing import Any

from .interface import StorageInterface
from .memory_storage import MemoryStorage
from .redis_storage import RedisStorage


def create_storage(config: Any) -> StorageInterface:
    """
    Create the configured key-value store.

    Args:
        config: Settings object with ``storage_backend`` and ``redis_url``

    Returns:
        StorageInterface implementation
    """
    if config.storage_backend == "memory":
        return MemoryStorage()
    elif config.storage_backend == "redis":
        return RedisStorage(config.redis_url)
    else:
        raise ValueError(f"Unsupported storage backend: {config.storage_backend}")


__all__ = ['StorageInterface', 'MemoryStorage', 'RedisStorage', 'create_storage']
