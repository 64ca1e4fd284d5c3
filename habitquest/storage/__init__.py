"""
Persistence layer

A narrow key-value port (KeyValueStore) with three adapters, plus the typed
repository and unit of work the services use on top of it.
"""

import logging

from habitquest.config import DATA_PATH, REDIS_URL, STORAGE_BACKEND
from habitquest.exceptions import ConfigurationError
from habitquest.storage.base import KeyValueStore
from habitquest.storage.memory_store import InMemoryStore
from habitquest.storage.repository import ProgressionRepository, UserRecords
from habitquest.storage.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


def create_store(backend: str = STORAGE_BACKEND) -> KeyValueStore:
    """
    Build the configured key-value store

    Raises:
        ConfigurationError: Unknown backend name
    """
    if backend == "memory":
        return InMemoryStore()
    if backend == "file":
        from habitquest.storage.file_store import JsonFileStore
        logger.info(f"Using JSON file store at {DATA_PATH}")
        return JsonFileStore(DATA_PATH)
    if backend == "redis":
        from habitquest.storage.redis_store import RedisStore
        return RedisStore(REDIS_URL)

    raise ConfigurationError(
        message=f"Unknown storage backend '{backend}'",
        config_key="STORAGE_BACKEND"
    )


__all__ = [
    "KeyValueStore",
    "InMemoryStore",
    "ProgressionRepository",
    "UserRecords",
    "UnitOfWork",
    "create_store",
]
