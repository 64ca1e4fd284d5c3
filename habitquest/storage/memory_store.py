"""
In-memory key-value store

Default backend and the one used by tests. Values are deep-copied on the
way in and out, so callers never share state with the store.
"""

import copy
import logging
from typing import Any, Dict, Optional

from habitquest.storage.base import KeyValueStore

logger = logging.getLogger(__name__)


class InMemoryStore(KeyValueStore):
    """In-process store (not persisted across restarts)"""

    def __init__(self):
        self._data: Dict[str, Any] = {}
        logger.debug("InMemoryStore initialized - data is NOT persisted across restarts")

    async def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
        logger.debug(f"Saved {key} to memory store")

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list:
        """All stored keys (for inspection in tests)"""
        return sorted(self._data)
