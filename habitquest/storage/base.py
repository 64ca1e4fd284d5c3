"""Key-value persistence port"""
from abc import ABC, abstractmethod
from typing import Any, Optional


class KeyValueStore(ABC):
    """
    Async key-value store holding JSON-compatible values

    Every write replaces the whole value stored under a key; there are no
    partial updates and no transactions across keys.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Value stored under key, or None"""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Replace the value stored under key"""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key (no-op if missing)"""

    async def close(self) -> None:
        """Release resources held by the store"""
        return None
