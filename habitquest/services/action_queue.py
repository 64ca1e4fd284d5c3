"""
Per-user action serialization

Actions for one user run strictly one after another; actions for different
users may interleave at their await points.
"""

import asyncio
import logging
from typing import Dict

logger = logging.getLogger(__name__)


class UserActionQueue:
    """One FIFO lock per user id"""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    def for_user(self, user_id: str) -> asyncio.Lock:
        """
        Lock guarding a user's actions

        Usage:
            async with queue.for_user(user_id):
                ...
        """
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
            logger.debug(f"Created action queue for user {user_id}")
        return lock
