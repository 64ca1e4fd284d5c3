"""
Unit of work over a key-value store

The store only offers whole-value writes per key. A unit of work groups the
writes of one action: values are staged first, then written together. If a
write fails, every key already written is put back to the value it had
before the commit started, so the durable state is either fully the old one
or fully the new one.
"""

import logging
from typing import Any, Dict, List, Optional

from habitquest.exceptions import HabitQuestError, StorageWriteError
from habitquest.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

_MISSING = object()


class UnitOfWork:
    """Stage writes, then commit all-or-nothing"""

    def __init__(self, store: KeyValueStore, user_id: Optional[str] = None, operation: str = "commit"):
        self.store = store
        self.user_id = user_id
        self.operation = operation
        self._staged: Dict[str, Any] = {}
        self.committed = False

    def stage(self, key: str, value: Any) -> None:
        """Queue a write; the last value staged for a key wins"""
        if self.committed:
            raise RuntimeError("Unit of work already committed")
        self._staged[key] = value

    @property
    def staged_keys(self) -> List[str]:
        return list(self._staged)

    async def commit(self) -> None:
        """
        Write every staged value

        Raises:
            StorageWriteError: A write failed; previously written keys were restored
        """
        if self.committed:
            raise RuntimeError("Unit of work already committed")

        originals: Dict[str, Any] = {}
        written: List[str] = []

        try:
            for key in self._staged:
                stored = await self.store.get(key)
                originals[key] = _MISSING if stored is None else stored

            for key, value in self._staged.items():
                await self.store.set(key, value)
                written.append(key)

        except Exception as e:
            failed_key = next((k for k in self._staged if k not in written), None)
            logger.error(
                f"Commit failed for user {self.user_id} at key {failed_key} "
                f"after {len(written)}/{len(self._staged)} writes, restoring",
                exc_info=True
            )
            await self._restore(originals, written)
            raise StorageWriteError(
                message=f"{self.operation} failed writing '{failed_key}': {e}",
                key=failed_key,
                user_id=self.user_id,
                operation=self.operation,
                cause=e
            ) from e

        self.committed = True
        logger.debug(f"Committed {len(written)} keys for user {self.user_id}: {', '.join(written)}")

    async def _restore(self, originals: Dict[str, Any], written: List[str]) -> None:
        for key in reversed(written):
            original = originals.get(key, _MISSING)
            try:
                if original is _MISSING:
                    await self.store.delete(key)
                else:
                    await self.store.set(key, original)
            except (HabitQuestError, OSError) as e:
                # The store is failing; nothing more can be done for this key
                logger.critical(f"Could not restore '{key}' after failed commit: {e}")
