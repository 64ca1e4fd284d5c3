"""
Service Container - Dependency Injection Container

Holds the store, clock and random source and lazily builds the services
on top of them. Tests build their own container around an in-memory store
and a fixed clock.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging
import random

from habitquest.config import QUEST_RETENTION_DAYS
from habitquest.storage.base import KeyValueStore
from habitquest.utils.datetime_helpers import Clock

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    """

    # Infrastructure dependencies (injected)
    store: KeyValueStore
    clock: Clock = field(default_factory=Clock)
    rng: random.Random = field(default_factory=random.Random)
    retention_days: int = QUEST_RETENTION_DAYS

    # Services (lazy-loaded via properties)
    _progression_service: Optional[object] = field(default=None, init=False, repr=False)
    _habit_service: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def progression_service(self):
        """Get ProgressionService instance (lazy-loaded)"""
        if self._progression_service is None:
            from habitquest.services.progression_service import ProgressionService
            self._progression_service = ProgressionService(
                self.store,
                clock=self.clock,
                rng=self.rng,
                retention_days=self.retention_days
            )
            logger.debug("ProgressionService instantiated")
        return self._progression_service

    @property
    def habit_service(self):
        """Get HabitService instance (lazy-loaded)"""
        if self._habit_service is None:
            from habitquest.services.habit_service import HabitService
            self._habit_service = HabitService(self.progression_service)
            logger.debug("HabitService instantiated")
        return self._habit_service

    async def close(self) -> None:
        await self.store.close()


# Global container instance (initialized in main.py)
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """
    Get the global service container.

    Raises:
        RuntimeError: If container not initialized (call init_container first)
    """
    if _container is None:
        raise RuntimeError(
            "Service container not initialized. "
            "Call init_container() before using services."
        )
    return _container


def init_container(
    store: KeyValueStore,
    clock: Optional[Clock] = None,
    rng: Optional[random.Random] = None,
    retention_days: int = QUEST_RETENTION_DAYS
) -> ServiceContainer:
    """
    Initialize the global service container.

    Args:
        store: Key-value store instance
        clock: Optional clock (defaults to the configured timezone)
        rng: Optional random source for quest selection
        retention_days: Days old quests are kept after their period ends

    Returns:
        ServiceContainer: The initialized container
    """
    global _container

    _container = ServiceContainer(
        store=store,
        clock=clock or Clock(),
        rng=rng or random.Random(),
        retention_days=retention_days
    )

    logger.info("Service container initialized")
    return _container
